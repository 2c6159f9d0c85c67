"""Order confirmation emails, sent after an order is placed.

A failed delivery is logged and dropped: the purchase is already final.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.channel import get_email_channel
from commerce.channel.port import SENT
from commerce.config import Settings
from commerce.customer.registration import find_customer
from commerce.errors import EmailDeliveryError
from commerce.order.order import Order
from commerce.pricing.money import format_money, minor_units
from commerce.product.product import Product
from commerce.templates import ADMIN, CUSTOMER, OrderConfirmationTemplate

logger = structlog.get_logger(__name__)


def send_transactional_email(to, content) -> dict:
    """Send rendered template ``content`` to ``to``. Raises EmailDeliveryError on failure."""
    result = get_email_channel().send(
        to=to,
        subject=content["subject"],
        body=content["body"],
        html_body=content.get("html_body"),
    )
    if result.get("status") != SENT:
        raise EmailDeliveryError(to, result.get("error") or "unknown error")
    return result


def _order_lines(order) -> list[dict]:
    products = current_domain.repository_for(Product)
    lines = []
    for line in order.lines:
        try:
            product = products.get(str(line.product_id))
        except ObjectNotFoundError:
            product = None

        unit_price = None
        if product is not None:
            unit_price = format_money(minor_units(product.unit_price, product.currency), product.currency)
        lines.append(
            {
                "name": product.name if product else str(line.product_id),
                "quantity": line.quantity,
                "unit_price": unit_price,
            }
        )
    return lines


class OrderNotifier:
    """Emails the customer and the shop admin about a new order."""

    def __init__(self, site_name=Settings.site_name, frontend_url=Settings.frontend_url, admin_email=None):
        self.site_name = site_name
        self.frontend_url = frontend_url
        self.admin_email = admin_email

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrderNotifier":
        return cls(site_name=settings.site_name, frontend_url=settings.frontend_url, admin_email=settings.admin_email)

    def notify_order_placed(self, order_id) -> int:
        """Returns the number of emails sent."""
        order = current_domain.repository_for(Order).get(order_id)
        customer = find_customer(order.user_id)

        context = {
            "site_name": self.site_name,
            "frontend_url": self.frontend_url,
            "lines": _order_lines(order),
            "display_price": order.display_price,
            "transaction_id": order.provider_transaction_id,
            "purchased_at": order.purchased_at,
            "needs_review": bool(order.needs_review),
            "customer_name": customer.name if customer else None,
            "customer_email": customer.email if customer else None,
            "recipient_name": customer.first_name if customer else None,
        }

        recipients = []
        if customer is not None and customer.email:
            recipients.append((customer.email, CUSTOMER))
        if self.admin_email:
            recipients.append((self.admin_email, ADMIN))

        sent = 0
        for recipient, audience in recipients:
            content = OrderConfirmationTemplate.render({**context, "audience": audience})
            try:
                send_transactional_email(recipient, content)
                sent += 1
            except EmailDeliveryError as exc:
                logger.warning(
                    "Order notification failed",
                    order_id=str(order.id),
                    audience=audience,
                    recipient=exc.recipient,
                    reason=exc.reason,
                )
        return sent
