"""Order Access Gate — the read paths over orders.

Orders are only ever returned to their owner, except through the admin
listing. A missing order and a foreign order look the same to the caller.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.customer.registration import find_customer
from commerce.errors import InvalidOrAlreadyUsed, NotFoundYet
from commerce.order.confirmation import RedeemConfirmationToken
from commerce.order.order import ACCESS_TOKEN_MAX_LENGTH, Order
from commerce.product.product import Product

logger = structlog.get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _all_orders() -> list[Order]:
    return current_domain.repository_for(Order)._dao.query.limit(None).all().items


def _purchase_time(order) -> datetime:
    purchased_at = order.purchased_at or _EPOCH
    if purchased_at.tzinfo is None:
        purchased_at = purchased_at.replace(tzinfo=UTC)
    return purchased_at


def order_for_transaction(transaction_id) -> Order | None:
    """The order reconciled from ``transaction_id``, if any."""
    repo = current_domain.repository_for(Order)
    matches = repo._dao.query.filter(provider_transaction_id=transaction_id).all().items
    return matches[0] if matches else None


def poll_by_transaction_id(user_id, transaction_id) -> Order:
    """Return the caller's order for ``transaction_id`` or raise NotFoundYet."""
    order = order_for_transaction(transaction_id)
    if order is None or not order.belongs_to(user_id):
        raise NotFoundYet(transaction_id)
    return order


def view_once_by_access_token(user_id, token) -> Order:
    """Redeem the one-time confirmation token and return its order."""
    if not token or len(token) > ACCESS_TOKEN_MAX_LENGTH:
        logger.info("Confirmation token rejected", user_id=str(user_id))
        raise InvalidOrAlreadyUsed()

    try:
        order_id = current_domain.process(
            RedeemConfirmationToken(user_id=str(user_id), token=token),
            asynchronous=False,
        )
    except ExpectedVersionError as exc:
        # A concurrent redemption won the write.
        logger.info("Confirmation token redemption lost a race", user_id=str(user_id), error=str(exc))
        raise InvalidOrAlreadyUsed() from None
    except InvalidOrAlreadyUsed:
        logger.info("Confirmation token rejected", user_id=str(user_id))
        raise

    return current_domain.repository_for(Order).get(order_id)


def list_mine(user_id) -> list[Order]:
    """The caller's orders, newest first."""
    repo = current_domain.repository_for(Order)
    orders = repo._dao.query.filter(user_id=str(user_id)).limit(None).all().items
    return sorted(orders, key=_purchase_time, reverse=True)


def list_all(limit=10, offset=0, search=None, sort="desc") -> tuple[list[Order], int]:
    """Admin listing. ``search`` matches order id or provider transaction id.

    Returns the requested page and the total number of matching orders.
    Without a search the page is read straight from the repository.
    """
    offset = max(offset or 0, 0)
    needle = (search or "").strip().lower()
    if not needle:
        ordering = "purchased_at" if sort == "asc" else "-purchased_at"
        query = current_domain.repository_for(Order)._dao.query.order_by(ordering).offset(offset)
        result = query.limit(limit or None).all()
        return result.items, result.total

    orders = [
        order
        for order in _all_orders()
        if needle in str(order.id).lower() or needle in (order.provider_transaction_id or "").lower()
    ]
    orders = sorted(orders, key=_purchase_time, reverse=(sort != "asc"))
    page = orders[offset : offset + limit] if limit else orders[offset:]
    return page, len(orders)


def describe_order(order, include_customer=False) -> dict:
    """Order payload with product details joined onto each line."""
    products = current_domain.repository_for(Product)
    lines = []
    for line in order.lines:
        try:
            product = products.get(str(line.product_id))
        except ObjectNotFoundError:
            product = None

        lines.append(
            {
                "product_id": str(line.product_id),
                "quantity": line.quantity,
                "price_reference": line.price_reference,
                "name": product.name if product else None,
                "image_url": product.image_url if product else None,
            }
        )

    payload = {
        "id": str(order.id),
        "user_id": str(order.user_id),
        "provider_transaction_id": order.provider_transaction_id,
        "origin": order.origin,
        "status": order.status,
        "currency": order.currency,
        "display_price": order.display_price,
        "purchase_price": order.purchase_price,
        "purchased_at": order.purchased_at,
        "confirmation_viewed": bool(order.confirmation_viewed),
        "needs_review": bool(order.needs_review),
        "access_token": order.access_token,
        "lines": lines,
    }

    if include_customer:
        customer = find_customer(order.user_id)
        payload["customer"] = (
            {"id": str(customer.id), "name": customer.name, "email": customer.email} if customer else None
        )
        # Tokens are only ever handed to the order's owner.
        payload["access_token"] = None
    return payload
