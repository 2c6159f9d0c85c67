"""Order aggregate — one per reconciled provider transaction.

``provider_transaction_id`` is unique: at most one order can ever exist for
a provider transaction, which is what makes reconciliation idempotent.

Orders are created ``completed``. The ``access_token`` is a single-use
secret for the post-purchase confirmation page; redeeming it clears the
token and marks the confirmation viewed.
"""

import json
import secrets
from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String

from commerce.domain import commerce
from commerce.errors import InvalidOrAlreadyUsed
from commerce.order.events import OrderConfirmationViewed, OrderPlaced

ACCESS_TOKEN_MAX_LENGTH = 64


class OrderStatus(Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"
    PENDING = "pending"


class OrderOrigin(Enum):
    PRODUCT = "product"
    CART = "cart"


@commerce.entity(part_of="Order")
class OrderLine:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    price_reference = String(max_length=255)


@commerce.aggregate
class Order:
    user_id = Identifier(required=True)
    lines = HasMany(OrderLine)
    provider_transaction_id = String(required=True, max_length=255, unique=True)
    provider_customer_id = String(max_length=255)
    origin = String(choices=OrderOrigin, default=OrderOrigin.PRODUCT.value)
    currency = String(max_length=3)
    display_price = String(max_length=50)
    purchase_price = Integer(min_value=0)  # Minor units
    status = String(choices=OrderStatus, default=OrderStatus.COMPLETED.value)
    access_token = String(max_length=ACCESS_TOKEN_MAX_LENGTH)
    confirmation_viewed = Boolean(default=False)
    needs_review = Boolean(default=False)
    purchased_at = DateTime()
    confirmation_viewed_at = DateTime()

    @classmethod
    def place(
        cls,
        user_id,
        provider_transaction_id,
        lines,
        origin=OrderOrigin.PRODUCT.value,
        currency=None,
        purchase_price=None,
        display_price=None,
        provider_customer_id=None,
        needs_review=False,
    ):
        """Create a completed order from reconciled purchase lines.

        ``lines`` is a list of ``{"product_id", "quantity", "price_reference"}`` dicts.
        """
        now = datetime.now(UTC)
        order = cls(
            user_id=str(user_id),
            provider_transaction_id=provider_transaction_id,
            provider_customer_id=provider_customer_id,
            origin=origin,
            currency=currency,
            purchase_price=purchase_price,
            display_price=display_price,
            status=OrderStatus.COMPLETED.value,
            access_token=secrets.token_urlsafe(32),
            confirmation_viewed=False,
            needs_review=needs_review,
            purchased_at=now,
        )
        for line in lines:
            order.add_lines(
                OrderLine(
                    product_id=str(line["product_id"]),
                    quantity=line["quantity"],
                    price_reference=line.get("price_reference"),
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                provider_transaction_id=provider_transaction_id,
                origin=origin,
                lines=json.dumps(
                    [
                        {
                            "product_id": str(line["product_id"]),
                            "quantity": line["quantity"],
                            "price_reference": line.get("price_reference"),
                        }
                        for line in lines
                    ]
                ),
                currency=currency,
                purchase_price=purchase_price,
                display_price=display_price,
                needs_review=needs_review,
                purchased_at=now,
            )
        )
        return order

    def belongs_to(self, user_id) -> bool:
        return str(self.user_id) == str(user_id)

    def redeem_confirmation(self, user_id, token):
        """Consume the one-time access token.

        Unknown, foreign and already-used tokens all fail the same way.
        """
        if not token or not self.access_token or not self.belongs_to(user_id):
            raise InvalidOrAlreadyUsed()
        if not secrets.compare_digest(self.access_token, token):
            raise InvalidOrAlreadyUsed()

        now = datetime.now(UTC)
        self.access_token = None
        self.confirmation_viewed = True
        self.confirmation_viewed_at = now

        self.raise_(
            OrderConfirmationViewed(
                order_id=str(self.id),
                user_id=str(self.user_id),
                viewed_at=now,
            )
        )
