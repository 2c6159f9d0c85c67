"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    """A paid provider transaction was reconciled into an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    provider_transaction_id = String(required=True, max_length=255)
    origin = String(max_length=20)
    lines = Text(required=True)  # JSON: [{"product_id", "quantity", "price_reference"}]
    currency = String(max_length=3)
    purchase_price = Integer()
    display_price = String(max_length=50)
    needs_review = Boolean(default=False)
    purchased_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderConfirmationViewed:
    """The one-time confirmation link was redeemed."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    viewed_at = DateTime(required=True)
