"""Domain events for the Customer aggregate."""

from protean.fields import DateTime, Identifier

from commerce.domain import commerce


@commerce.event(part_of="Customer")
class PurchaseRecorded:
    """A product was added to the customer's purchased products."""

    __version__ = 1

    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    recorded_at = DateTime(required=True)
