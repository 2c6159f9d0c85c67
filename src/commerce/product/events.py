"""Domain events for the Product aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Product")
class ProductRestocked:
    """An administrator added units to a product's stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining_stock = Integer(required=True)
    total_stock = Integer(required=True)
    restocked_at = DateTime(required=True)


@commerce.event(part_of="Product")
class StockDecremented:
    """Stock was consumed by a reconciled purchase."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining_stock = Integer(required=True)
    transaction_id = String(max_length=255)
    decremented_at = DateTime(required=True)


@commerce.event(part_of="Product")
class OversellDetected:
    """A paid purchase asked for more units than were left. Needs manual review."""

    __version__ = 1

    product_id = Identifier(required=True)
    requested = Integer(required=True)
    available = Integer(required=True)
    oversold = Integer(required=True)
    transaction_id = String(max_length=255)
    detected_at = DateTime(required=True)
