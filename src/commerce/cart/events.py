"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Cart")
class CartItemAdded:
    """A product was added to the cart, or its quantity increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)
    price_reference = String(max_length=255)


@commerce.event(part_of="Cart")
class CartItemUpdated:
    """The quantity of a cart line was set to a new value."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@commerce.event(part_of="Cart")
class CartItemRemoved:
    """A product was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@commerce.event(part_of="Cart")
class CartCleared:
    """Every line was removed, typically after a cart checkout was reconciled."""

    __version__ = 1

    cart_id = Identifier(required=True)
    transaction_id = String(max_length=255)
    cleared_at = DateTime(required=True)
