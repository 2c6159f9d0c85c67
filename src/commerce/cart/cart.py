"""Cart aggregate — one per user, keyed by the user id.

A cart line records the quantity wanted and the provider price reference
captured when the product was added. Stock is validated on every mutation
against the caller-supplied availability, and re-validated at checkout.
The cart never touches inventory.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, HasMany, Identifier, Integer, String

from commerce.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartItemUpdated
from commerce.domain import commerce
from commerce.errors import CartLineNotFound, InsufficientStock, OutOfStock


@commerce.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    price_reference = String(required=True, max_length=255)
    added_at = DateTime()


@commerce.aggregate
class Cart:
    user_id = Identifier(required=True)
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        return cls(id=str(user_id), user_id=str(user_id), created_at=now, updated_at=now)

    def line_for(self, product_id):
        return next((line for line in self.lines if str(line.product_id) == str(product_id)), None)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, price_reference, available):
        """Add ``quantity`` units, merging with an existing line for the product.

        The merged quantity must fit in ``available``; on failure the error
        reports how many more units can still be added.
        """
        existing = self.line_for(product_id)
        in_cart = existing.quantity if existing else 0

        if available <= 0:
            raise OutOfStock(str(product_id))
        if in_cart + quantity > available:
            raise InsufficientStock(
                str(product_id),
                available - in_cart,
                f"Only {available} item(s) in stock; you can add at most {max(available - in_cart, 0)} more",
            )

        now = datetime.now(UTC)
        if existing:
            existing.quantity = in_cart + quantity
            existing.price_reference = price_reference
            line_quantity = existing.quantity
        else:
            self.add_lines(
                CartLine(
                    product_id=str(product_id),
                    quantity=quantity,
                    price_reference=price_reference,
                    added_at=now,
                )
            )
            line_quantity = quantity

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product_id),
                quantity=quantity,
                line_quantity=line_quantity,
                price_reference=price_reference,
            )
        )

    def update_item(self, product_id, quantity, available):
        """Set the quantity of an existing line."""
        line = self.line_for(product_id)
        if line is None:
            raise CartLineNotFound(str(product_id))
        if quantity > available:
            raise InsufficientStock(str(product_id), available)

        previous = line.quantity
        line.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id) -> bool:
        """Remove the line for ``product_id``. Removing a missing line is a no-op."""
        line = self.line_for(product_id)
        if line is None:
            return False

        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))
        return True

    def clear(self, transaction_id=None):
        """Drop every line. The checked-out snapshot may be stale, so nothing is kept."""
        for line in list(self.lines):
            self.remove_lines(line)

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(CartCleared(cart_id=str(self.id), transaction_id=transaction_id, cleared_at=now))
