"""Cart Store — commands and handler for cart line management."""

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.domain import commerce
from commerce.errors import CartLineNotFound, NotConfigured
from commerce.product.management import get_product


def find_cart(user_id) -> Cart | None:
    try:
        return current_domain.repository_for(Cart).get(str(user_id))
    except ObjectNotFoundError:
        return None


@commerce.command(part_of="Cart")
class AddCartItem:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    price_reference = String(max_length=255)  # Defaults to the product's price id


@commerce.command(part_of="Cart")
class UpdateCartItem:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.command(part_of="Cart")
class RemoveCartItem:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)


@commerce.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddCartItem)
    def add_item(self, command):
        product = get_product(command.product_id)
        price_reference = command.price_reference or product.provider_price_id
        if not price_reference:
            raise NotConfigured(str(product.id))
        if price_reference not in product.known_price_references():
            raise ValidationError({"price_reference": [f"Unknown price reference for product {product.id}"]})

        repo = current_domain.repository_for(Cart)
        cart = find_cart(command.user_id) or Cart.create(command.user_id)
        cart.add_item(
            product_id=str(product.id),
            quantity=command.quantity,
            price_reference=price_reference,
            available=product.remaining_stock,
        )
        repo.add(cart)

    @handle(UpdateCartItem)
    def update_item(self, command):
        cart = find_cart(command.user_id)
        if cart is None:
            raise CartLineNotFound(str(command.product_id))

        product = get_product(command.product_id)
        cart.update_item(
            product_id=command.product_id,
            quantity=command.quantity,
            available=product.remaining_stock,
        )
        current_domain.repository_for(Cart).add(cart)

    @handle(RemoveCartItem)
    def remove_item(self, command):
        cart = find_cart(command.user_id)
        if cart is not None and cart.remove_item(command.product_id):
            current_domain.repository_for(Cart).add(cart)
