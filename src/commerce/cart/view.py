"""Cart read side — cart lines joined with product details."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.cart.items import find_cart
from commerce.product.product import Product


def get_cart(user_id) -> list[dict]:
    """Return the user's cart lines with product details. An empty cart is an empty list."""
    cart = find_cart(user_id)
    if cart is None:
        return []

    products = current_domain.repository_for(Product)
    contents = []
    for line in cart.lines:
        try:
            product = products.get(str(line.product_id))
        except ObjectNotFoundError:
            product = None

        contents.append(
            {
                "product_id": str(line.product_id),
                "quantity": line.quantity,
                "price_reference": line.price_reference,
                "name": product.name if product else None,
                "image_url": product.image_url if product else None,
                "unit_price": product.unit_price if product else None,
                "currency": product.currency if product else None,
                "remaining_stock": product.remaining_stock if product else 0,
            }
        )
    return contents
