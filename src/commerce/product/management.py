"""Product lookups and administrator restocking."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import ProductNotFound
from commerce.product.product import Product


def get_product(product_id) -> Product:
    """Load a product or raise ProductNotFound."""
    try:
        return current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError:
        raise ProductNotFound(str(product_id)) from None


def find_product_by_price_reference(price_id) -> Product | None:
    """Find the product that sells under ``price_id`` (default or localized)."""
    repo = current_domain.repository_for(Product)
    matches = repo._dao.query.filter(provider_price_id=price_id).all().items
    if matches:
        return matches[0]

    for product in repo._dao.query.limit(None).all().items:
        if price_id in product.known_price_references():
            return product
    return None


@commerce.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.command_handler(part_of=Product)
class ManageProductStockHandler:
    @handle(RestockProduct)
    def restock(self, command):
        product = get_product(command.product_id)
        product.restock(command.quantity)
        current_domain.repository_for(Product).add(product)
        return product.remaining_stock
