"""Transaction Initiator — turn a cart or a single product into a provider
transaction the customer can pay.

Nothing is persisted here. Stock is only re-checked, never reserved; the
cart is left as it is. Inventory, cart and orders change on reconciliation.

The buyer's country is resolved by the caller and arrives on the command.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.cart.items import find_cart
from commerce.checkout.intent import PurchaseIntent
from commerce.customer.registration import find_customer
from commerce.domain import commerce
from commerce.errors import EmptyCart, InsufficientStock, NotConfigured, PaymentProviderError
from commerce.gateway import get_gateway
from commerce.gateway.port import LineItem
from commerce.order.order import Order
from commerce.product.management import get_product

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class CheckoutProduct:
    user_id = Identifier(required=True)
    customer_email = String(required=True, max_length=254)
    country = String(required=True, max_length=2)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.command(part_of="Order")
class CheckoutCart:
    user_id = Identifier(required=True)
    customer_email = String(required=True, max_length=254)
    country = String(required=True, max_length=2)


@commerce.command_handler(part_of=Order)
class InitiateCheckoutHandler:
    @handle(CheckoutProduct)
    def checkout_product(self, command):
        product = get_product(command.product_id)
        intent = PurchaseIntent.single(
            user_id=command.user_id,
            product_id=product.id,
            quantity=command.quantity,
            price_reference=product.provider_price_id,
        )
        return self._initiate(intent, command.customer_email, command.country)

    @handle(CheckoutCart)
    def checkout_cart(self, command):
        cart = find_cart(command.user_id)
        if cart is None or cart.is_empty:
            raise EmptyCart()
        return self._initiate(PurchaseIntent.from_cart(cart), command.customer_email, command.country)

    def _initiate(self, intent, customer_email, country):
        prices = {}
        for line in intent.lines:
            product = get_product(line.product_id)
            if not product.is_payable:
                raise NotConfigured(line.product_id)
            if not product.has_stock_for(line.quantity):
                raise InsufficientStock(line.product_id, product.remaining_stock or 0)
            prices[line.product_id] = product.price_reference_for(country, fallback=line.price_reference)

        intent = intent.with_prices(prices)
        customer = find_customer(intent.user_id)

        try:
            session = get_gateway().create_transaction(
                items=[LineItem(price_id=line.price_reference, quantity=line.quantity) for line in intent.lines],
                customer_email=customer_email,
                custom_data=intent.to_custom_data(),
                customer_id=customer.provider_customer_id if customer else None,
            )
        except PaymentProviderError as exc:
            logger.warning(
                "Checkout failed at payment provider",
                user_id=intent.user_id,
                origin=intent.origin,
                detail=exc.detail or str(exc),
            )
            raise

        logger.info(
            "Checkout initiated",
            user_id=intent.user_id,
            origin=intent.origin,
            transaction_id=session.transaction_id,
            country=country,
            lines=len(intent.lines),
        )
        return {"transaction_id": session.transaction_id, "checkout_url": session.checkout_url}
