"""Confirmation Reconciler — turn a paid provider transaction into an order.

Two triggers race to reconcile the same transaction: the provider's webhook
and the client reporting that checkout completed. Both end up in
``reconcile()``. The order insert is the last write of the unit of work and
``Order.provider_transaction_id`` is unique, so whichever trigger loses the
race has its whole unit of work (stock, customer, cart) rolled back and is
told ``already_reconciled``.

Within one attempt:

1. An existing order for the transaction ends the attempt as a no-op.
2. The purchase lines come from the custom data set at checkout.
3. Stock is decremented per line, never below zero. A shortfall is an
   oversell: tolerated and flagged for review, or refused, per policy.
4. The customer record gets the provider customer id and, for
   single-product purchases, the purchased product.
5. The order is inserted.
6. A cart checkout empties the cart.

Notifications go out after the unit of work commits and never fail the
reconciliation. The oversell policy and the notifier are given to a
``Reconciler`` when the application is wired; the policy travels to the
handler on the command.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ExpectedVersionError, ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.cart.items import find_cart
from commerce.checkout.intent import PurchaseIntent
from commerce.checkout.notification import OrderNotifier
from commerce.config import OversellPolicy, Settings
from commerce.customer.customer import Customer
from commerce.customer.registration import find_customer
from commerce.domain import commerce
from commerce.errors import DuplicateTransaction, InvalidTransaction, OversellRefused, ProductNotFound
from commerce.order.access import order_for_transaction
from commerce.order.order import Order, OrderOrigin
from commerce.pricing.money import format_money, minor_units
from commerce.product.management import get_product
from commerce.product.product import Product

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 3

RECONCILED = "reconciled"
ALREADY_RECONCILED = "already_reconciled"
REFUSED = "refused"
PENDING = "pending"


@commerce.command(part_of="Order")
class ReconcileTransaction:
    transaction_id = String(required=True, max_length=255)
    user_id = Identifier(required=True)
    origin = String(required=True, max_length=20)
    lines = Text(required=True)  # JSON: [{"product_id", "quantity", "price_reference"}]
    provider_customer_id = String(max_length=255)
    currency = String(max_length=3)
    purchase_price = Integer()
    display_price = String(max_length=50)
    source = String(max_length=20)
    oversell_policy = String(max_length=20, default=OversellPolicy.TOLERATE.value)


@commerce.command_handler(part_of=Order)
class ReconcileTransactionHandler:
    @handle(ReconcileTransaction)
    def reconcile_transaction(self, command):
        existing = order_for_transaction(command.transaction_id)
        if existing is not None:
            return {"status": ALREADY_RECONCILED, "order_id": str(existing.id)}

        lines = json.loads(command.lines)
        customer = find_customer(command.user_id)
        if customer is None:
            raise InvalidTransaction(command.transaction_id, "custom data names an unknown customer")

        try:
            products = [(get_product(line["product_id"]), line["quantity"]) for line in lines]
        except ProductNotFound as exc:
            raise InvalidTransaction(command.transaction_id, f"unknown product {exc.product_id}") from None

        if OversellPolicy(command.oversell_policy) == OversellPolicy.REFUSE:
            short = [str(product.id) for product, quantity in products if not product.has_stock_for(quantity)]
            if short:
                raise OversellRefused(command.transaction_id, short)

        # Stock
        product_repo = current_domain.repository_for(Product)
        needs_review = False
        for product, quantity in products:
            oversold = product.commit_sale(quantity, transaction_id=command.transaction_id)
            if oversold:
                needs_review = True
                logger.error(
                    "Oversell detected, order flagged for manual review",
                    transaction_id=command.transaction_id,
                    product_id=str(product.id),
                    requested=quantity,
                    oversold=oversold,
                )
            product_repo.add(product)

        # Customer
        customer.link_provider_customer(command.provider_customer_id)
        if command.origin == OrderOrigin.PRODUCT.value:
            for product, _ in products:
                customer.record_purchase(product.id)
        current_domain.repository_for(Customer).add(customer)

        # Order: the unique insert gates the whole unit of work
        if order_for_transaction(command.transaction_id) is not None:
            raise DuplicateTransaction(command.transaction_id)

        order = Order.place(
            user_id=command.user_id,
            provider_transaction_id=command.transaction_id,
            lines=lines,
            origin=command.origin,
            currency=command.currency,
            purchase_price=command.purchase_price,
            display_price=command.display_price,
            provider_customer_id=command.provider_customer_id,
            needs_review=needs_review,
        )
        current_domain.repository_for(Order).add(order)

        # Cart
        if command.origin == OrderOrigin.CART.value:
            cart = find_cart(command.user_id)
            if cart is not None and not cart.is_empty:
                cart.clear(transaction_id=command.transaction_id)
                current_domain.repository_for(Cart).add(cart)

        return {"status": RECONCILED, "order_id": str(order.id), "needs_review": needs_review}


def _totals(transaction, intent) -> tuple[str | None, int | None, str | None]:
    """Currency, purchase price (minor units) and display price for the order.

    The provider's totals are authoritative; the catalogue price is used when
    the notification carries none.
    """
    currency = transaction.currency
    purchase_price = transaction.grand_total
    if purchase_price is None:
        purchase_price = 0
        for line in intent.lines:
            try:
                product = get_product(line.product_id)
            except ProductNotFound:
                continue
            currency = currency or product.currency
            purchase_price += minor_units(product.unit_price, product.currency) * line.quantity

    display_price = transaction.display_total
    if display_price is None and currency:
        display_price = format_money(purchase_price, currency)
    return currency, purchase_price, display_price


def _is_duplicate_insert(exc: ValidationError) -> bool:
    messages = getattr(exc, "messages", None) or {}
    return "provider_transaction_id" in messages


class Reconciler:
    """Runs reconciliation with the oversell policy and notifier it was built with."""

    def __init__(self, oversell_policy=OversellPolicy.TOLERATE, notifier=None):
        self.oversell_policy = OversellPolicy(oversell_policy)
        self.notifier = notifier or OrderNotifier()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Reconciler":
        return cls(oversell_policy=settings.oversell_policy, notifier=OrderNotifier.from_settings(settings))

    def reconcile(self, transaction, source="webhook") -> dict:
        """Reconcile a provider transaction into an order.

        Returns ``{"status": "reconciled" | "already_reconciled" | "refused", "order_id"}``.
        Raises InvalidTransaction when the transaction cannot be fulfilled by
        this system.
        """
        if not transaction.is_completed:
            raise InvalidTransaction(transaction.transaction_id, f"transaction is {transaction.status}")

        intent = PurchaseIntent.from_custom_data(transaction.transaction_id, transaction.custom_data)
        log = logger.bind(transaction_id=transaction.transaction_id, user_id=intent.user_id, source=source)

        currency, purchase_price, display_price = _totals(transaction, intent)
        command = ReconcileTransaction(
            transaction_id=transaction.transaction_id,
            user_id=intent.user_id,
            origin=intent.origin,
            lines=json.dumps([line.to_dict() for line in intent.lines]),
            provider_customer_id=transaction.customer_id,
            currency=currency,
            purchase_price=purchase_price,
            display_price=display_price,
            source=source,
            oversell_policy=self.oversell_policy.value,
        )

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                result = current_domain.process(command, asynchronous=False)
                break
            except DuplicateTransaction:
                result = None
                break
            except ValidationError as exc:
                if not _is_duplicate_insert(exc):
                    raise
                result = None
                break
            except ExpectedVersionError:
                log.warning("Concurrent update during reconciliation, retrying", attempt=attempt)
                if attempt == MAX_ATTEMPTS:
                    raise
            except OversellRefused as exc:
                log.error("Oversell refused, refund required", product_ids=exc.product_ids)
                return {"status": REFUSED, "order_id": None}

        if result is None or result["status"] == ALREADY_RECONCILED:
            existing = order_for_transaction(transaction.transaction_id)
            log.info("Transaction already reconciled", order_id=str(existing.id) if existing else None)
            return {"status": ALREADY_RECONCILED, "order_id": str(existing.id) if existing else None}

        log.info("Transaction reconciled", order_id=result["order_id"], needs_review=result["needs_review"])
        self.notifier.notify_order_placed(result["order_id"])
        return {"status": RECONCILED, "order_id": result["order_id"]}


_current_reconciler: Reconciler | None = None


def get_reconciler() -> Reconciler:
    """Return the configured reconciler. Defaults to the tolerate policy."""
    global _current_reconciler
    if _current_reconciler is None:
        _current_reconciler = Reconciler()
    return _current_reconciler


def set_reconciler(reconciler: Reconciler) -> None:
    global _current_reconciler
    _current_reconciler = reconciler


def reset_reconciler() -> None:
    global _current_reconciler
    _current_reconciler = None


def reconcile(transaction, source="webhook") -> dict:
    """Reconcile ``transaction`` with the configured reconciler."""
    return get_reconciler().reconcile(transaction, source=source)
