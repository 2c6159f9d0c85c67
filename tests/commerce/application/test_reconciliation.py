"""Tests for the Confirmation Reconciler."""

import pytest
from protean import current_domain
from protean.exceptions import ExpectedVersionError

from commerce.cart.items import AddCartItem
from commerce.cart.view import get_cart
from commerce.checkout import reconciliation
from commerce.checkout.initiation import CheckoutCart, CheckoutProduct
from commerce.checkout.notification import OrderNotifier
from commerce.checkout.reconciliation import (
    ALREADY_RECONCILED,
    RECONCILED,
    REFUSED,
    Reconciler,
    reconcile,
    set_reconciler,
)
from commerce.config import OversellPolicy
from commerce.customer.customer import Customer
from commerce.domain import commerce
from commerce.errors import InvalidTransaction
from commerce.gateway.port import ProviderTransaction
from commerce.order.access import list_mine, order_for_transaction
from commerce.order.order import Order
from commerce.product.product import Product


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).remaining_stock


def _paid_product_transaction(gateway, product_id, quantity=1, user_id="user-001"):
    result = current_domain.process(
        CheckoutProduct(
            user_id=user_id,
            customer_email=f"{user_id}@example.com",
            country="US",
            product_id=product_id,
            quantity=quantity,
        ),
        asynchronous=False,
    )
    gateway.complete_transaction(result["transaction_id"], customer_id="ctm_001")
    return gateway.get_transaction(result["transaction_id"])


def _paid_cart_transaction(gateway, user_id="user-001"):
    result = current_domain.process(
        CheckoutCart(user_id=user_id, customer_email=f"{user_id}@example.com", country="US"),
        asynchronous=False,
    )
    gateway.complete_transaction(result["transaction_id"])
    return gateway.get_transaction(result["transaction_id"])


class TestReconcile:
    def test_creates_completed_order(self, gateway, mailbox, customer, make_product):
        product = make_product(stock=3)
        transaction = _paid_product_transaction(gateway, product.id, quantity=2)

        result = reconcile(transaction)

        assert result["status"] == RECONCILED
        order = current_domain.repository_for(Order).get(result["order_id"])
        assert order.provider_transaction_id == transaction.transaction_id
        assert order.status == "completed"
        assert order.purchase_price == 5998
        assert order.display_price == "$59.98"
        assert order.currency == "USD"
        assert order.access_token
        assert order.needs_review is False

    def test_decrements_stock(self, gateway, mailbox, customer, make_product):
        product = make_product(stock=3)
        reconcile(_paid_product_transaction(gateway, product.id, quantity=2))
        assert _stock(product.id) == 1

    def test_records_purchase_and_provider_customer(self, gateway, mailbox, customer, make_product):
        product = make_product()
        reconcile(_paid_product_transaction(gateway, product.id))

        stored = current_domain.repository_for(Customer).get(customer)
        assert stored.purchased_products == [str(product.id)]
        assert stored.provider_customer_id == "ctm_001"

    def test_cart_purchase_clears_cart(self, gateway, mailbox, customer, make_product):
        basic = make_product()
        spice = make_product(name="Spice Blends", provider_price_id="pri_spice", unit_price=12.5)
        for product in (basic, spice):
            current_domain.process(AddCartItem(user_id=customer, product_id=product.id, quantity=1), asynchronous=False)

        result = reconcile(_paid_cart_transaction(gateway))

        assert result["status"] == RECONCILED
        assert get_cart(customer) == []
        order = current_domain.repository_for(Order).get(result["order_id"])
        assert order.origin == "cart"
        assert len(order.lines) == 2
        assert order.purchase_price == 2999 + 1250

    def test_cart_purchase_does_not_record_purchased_products(self, gateway, mailbox, customer, make_product):
        product = make_product()
        current_domain.process(AddCartItem(user_id=customer, product_id=product.id, quantity=1), asynchronous=False)
        reconcile(_paid_cart_transaction(gateway))
        assert current_domain.repository_for(Customer).get(customer).purchased_products == []

    def test_incomplete_transaction_rejected(self, gateway, customer, make_product):
        product = make_product()
        transaction = ProviderTransaction(
            transaction_id="txn_ready",
            status="ready",
            custom_data={"userId": customer, "cart": [{"productId": str(product.id), "quantity": 1}]},
        )
        with pytest.raises(InvalidTransaction):
            reconcile(transaction)
        assert _stock(product.id) == 3

    def test_unknown_customer_rejected(self, gateway, make_product):
        product = make_product()
        transaction = ProviderTransaction(
            transaction_id="txn_stranger",
            status="completed",
            custom_data={"userId": "user-404", "cart": [{"productId": str(product.id), "quantity": 1}]},
        )
        with pytest.raises(InvalidTransaction):
            reconcile(transaction)
        assert order_for_transaction("txn_stranger") is None

    def test_unknown_product_rejected(self, gateway, customer):
        transaction = ProviderTransaction(
            transaction_id="txn_ghost",
            status="completed",
            custom_data={"userId": customer, "cart": [{"productId": "prod-404", "quantity": 1}]},
        )
        with pytest.raises(InvalidTransaction):
            reconcile(transaction)

    def test_totals_fall_back_to_catalogue_price(self, gateway, mailbox, customer, make_product):
        product = make_product(unit_price=10.0)
        transaction = ProviderTransaction(
            transaction_id="txn_no_totals",
            status="paid",
            custom_data={"userId": customer, "cart": [{"productId": str(product.id), "quantity": 3}]},
        )
        result = reconcile(transaction)
        order = current_domain.repository_for(Order).get(result["order_id"])
        assert order.purchase_price == 3000
        assert order.display_price == "$30.00"


class TestIdempotency:
    def test_second_reconcile_is_a_no_op(self, gateway, mailbox, customer, make_product):
        product = make_product(stock=3)
        transaction = _paid_product_transaction(gateway, product.id)

        first = reconcile(transaction, source="webhook")
        second = reconcile(transaction, source="client")

        assert second == {"status": ALREADY_RECONCILED, "order_id": first["order_id"]}
        assert len(list_mine(customer)) == 1
        assert _stock(product.id) == 2

    def test_no_second_round_of_emails(self, gateway, mailbox, customer, make_product):
        transaction = _paid_product_transaction(gateway, make_product().id)
        reconcile(transaction)
        sent = len(mailbox.sent_emails)
        reconcile(transaction)
        assert len(mailbox.sent_emails) == sent

    def test_losing_writer_is_rolled_back(self, gateway, mailbox, customer, make_product, monkeypatch):
        """The racing writer passed the first check but finds the order at insert time."""
        product = make_product(stock=3)
        transaction = _paid_product_transaction(gateway, product.id)
        first = reconcile(transaction)

        real_lookup = reconciliation.order_for_transaction
        calls = {"count": 0}

        def stale_first_read(transaction_id):
            calls["count"] += 1
            return None if calls["count"] == 1 else real_lookup(transaction_id)

        monkeypatch.setattr(reconciliation, "order_for_transaction", stale_first_read)

        result = reconcile(transaction)

        assert result == {"status": ALREADY_RECONCILED, "order_id": first["order_id"]}
        assert _stock(product.id) == 2
        assert len(list_mine(customer)) == 1

    def test_version_conflict_is_retried(self, gateway, mailbox, customer, make_product, monkeypatch):
        product = make_product(stock=3)
        transaction = _paid_product_transaction(gateway, product.id)

        real_process = commerce.process
        attempts = {"count": 0}

        def flaky_process(command, asynchronous=True):
            attempts["count"] += 1
            if attempts["count"] == 1:
                raise ExpectedVersionError("stale")
            return real_process(command, asynchronous=asynchronous)

        monkeypatch.setattr(commerce, "process", flaky_process)
        result = reconcile(transaction)

        assert result["status"] == RECONCILED
        assert attempts["count"] == 2
        assert _stock(product.id) == 2

    def test_simultaneous_triggers_create_one_order(
        self, gateway, mailbox, customer, make_product, race, rendezvous, monkeypatch
    ):
        product = make_product(stock=3)
        transaction = _paid_product_transaction(gateway, product.id)
        monkeypatch.setattr(reconciliation, "find_customer", rendezvous(reconciliation.find_customer))

        outcomes = race(reconcile, transaction)

        assert not [outcome for outcome in outcomes if isinstance(outcome, Exception)]
        assert sorted(outcome["status"] for outcome in outcomes) == [ALREADY_RECONCILED, RECONCILED]
        assert outcomes[0]["order_id"] == outcomes[1]["order_id"]
        assert len(list_mine(customer)) == 1
        assert _stock(product.id) == 2


class TestOversell:
    def test_tolerated_oversell_flags_order(self, gateway, mailbox, customer, make_customer, make_product):
        make_customer("user-002", "bo@example.com", "Bo Cook")
        product = make_product(stock=1)
        first = _paid_product_transaction(gateway, product.id, user_id=customer)
        second = _paid_product_transaction(gateway, product.id, user_id="user-002")

        reconcile(first)
        result = reconcile(second)

        assert result["status"] == RECONCILED
        assert _stock(product.id) == 0
        order = current_domain.repository_for(Order).get(result["order_id"])
        assert order.needs_review is True

    def test_refused_oversell_creates_no_order(self, settings, gateway, mailbox, customer, make_customer, make_product):
        set_reconciler(Reconciler.from_settings(settings.with_overrides(oversell_policy=OversellPolicy.REFUSE)))
        make_customer("user-002", "bo@example.com", "Bo Cook")
        product = make_product(stock=1)
        first = _paid_product_transaction(gateway, product.id, user_id=customer)
        second = _paid_product_transaction(gateway, product.id, user_id="user-002")

        reconcile(first)
        result = reconcile(second)

        assert result == {"status": REFUSED, "order_id": None}
        assert order_for_transaction(second.transaction_id) is None
        assert _stock(product.id) == 0

    def test_policy_is_the_one_the_reconciler_was_built_with(
        self, gateway, mailbox, customer, make_customer, make_product
    ):
        make_customer("user-002", "bo@example.com", "Bo Cook")
        make_customer("user-003", "cy@example.com", "Cy Grill")
        product = make_product(stock=1)
        first, second, third = (
            _paid_product_transaction(gateway, product.id, user_id=user_id) for user_id in (customer, "user-002", "user-003")
        )
        refusing = Reconciler(oversell_policy=OversellPolicy.REFUSE)

        reconcile(first)
        refused = refusing.reconcile(second)
        tolerated = reconcile(third)

        assert refused == {"status": REFUSED, "order_id": None}
        assert tolerated["status"] == RECONCILED
        assert current_domain.repository_for(Order).get(tolerated["order_id"]).needs_review is True


class TestNotifications:
    def test_customer_and_admin_emailed(self, settings, gateway, mailbox, customer, make_product):
        reconcile(_paid_product_transaction(gateway, make_product().id))

        assert [email["to"] for email in mailbox.sent_emails] == ["ana@example.com", settings.admin_email]
        assert "Sourdough Masterclass" in mailbox.sent_emails[0]["body"]

    def test_recipients_come_from_the_notifier(self, gateway, mailbox, customer, make_product):
        reconciler = Reconciler(notifier=OrderNotifier(admin_email="owner@forkandfire.test"))

        reconciler.reconcile(_paid_product_transaction(gateway, make_product().id))

        assert [email["to"] for email in mailbox.sent_emails] == ["ana@example.com", "owner@forkandfire.test"]

    def test_no_admin_copy_without_admin_address(self, gateway, mailbox, customer, make_product):
        Reconciler(notifier=OrderNotifier()).reconcile(_paid_product_transaction(gateway, make_product().id))

        assert [email["to"] for email in mailbox.sent_emails] == ["ana@example.com"]

    def test_email_failure_does_not_undo_the_order(self, gateway, mailbox, customer, make_product):
        mailbox.configure(should_succeed=False, failure_reason="SMTP down")
        result = reconcile(_paid_product_transaction(gateway, make_product().id))

        assert result["status"] == RECONCILED
        assert current_domain.repository_for(Order).get(result["order_id"]) is not None
        assert mailbox.sent_emails == []
