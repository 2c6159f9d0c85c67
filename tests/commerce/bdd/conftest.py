"""Shared BDD fixtures and step definitions for checkout and reconciliation."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when

from commerce.checkout.completion import complete_checkout, handle_webhook
from commerce.checkout.initiation import CheckoutProduct
from commerce.errors import CommerceError
from commerce.gateway.fake_adapter import TEST_SIGNATURE
from commerce.order.access import list_mine
from commerce.product.product import Product


@pytest.fixture()
def error():
    """Container for a captured domain error."""
    return {"exc": None}


@pytest.fixture()
def shop(gateway, mailbox):
    """Checkouts started in the scenario, keyed by shopper, and reconciliation results in order."""
    return {"transactions": {}, "results": []}


def start_checkout(shop, product, user_id, quantity):
    result = current_domain.process(
        CheckoutProduct(
            user_id=user_id,
            customer_email=f"{user_id}@example.com",
            country="US",
            product_id=product.id,
            quantity=quantity,
        ),
        asynchronous=False,
    )
    shop["transactions"][user_id] = result["transaction_id"]
    return result["transaction_id"]


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a product with {stock:d} units in stock"), target_fixture="product")
def product_in_stock(make_product, stock):
    return make_product(stock=stock)


@given(parsers.cfparse('a signed-in shopper "{user_id}"'))
def signed_in_shopper(make_customer, user_id):
    make_customer(user_id, f"{user_id}@example.com", user_id.title())


@given(parsers.cfparse('"{user_id}" has started checkout for quantity {quantity:d}'))
def checkout_started(shop, product, user_id, quantity):
    start_checkout(shop, product, user_id, quantity)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('"{user_id}" starts checkout for quantity {quantity:d}'))
def checkout_starts(shop, product, error, user_id, quantity):
    try:
        start_checkout(shop, product, user_id, quantity)
    except CommerceError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the provider notifies that "{user_id}" paid'))
def provider_notifies_paid(shop, gateway, user_id):
    transaction_id = shop["transactions"][user_id]
    if gateway.transactions[transaction_id]["status"] != "completed":
        gateway.complete_transaction(transaction_id)
    shop["results"].append(handle_webhook(gateway.webhook_payload(transaction_id), TEST_SIGNATURE))


@when(parsers.cfparse('the payment of "{user_id}" clears at the provider'))
def payment_clears(shop, gateway, user_id):
    gateway.complete_transaction(shop["transactions"][user_id])


@when(parsers.cfparse('the notification for "{user_id}" is delivered again'))
def notification_redelivered(shop, gateway, user_id):
    transaction_id = shop["transactions"][user_id]
    shop["results"].append(handle_webhook(gateway.webhook_payload(transaction_id), TEST_SIGNATURE))


@when(parsers.cfparse('the browser of "{user_id}" reports checkout complete'))
def client_reports_complete(shop, user_id):
    shop["results"].append(complete_checkout(user_id, shop["transactions"][user_id]))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the product has {remaining:d} units left"))
def product_units_left(product, remaining):
    assert current_domain.repository_for(Product).get(product.id).remaining_stock == remaining


@then(parsers.cfparse('"{user_id}" has {count:d} orders'))
def shopper_order_count(user_id, count):
    assert len(list_mine(user_id)) == count


@then(parsers.cfparse('the reconciliation results are "{statuses}"'))
def reconciliation_results(shop, statuses):
    assert [result["status"] for result in shop["results"]] == [s.strip() for s in statuses.split(",")]


@then(parsers.cfparse('the request fails with "{code}"'))
def request_fails(error, code):
    assert error["exc"] is not None, f"Expected {code} but nothing was raised"
    assert error["exc"].code == code
