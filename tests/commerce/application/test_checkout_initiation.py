"""Tests for the Transaction Initiator."""

import pytest
from protean import current_domain

from commerce.cart.items import AddCartItem
from commerce.cart.view import get_cart
from commerce.checkout.initiation import CheckoutCart, CheckoutProduct
from commerce.customer.customer import Customer
from commerce.errors import EmptyCart, InsufficientStock, NotConfigured, PaymentProviderError
from commerce.order.access import list_mine
from commerce.product.product import Product


def _checkout_product(product_id, quantity=1, country="US", user_id="user-001"):
    return current_domain.process(
        CheckoutProduct(
            user_id=user_id,
            customer_email="ana@example.com",
            country=country,
            product_id=product_id,
            quantity=quantity,
        ),
        asynchronous=False,
    )


def _checkout_cart(country="US", user_id="user-001"):
    return current_domain.process(
        CheckoutCart(user_id=user_id, customer_email="ana@example.com", country=country),
        asynchronous=False,
    )


class TestSingleProduct:
    def test_returns_transaction_handle(self, gateway, customer, make_product):
        product = make_product()
        result = _checkout_product(product.id, quantity=2)
        assert result["transaction_id"].startswith("txn_fake_")
        assert result["checkout_url"] == f"http://shop.test/checkout/{result['transaction_id']}"

    def test_custom_data_carries_the_purchase(self, gateway, customer, make_product):
        product = make_product()
        _checkout_product(product.id, quantity=2)
        call = gateway.calls[-1]
        assert call["items"] == [("pri_basic", 2)]
        assert call["customer_email"] == "ana@example.com"
        assert call["custom_data"] == {
            "userId": "user-001",
            "origin": "product",
            "cart": [{"productId": str(product.id), "quantity": 2, "priceReference": "pri_basic"}],
        }

    def test_localized_price_used_for_buyer_country(self, gateway, customer, make_product):
        product = make_product(localized_prices={"GB": "pri_basic_gb"})
        _checkout_product(product.id, country="GB")
        assert gateway.calls[-1]["items"] == [("pri_basic_gb", 1)]

    def test_more_than_stock_names_product_and_available(self, gateway, customer, make_product):
        product = make_product(stock=1)
        with pytest.raises(InsufficientStock) as exc:
            _checkout_product(product.id, quantity=2)
        assert exc.value.product_id == str(product.id)
        assert exc.value.available == 1
        assert gateway.calls == []

    def test_product_without_price_not_configured(self, gateway, customer, make_product):
        product = make_product(provider_price_id=None)
        with pytest.raises(NotConfigured):
            _checkout_product(product.id)
        assert gateway.calls == []

    def test_returning_customer_checks_out_with_provider_customer_id(self, gateway, customer, make_product):
        repo = current_domain.repository_for(Customer)
        stored = repo.get(customer)
        stored.link_provider_customer("ctm_returning")
        repo.add(stored)

        _checkout_product(make_product().id)
        assert gateway.calls[-1]["customer_id"] == "ctm_returning"


class TestCart:
    def test_cart_checkout_sends_every_line(self, gateway, customer, make_product):
        basic = make_product()
        spice = make_product(name="Spice Blends", provider_price_id="pri_spice", unit_price=12.5)
        for product in (basic, spice):
            current_domain.process(AddCartItem(user_id="user-001", product_id=product.id, quantity=1), asynchronous=False)

        _checkout_cart()
        call = gateway.calls[-1]
        assert sorted(call["items"]) == [("pri_basic", 1), ("pri_spice", 1)]
        assert call["custom_data"]["origin"] == "cart"
        assert len(call["custom_data"]["cart"]) == 2

    def test_empty_cart_rejected(self, gateway, customer):
        with pytest.raises(EmptyCart):
            _checkout_cart()

    def test_stock_rechecked_at_checkout(self, gateway, customer, make_product):
        product = make_product(stock=2)
        current_domain.process(AddCartItem(user_id="user-001", product_id=product.id, quantity=2), asynchronous=False)

        repo = current_domain.repository_for(Product)
        stored = repo.get(product.id)
        stored.commit_sale(1)
        repo.add(stored)

        with pytest.raises(InsufficientStock) as exc:
            _checkout_cart()
        assert exc.value.available == 1


class TestNoPrematureMutation:
    def test_initiation_changes_nothing_locally(self, gateway, customer, make_product):
        product = make_product(stock=3)
        current_domain.process(AddCartItem(user_id="user-001", product_id=product.id, quantity=2), asynchronous=False)

        _checkout_cart()
        _checkout_product(product.id, quantity=1)

        assert current_domain.repository_for(Product).get(product.id).remaining_stock == 3
        assert get_cart("user-001")[0]["quantity"] == 2
        assert list_mine("user-001") == []

    def test_provider_failure_leaves_state_unchanged(self, gateway, customer, make_product):
        product = make_product(stock=3)
        gateway.configure(should_succeed=False, failure_reason="Provider down")

        with pytest.raises(PaymentProviderError) as exc:
            _checkout_product(product.id)
        assert str(exc.value) == "Provider down"
        assert exc.value.retryable is True
        assert current_domain.repository_for(Product).get(product.id).remaining_stock == 3
        assert list_mine("user-001") == []
