"""Storefront load test scenario: cart churn and price previews.

Read-heavy traffic that runs alongside checkouts: localized price previews
for visitors from around the world, and carts that are filled and emptied
without ever being paid for.
"""

import random

from locust import HttpUser, between, tag, task

from loadtests.data_generators import COUNTRIES, price_ids, product_ids, shopper_headers
from loadtests.helpers.response import extract_error_detail


class StorefrontUser(HttpUser):
    wait_time = between(0.5, 2)

    def on_start(self):
        self.headers = shopper_headers()
        self.products = product_ids()
        self.prices = price_ids()

    @tag("pricing")
    @task(3)
    def preview_price(self):
        if not self.prices:
            return
        with self.client.post(
            "/checkout/preview-price",
            json={"priceId": random.choice(self.prices), "country": random.choice(COUNTRIES)},
            catch_response=True,
            name="POST /checkout/preview-price",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Preview failed: {resp.status_code} — {extract_error_detail(resp)}")

    @tag("cart")
    @task(2)
    def fill_and_empty_cart(self):
        if not self.products:
            return
        product_id = random.choice(self.products)
        with self.client.post(
            "/cart/items",
            json={"productId": product_id, "quantity": 1},
            headers=self.headers,
            catch_response=True,
            name="POST /cart/items",
        ) as resp:
            if resp.status_code == 400:
                # Sold out or already at the stock limit
                resp.success()
                return
            if resp.status_code != 201:
                resp.failure(f"Add to cart failed: {resp.status_code} — {extract_error_detail(resp)}")
                return

        self.client.get("/cart", headers=self.headers, name="GET /cart")
        self.client.delete(f"/cart/items/{product_id}", headers=self.headers, name="DELETE /cart/items/{id}")

    @tag("orders")
    @task(1)
    def my_orders(self):
        self.client.get("/orders/mine", headers=self.headers, name="GET /orders/mine")
