"""Checkout and reconciliation load test scenarios.

Each journey pays its transaction through the fake provider's pay endpoint
and delivers the resulting webhook, so the reconciliation path runs exactly
as it does in production. The redelivery journey races duplicate webhooks
and the client-side completion against each other.
"""

import json
import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import admin_headers, product_ids, quantity, shopper_headers
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import ShopperState

RESTOCK_QUANTITY = 50


class CheckoutJourney(SequentialTaskSet):
    """Checkout -> Pay -> Webhook -> Poll -> Open confirmation once.

    The happy path. A 400 InsufficientStock at checkout restocks the product
    and ends the journey.
    """

    def on_start(self):
        self.state = ShopperState(headers=shopper_headers())
        ids = product_ids()
        if not ids:
            raise RuntimeError("LOADTEST_PRODUCT_IDS is not set")
        self.state.product_id = random.choice(ids)

    @task
    def start_checkout(self):
        with self.client.post(
            f"/checkout/product/{self.state.product_id}",
            json={"quantity": quantity()},
            headers=self.state.headers,
            catch_response=True,
            name="POST /checkout/product/{id}",
        ) as resp:
            if resp.status_code == 200:
                self.state.transaction_id = resp.json()["transactionId"]
            elif resp.status_code == 400 and resp.json().get("code") in ("InsufficientStock", "OutOfStock"):
                resp.success()
                self._restock()
                self.interrupt()
            else:
                resp.failure(f"Checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def pay(self):
        with self.client.post(
            f"/checkout/gateway/transactions/{self.state.transaction_id}/pay",
            catch_response=True,
            name="POST /checkout/gateway/transactions/{id}/pay",
        ) as resp:
            if resp.status_code == 200:
                self.state.webhook_payload = resp.json()["payload"]
                self.state.webhook_signature = resp.json()["signature"]
            else:
                resp.failure(f"Pay failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def deliver_webhook(self):
        with self.client.post(
            "/webhook/payment",
            data=self.state.webhook_payload,
            headers={"Paddle-Signature": self.state.webhook_signature, "Content-Type": "application/json"},
            catch_response=True,
            name="POST /webhook/payment",
        ) as resp:
            if resp.status_code == 200 and resp.json()["status"] in ("reconciled", "already_reconciled"):
                self.state.order_id = resp.json()["orderId"]
            else:
                resp.failure(f"Webhook failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def poll_order(self):
        with self.client.get(
            f"/orders/by-transaction/{self.state.transaction_id}",
            headers=self.state.headers,
            catch_response=True,
            name="GET /orders/by-transaction/{id}",
        ) as resp:
            if resp.status_code == 200:
                self.state.access_token = resp.json()["accessToken"]
            else:
                resp.failure(f"Poll failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def open_confirmation(self):
        with self.client.post(
            "/orders/verify-token",
            json={"token": self.state.access_token},
            headers=self.state.headers,
            catch_response=True,
            name="POST /orders/verify-token",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Confirmation failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def reopen_confirmation(self):
        with self.client.post(
            "/orders/verify-token",
            json={"token": self.state.access_token},
            headers=self.state.headers,
            catch_response=True,
            name="POST /orders/verify-token (reused)",
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Reused token was accepted: {resp.status_code}")

    @task
    def done(self):
        self.interrupt()

    def _restock(self):
        self.client.post(
            f"/products/{self.state.product_id}/restock",
            json={"quantity": RESTOCK_QUANTITY},
            headers=admin_headers(),
            name="POST /products/{id}/restock",
        )


class RedeliveryJourney(SequentialTaskSet):
    """Checkout -> Pay -> Client completion + webhook delivered three times.

    Every delivery after the first must answer ``already_reconciled`` with
    the same order id.
    """

    def on_start(self):
        self.state = ShopperState(headers=shopper_headers())
        ids = product_ids()
        if not ids:
            raise RuntimeError("LOADTEST_PRODUCT_IDS is not set")
        self.state.product_id = random.choice(ids)

    @task
    def start_checkout(self):
        with self.client.post(
            f"/checkout/product/{self.state.product_id}",
            json={"quantity": 1},
            headers=self.state.headers,
            catch_response=True,
            name="POST /checkout/product/{id}",
        ) as resp:
            if resp.status_code == 200:
                self.state.transaction_id = resp.json()["transactionId"]
            else:
                if resp.status_code == 400:
                    resp.success()
                else:
                    resp.failure(f"Checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def pay(self):
        with self.client.post(
            f"/checkout/gateway/transactions/{self.state.transaction_id}/pay",
            catch_response=True,
            name="POST /checkout/gateway/transactions/{id}/pay",
        ) as resp:
            if resp.status_code == 200:
                self.state.webhook_payload = resp.json()["payload"]
                self.state.webhook_signature = resp.json()["signature"]
            else:
                resp.failure(f"Pay failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def complete_from_client(self):
        with self.client.post(
            "/checkout/complete",
            json={"transactionId": self.state.transaction_id},
            headers=self.state.headers,
            catch_response=True,
            name="POST /checkout/complete",
        ) as resp:
            if resp.status_code == 200:
                self.state.order_id = resp.json()["orderId"]
            else:
                resp.failure(f"Completion failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def redeliver_webhook(self):
        for attempt in range(3):
            with self.client.post(
                "/webhook/payment",
                data=self.state.webhook_payload,
                headers={"Paddle-Signature": self.state.webhook_signature, "Content-Type": "application/json"},
                catch_response=True,
                name="POST /webhook/payment (redelivery)",
            ) as resp:
                body = resp.json() if resp.status_code == 200 else {}
                if body.get("status") != "already_reconciled" or body.get("orderId") != self.state.order_id:
                    resp.failure(f"Redelivery {attempt + 1} was not a no-op: {json.dumps(body)[:200]}")

    @task
    def done(self):
        self.interrupt()


class CheckoutUser(HttpUser):
    """Shoppers buying single products through the full reconciliation path."""

    tasks = [CheckoutJourney]
    wait_time = between(1, 3)


class WebhookRedeliveryUser(HttpUser):
    """Duplicate notifications racing the client-side completion."""

    tasks = [RedeliveryJourney]
    wait_time = between(0.5, 1.5)
