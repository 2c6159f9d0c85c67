"""Configurable fake payment gateway for development and testing.

Simulates the payment provider without any external calls. Transactions
live in memory: ``create_transaction`` records a ready transaction and
``complete_transaction`` marks it paid, the way a customer finishing the
hosted checkout would. ``webhook_payload`` builds the notification body the
provider would send for it.

Prices are registered with ``register_price``; unknown price ids fail the
same way the provider rejects them.
"""

import json
from uuid import uuid4

from commerce.errors import PaymentProviderError
from commerce.gateway.port import (
    CheckoutSession,
    LineItem,
    PaymentGateway,
    PricePreview,
    ProviderTransaction,
    WebhookEvent,
)
from commerce.gateway.paddle_adapter import transaction_from_payload, webhook_event_from_payload
from commerce.pricing.money import format_money

TEST_SIGNATURE = "test-signature"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, checkout_url: str = "http://localhost:5173/checkout") -> None:
        self.checkout_url = checkout_url.rstrip("/")
        self.should_succeed: bool = True
        self.failure_reason: str = "Payment provider unavailable"
        self.calls: list[dict] = []
        self.transactions: dict[str, dict] = {}
        # price_id -> (amount in minor units, currency)
        self.prices: dict[str, tuple[int, str]] = {}
        # (price_id, country) -> (amount in minor units, currency)
        self.localized_prices: dict[tuple[str, str], tuple[int, str]] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Payment provider unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def register_price(self, price_id: str, amount: int, currency: str = "USD", country: str | None = None) -> None:
        if country:
            self.localized_prices[(price_id, country.upper())] = (amount, currency)
        else:
            self.prices[price_id] = (amount, currency)

    def _fail_if_configured(self) -> None:
        if not self.should_succeed:
            raise PaymentProviderError(self.failure_reason)

    def _price(self, price_id: str) -> tuple[int, str]:
        if price_id not in self.prices:
            raise PaymentProviderError("Payment provider rejected the request", detail=f"Unknown price {price_id}", retryable=False)
        return self.prices[price_id]

    # -------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------
    def create_transaction(
        self,
        items: list[LineItem],
        customer_email: str,
        custom_data: dict,
        customer_id: str | None = None,
    ) -> CheckoutSession:
        self.calls.append(
            {
                "method": "create_transaction",
                "items": [(item.price_id, item.quantity) for item in items],
                "customer_email": customer_email,
                "custom_data": custom_data,
                "customer_id": customer_id,
            }
        )
        self._fail_if_configured()

        transaction_id = f"txn_fake_{uuid4().hex[:16]}"
        self.transactions[transaction_id] = {
            "id": transaction_id,
            "status": "ready",
            "customer_id": customer_id,
            "custom_data": custom_data,
            "items": [{"price_id": item.price_id, "quantity": item.quantity} for item in items],
            "currency_code": "USD",
        }
        return CheckoutSession(transaction_id=transaction_id, checkout_url=f"{self.checkout_url}/{transaction_id}")

    def complete_transaction(self, transaction_id: str, customer_id: str | None = None, status: str = "completed") -> dict:
        """Mark a transaction paid, as the provider does once the customer pays."""
        data = self.transactions[transaction_id]
        data["status"] = status
        data["customer_id"] = data.get("customer_id") or customer_id or f"ctm_fake_{uuid4().hex[:12]}"

        # Without registered prices the transaction carries no totals, like a
        # notification without details, and the catalogue price is used.
        if any(item["price_id"] not in self.prices for item in data["items"]):
            data.pop("details", None)
            return data

        total = 0
        currency = "USD"
        for item in data["items"]:
            amount, currency = self.prices[item["price_id"]]
            total += amount * item["quantity"]
        data["currency_code"] = currency
        data["details"] = {
            "totals": {"grand_total": str(total), "currency_code": currency},
            "formatted_totals": {"grand_total": format_money(total, currency)},
        }
        return data

    def get_transaction(self, transaction_id: str) -> ProviderTransaction:
        self.calls.append({"method": "get_transaction", "transaction_id": transaction_id})
        self._fail_if_configured()

        if transaction_id not in self.transactions:
            raise PaymentProviderError(
                "Payment provider rejected the request",
                detail=f"Transaction {transaction_id} not found",
                retryable=False,
            )
        return transaction_from_payload(self.transactions[transaction_id])

    def webhook_payload(self, transaction_id: str, event_type: str = "transaction.completed") -> bytes:
        """Raw notification body for a stored transaction."""
        body = {
            "event_id": f"evt_fake_{uuid4().hex[:12]}",
            "event_type": event_type,
            "data": self.transactions[transaction_id],
        }
        return json.dumps(body).encode()

    # -------------------------------------------------------------------
    # Prices
    # -------------------------------------------------------------------
    def preview_price(self, price_id: str, country: str) -> PricePreview:
        self.calls.append({"method": "preview_price", "price_id": price_id, "country": country})
        self._fail_if_configured()

        amount, currency = self.localized_prices.get((price_id, country.upper())) or self._price(price_id)
        return PricePreview(amount=amount, currency=currency, display_price=format_money(amount, currency))

    def get_price(self, price_id: str) -> PricePreview:
        self.calls.append({"method": "get_price", "price_id": price_id})
        self._fail_if_configured()

        amount, currency = self._price(price_id)
        return PricePreview(amount=amount, currency=currency, display_price=format_money(amount, currency))

    # -------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:  # noqa: ARG002
        return signature == TEST_SIGNATURE

    def parse_webhook(self, payload: bytes) -> WebhookEvent:
        return webhook_event_from_payload(payload)
