"""Paddle Billing gateway adapter.

Talks to the Paddle REST API with ``requests``. Every outbound call is
bounded by the configured timeout; timeouts, HTTP errors and unreadable
responses surface as PaymentProviderError carrying Paddle's error detail
when there is one.

Webhook signatures (the ``Paddle-Signature`` header) are checked with the
official SDK's ``Verifier``. ``webhook_secret`` may hold several
comma-separated secrets while a secret is being rotated.
"""

import json
from dataclasses import dataclass, field

import requests
import structlog
from paddle_billing.Notifications import Secret, Verifier
from requests.structures import CaseInsensitiveDict

from commerce.errors import PaymentProviderError
from commerce.gateway.port import (
    CheckoutSession,
    LineItem,
    PaymentGateway,
    PricePreview,
    ProviderTransaction,
    WebhookEvent,
)
from commerce.pricing.money import format_money

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "Paddle-Signature"


@dataclass(frozen=True)
class SignedNotification:
    """The parts of an incoming notification request the SDK verifier reads."""

    body: bytes
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)

    @property
    def data(self) -> bytes:
        return self.body

    @property
    def content(self) -> bytes:
        return self.body


def _as_int(value):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def transaction_from_payload(data: dict) -> ProviderTransaction:
    """Build a ProviderTransaction from a Paddle transaction entity."""
    if not isinstance(data, dict) or not data.get("id"):
        raise PaymentProviderError("Transaction payload has no id", retryable=False)

    details = data.get("details") or {}
    totals = details.get("totals") or {}
    currency = totals.get("currency_code") or data.get("currency_code")
    grand_total = _as_int(totals.get("grand_total") or totals.get("total"))

    display_total = (details.get("formatted_totals") or {}).get("grand_total")
    if display_total is None and grand_total is not None and currency:
        display_total = format_money(grand_total, currency)

    return ProviderTransaction(
        transaction_id=data["id"],
        status=data.get("status") or "unknown",
        custom_data=data.get("custom_data") or {},
        customer_id=data.get("customer_id"),
        currency=currency,
        grand_total=grand_total,
        display_total=display_total,
    )


def webhook_event_from_payload(payload: bytes) -> WebhookEvent:
    """Decode a raw notification body.

    Raises PaymentProviderError when the body is not a JSON object.
    """
    try:
        body = json.loads(payload)
    except ValueError:
        raise PaymentProviderError("Webhook payload is not JSON", retryable=False) from None
    if not isinstance(body, dict):
        raise PaymentProviderError("Webhook payload is not a JSON object", retryable=False)

    event_type = body.get("event_type")
    if not isinstance(event_type, str):
        event_type = ""
    data = body.get("data")
    transaction = None
    if event_type.startswith("transaction.") and isinstance(data, dict):
        transaction = transaction_from_payload(data)

    return WebhookEvent(event_id=body.get("event_id"), event_type=event_type, transaction=transaction)


class PaddleGateway(PaymentGateway):
    """Production Paddle gateway adapter."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        api_url: str,
        checkout_url: str,
        timeout: float = 15.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.checkout_url = checkout_url.rstrip("/")
        self.webhook_secrets = [
            Secret(secret.strip()) for secret in (webhook_secret or "").split(",") if secret.strip()
        ]
        self.verifier = Verifier()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key.strip()}",
                "Content-Type": "application/json",
            }
        )

    # -------------------------------------------------------------------
    # HTTP plumbing
    # -------------------------------------------------------------------
    def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        url = f"{self.api_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.Timeout:
            logger.warning("Payment provider timed out", method=method, path=path, timeout=self.timeout)
            raise PaymentProviderError("Payment provider timed out") from None
        except requests.RequestException as exc:
            logger.warning("Payment provider unreachable", method=method, path=path, error=str(exc))
            raise PaymentProviderError("Payment provider unreachable", detail=str(exc)) from None

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            detail = ((body or {}).get("error") or {}).get("detail") if isinstance(body, dict) else None
            logger.warning(
                "Payment provider rejected request",
                method=method,
                path=path,
                status_code=response.status_code,
                detail=detail,
            )
            raise PaymentProviderError(
                "Payment provider rejected the request",
                detail=detail,
                retryable=response.status_code >= 500 or response.status_code == 429,
            )

        if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
            raise PaymentProviderError("Malformed response from payment provider")
        return body["data"]

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
        payload = {
            "items": [{"price_id": item.price_id, "quantity": item.quantity} for item in items],
            "custom_data": custom_data,
        }
        if customer_id:
            payload["customer_id"] = customer_id
        else:
            payload["customer"] = {"email": customer_email}

        data = self._request("POST", "/transactions", payload)
        transaction_id = data.get("id")
        if not transaction_id:
            raise PaymentProviderError("Payment provider created a transaction but did not return an id")

        checkout_url = (data.get("checkout") or {}).get("url") or f"{self.checkout_url}/{transaction_id}"
        return CheckoutSession(transaction_id=transaction_id, checkout_url=checkout_url)

    def get_transaction(self, transaction_id: str) -> ProviderTransaction:
        return transaction_from_payload(self._request("GET", f"/transactions/{transaction_id}"))

    # -------------------------------------------------------------------
    # Prices
    # -------------------------------------------------------------------
    def preview_price(self, price_id: str, country: str) -> PricePreview:
        payload = {
            "items": [{"price_id": price_id, "quantity": 1}],
            "address": {"country_code": country},
        }
        data = self._request("POST", "/pricing-preview", payload)
        details = data.get("details") or {}
        line_items = details.get("line_items") or []
        if not line_items:
            raise PaymentProviderError("Pricing preview returned no line items")

        line = line_items[0]
        formatted = (line.get("formatted_totals") or {}).get("total")
        amount = _as_int((line.get("totals") or {}).get("total"))
        currency = data.get("currency_code")
        if not formatted or amount is None or not currency:
            raise PaymentProviderError("Formatted price totals not found in pricing preview")

        return PricePreview(amount=amount, currency=currency, display_price=formatted)

    def get_price(self, price_id: str) -> PricePreview:
        data = self._request("GET", f"/prices/{price_id}")
        if data.get("status") not in (None, "active"):
            raise PaymentProviderError("Price is not active", retryable=False)

        unit_price = data.get("unit_price") or {}
        amount = _as_int(unit_price.get("amount"))
        currency = unit_price.get("currency_code")
        if amount is None or not currency:
            raise PaymentProviderError("Price has no unit amount")

        return PricePreview(amount=amount, currency=currency, display_price=format_money(amount, currency))

    # -------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        if not signature or not self.webhook_secrets:
            return False

        notification = SignedNotification(body=payload, headers=CaseInsensitiveDict({SIGNATURE_HEADER: signature}))
        try:
            return bool(self.verifier.verify(notification, self.webhook_secrets))
        except Exception as exc:  # noqa: BLE001
            # A header the verifier cannot read is an unverified notification.
            logger.warning("Webhook signature could not be checked", error=str(exc))
            return False

    def parse_webhook(self, payload: bytes) -> WebhookEvent:
        return webhook_event_from_payload(payload)
