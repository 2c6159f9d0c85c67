"""Provider and email calls block, so they must run off the event loop."""

import asyncio
import inspect

import pytest

from commerce.api import routes
from commerce.gateway.fake_adapter import TEST_SIGNATURE


def _on_event_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


@pytest.fixture()
def loop_checks(monkeypatch, gateway):
    """Record, for every gateway call, whether it ran on the event loop."""
    seen = []
    for name in ("create_transaction", "get_transaction", "preview_price", "get_price"):
        original = getattr(gateway, name)

        def recording(*args, _original=original, **kwargs):
            seen.append(_on_event_loop())
            return _original(*args, **kwargs)

        monkeypatch.setattr(gateway, name, recording)
    return seen


@pytest.mark.parametrize(
    "endpoint",
    [
        routes.checkout_product,
        routes.checkout_cart,
        routes.report_checkout_completed,
        routes.preview_localized_price,
        routes.read_live_price,
    ],
)
def test_provider_routes_are_plain_functions(endpoint):
    assert not inspect.iscoroutinefunction(endpoint)


class TestProviderCallsRunInThreadpool:
    def test_checkout_and_completion(self, client, loop_checks, make_product, ana):
        product = make_product()

        transaction_id = client.post(f"/checkout/product/{product.id}", json={"quantity": 1}, headers=ana).json()[
            "transactionId"
        ]
        client.post("/checkout/complete", json={"transactionId": transaction_id}, headers=ana)

        assert loop_checks == [False, False]

    def test_price_lookups(self, client, loop_checks):
        client.post("/checkout/preview-price", json={"priceId": "pri_basic", "country": "US"})
        client.get("/checkout/price/pri_basic")

        assert loop_checks == [False, False]

    def test_webhook_handling(self, client, monkeypatch):
        seen = []

        def handle_webhook(payload, signature):
            seen.append(_on_event_loop())
            return {"status": "ignored", "order_id": None}

        monkeypatch.setattr(routes, "handle_webhook", handle_webhook)

        response = client.post("/webhook/payment", content=b"{}", headers={"Paddle-Signature": TEST_SIGNATURE})

        assert response.status_code == 200
        assert seen == [False]
