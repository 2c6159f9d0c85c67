import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from commerce.api import ROUTERS, register_error_handlers
from commerce.domain import commerce


@pytest.fixture()
def client(settings, gateway, mailbox):
    app = FastAPI()

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        with commerce.domain_context():
            return await call_next(request)

    for router in ROUTERS:
        app.include_router(router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def ana():
    """Headers the auth gateway forwards for a signed-in shopper."""
    return {"X-User-Id": "user-001", "X-User-Email": "ana@example.com", "X-User-Name": "Ana Baker", "X-User-Country": "US"}


@pytest.fixture()
def bo():
    return {"X-User-Id": "user-002", "X-User-Email": "bo@example.com", "X-User-Name": "Bo Cook", "X-User-Country": "GB"}


@pytest.fixture()
def admin():
    return {"X-User-Id": "admin-001", "X-User-Email": "chef@example.com", "X-User-Name": "Head Chef", "X-User-Role": "admin"}


@pytest.fixture()
def pay(client):
    """Complete a fake transaction and deliver its webhook."""

    def _pay(transaction_id):
        signed = client.post(f"/checkout/gateway/transactions/{transaction_id}/pay").json()
        return client.post(
            "/webhook/payment",
            content=signed["payload"],
            headers={"Paddle-Signature": signed["signature"], "Content-Type": "application/json"},
        )

    return _pay
