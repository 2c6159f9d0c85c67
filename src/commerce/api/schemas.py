"""Pydantic request/response schemas for the Commerce API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. JSON bodies use camelCase; Python code uses
snake_case field names.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddCartItemRequest(CamelModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)
    price_reference: str | None = None

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"productId": "prod-001", "quantity": 2, "priceReference": "pri_01h"}]},
    )


class UpdateCartItemRequest(CamelModel):
    quantity: int = Field(ge=1)


class CartLineResponse(CamelModel):
    product_id: str
    quantity: int
    price_reference: str | None = None
    name: str | None = None
    image_url: str | None = None
    unit_price: float | None = None
    currency: str | None = None
    remaining_stock: int = 0


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutProductRequest(CamelModel):
    quantity: int = Field(ge=1, default=1)


class CheckoutResponse(CamelModel):
    transaction_id: str
    checkout_url: str


class CompleteCheckoutRequest(CamelModel):
    transaction_id: str = Field(min_length=1)


class ReconciliationResponse(CamelModel):
    status: str
    order_id: str | None = None


class PreviewPriceRequest(CamelModel):
    price_id: str = Field(min_length=1)
    country: str | None = Field(default=None, max_length=2)


class PricePreviewResponse(CamelModel):
    price_id: str
    country: str
    amount: int
    currency: str
    display_price: str
    localized: bool


class LivePriceResponse(CamelModel):
    price_id: str
    amount: int
    currency: str


class ConfigureGatewayRequest(CamelModel):
    should_succeed: bool = True
    failure_reason: str = "Payment provider unavailable"


class GatewayConfigResponse(CamelModel):
    gateway: str
    should_succeed: bool
    failure_reason: str


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------
class WebhookResponse(CamelModel):
    status: str
    order_id: str | None = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineResponse(CamelModel):
    product_id: str
    quantity: int
    price_reference: str | None = None
    name: str | None = None
    image_url: str | None = None


class CustomerSummary(CamelModel):
    id: str
    name: str | None = None
    email: str | None = None


class OrderResponse(CamelModel):
    id: str
    user_id: str
    provider_transaction_id: str
    origin: str
    status: str
    currency: str | None = None
    display_price: str | None = None
    purchase_price: int | None = None
    purchased_at: datetime | None = None
    confirmation_viewed: bool = False
    needs_review: bool = False
    access_token: str | None = None
    lines: list[OrderLineResponse] = []
    customer: CustomerSummary | None = None


class OrderListResponse(CamelModel):
    orders: list[OrderResponse]
    total: int
    limit: int
    offset: int
    sort: Literal["asc", "desc"]


class VerifyTokenRequest(CamelModel):
    token: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
class RestockRequest(CamelModel):
    quantity: int = Field(ge=1)


class StockResponse(CamelModel):
    product_id: str
    remaining_stock: int
