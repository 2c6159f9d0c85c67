"""FastAPI routes for the Commerce domain — cart, checkout, webhook, orders.

Routes that call the payment provider or send email are plain ``def`` so
they run in the threadpool instead of on the event loop.
"""

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from commerce.api.dependencies import CurrentUser, admin_user, current_user, request_country
from commerce.api.schemas import (
    AddCartItemRequest,
    CartLineResponse,
    CheckoutProductRequest,
    CheckoutResponse,
    CompleteCheckoutRequest,
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    LivePriceResponse,
    OrderListResponse,
    OrderResponse,
    PreviewPriceRequest,
    PricePreviewResponse,
    ReconciliationResponse,
    RestockRequest,
    StockResponse,
    UpdateCartItemRequest,
    VerifyTokenRequest,
    WebhookResponse,
)
from commerce.cart.items import AddCartItem, RemoveCartItem, UpdateCartItem
from commerce.cart.view import get_cart
from commerce.checkout.completion import complete_checkout, handle_webhook
from commerce.checkout.initiation import CheckoutCart, CheckoutProduct
from commerce.config import get_settings
from commerce.errors import NotAuthorized, NotConfigured
from commerce.gateway import get_gateway
from commerce.gateway.fake_adapter import FakeGateway
from commerce.order.access import (
    describe_order,
    list_all,
    list_mine,
    poll_by_transaction_id,
    view_once_by_access_token,
)
from commerce.pricing.localization import live_price, preview_price
from commerce.product.management import RestockProduct

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=list[CartLineResponse])
async def read_cart(user: CurrentUser = Depends(current_user)) -> list[CartLineResponse]:
    return [CartLineResponse(**line) for line in get_cart(user.id)]


@cart_router.post("/items", status_code=201, response_model=list[CartLineResponse])
async def add_cart_item(body: AddCartItemRequest, user: CurrentUser = Depends(current_user)) -> list[CartLineResponse]:
    command = AddCartItem(
        user_id=user.id,
        product_id=body.product_id,
        quantity=body.quantity,
        price_reference=body.price_reference,
    )
    current_domain.process(command, asynchronous=False)
    return [CartLineResponse(**line) for line in get_cart(user.id)]


@cart_router.put("/items/{product_id}", response_model=list[CartLineResponse])
async def update_cart_item(
    product_id: str,
    body: UpdateCartItemRequest,
    user: CurrentUser = Depends(current_user),
) -> list[CartLineResponse]:
    command = UpdateCartItem(user_id=user.id, product_id=product_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return [CartLineResponse(**line) for line in get_cart(user.id)]


@cart_router.delete("/items/{product_id}", response_model=list[CartLineResponse])
async def remove_cart_item(product_id: str, user: CurrentUser = Depends(current_user)) -> list[CartLineResponse]:
    command = RemoveCartItem(user_id=user.id, product_id=product_id)
    current_domain.process(command, asynchronous=False)
    return [CartLineResponse(**line) for line in get_cart(user.id)]


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/product/{product_id}", response_model=CheckoutResponse)
def checkout_product(
    product_id: str,
    body: CheckoutProductRequest,
    user: CurrentUser = Depends(current_user),
    country: str = Depends(request_country),
) -> CheckoutResponse:
    """Create a provider transaction for a single product."""
    command = CheckoutProduct(
        user_id=user.id,
        customer_email=user.email,
        country=country,
        product_id=product_id,
        quantity=body.quantity,
    )
    result = current_domain.process(command, asynchronous=False)
    return CheckoutResponse(**result)


@checkout_router.post("/cart", response_model=CheckoutResponse)
def checkout_cart(
    user: CurrentUser = Depends(current_user),
    country: str = Depends(request_country),
) -> CheckoutResponse:
    """Create a provider transaction for everything in the caller's cart."""
    command = CheckoutCart(user_id=user.id, customer_email=user.email, country=country)
    result = current_domain.process(command, asynchronous=False)
    return CheckoutResponse(**result)


@checkout_router.post("/complete", response_model=ReconciliationResponse)
def report_checkout_completed(
    body: CompleteCheckoutRequest,
    user: CurrentUser = Depends(current_user),
) -> ReconciliationResponse:
    """Client-side checkout completion. Reconciles if the provider agrees it is paid."""
    return ReconciliationResponse(**complete_checkout(user.id, body.transaction_id))


@checkout_router.post("/preview-price", response_model=PricePreviewResponse)
def preview_localized_price(body: PreviewPriceRequest) -> PricePreviewResponse:
    return PricePreviewResponse(**preview_price(body.price_id, body.country))


@checkout_router.get("/price/{price_id}", response_model=LivePriceResponse)
def read_live_price(price_id: str) -> LivePriceResponse:
    return LivePriceResponse(**live_price(price_id))


def _fake_gateway() -> FakeGateway:
    if get_settings().is_production:
        raise NotAuthorized()
    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise NotConfigured("gateway", "controls are only available for the fake payment provider")
    return gateway


@checkout_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    gateway = _fake_gateway()
    gateway.configure(should_succeed=body.should_succeed, failure_reason=body.failure_reason)
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )


@checkout_router.post("/gateway/transactions/{transaction_id}/pay")
async def pay_fake_transaction(transaction_id: str) -> dict:
    """Mark a FakeGateway transaction paid and return the webhook it would send (non-production only)."""
    gateway = _fake_gateway()
    if transaction_id not in gateway.transactions:
        raise NotConfigured(transaction_id, "is not a known fake transaction")
    gateway.complete_transaction(transaction_id)
    return {"payload": gateway.webhook_payload(transaction_id).decode(), "signature": "test-signature"}


# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhook", tags=["webhook"])


@webhook_router.post("/payment", response_model=WebhookResponse)
async def payment_webhook(
    request: Request,
    paddle_signature: str | None = Header(default=None),
) -> WebhookResponse:
    """Payment provider notification. The raw body is verified before it is parsed."""
    payload = await request.body()
    result = await run_in_threadpool(handle_webhook, payload, paddle_signature)
    return WebhookResponse(**result)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/by-transaction/{transaction_id}", response_model=OrderResponse)
async def poll_order(transaction_id: str, user: CurrentUser = Depends(current_user)) -> OrderResponse:
    """404 NotFoundYet until the transaction has been reconciled; poll with backoff."""
    order = poll_by_transaction_id(user.id, transaction_id)
    return OrderResponse(**describe_order(order))


@order_router.post("/verify-token", response_model=OrderResponse)
async def verify_confirmation_token(
    body: VerifyTokenRequest,
    user: CurrentUser = Depends(current_user),
) -> OrderResponse:
    order = view_once_by_access_token(user.id, body.token)
    return OrderResponse(**describe_order(order))


@order_router.get("/mine", response_model=list[OrderResponse])
async def my_orders(user: CurrentUser = Depends(current_user)) -> list[OrderResponse]:
    return [OrderResponse(**describe_order(order)) for order in list_mine(user.id)]


@order_router.get("/all", response_model=OrderListResponse)
async def all_orders(
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    search: str | None = Query(default=None, max_length=100),
    sort: str = Query(default="desc", pattern="^(asc|desc)$"),
    _admin: CurrentUser = Depends(admin_user),
) -> OrderListResponse:
    orders, total = list_all(limit=limit, offset=offset, search=search, sort=sort)
    return OrderListResponse(
        orders=[OrderResponse(**describe_order(order, include_customer=True)) for order in orders],
        total=total,
        limit=limit,
        offset=offset,
        sort=sort,
    )


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("/{product_id}/restock", response_model=StockResponse)
async def restock_product(
    product_id: str,
    body: RestockRequest,
    _admin: CurrentUser = Depends(admin_user),
) -> StockResponse:
    remaining = current_domain.process(RestockProduct(product_id=product_id, quantity=body.quantity), asynchronous=False)
    return StockResponse(product_id=product_id, remaining_stock=remaining)
