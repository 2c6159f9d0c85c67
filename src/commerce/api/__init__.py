"""Commerce API package."""

from commerce.api.errors import register_error_handlers
from commerce.api.routes import cart_router, checkout_router, order_router, product_router, webhook_router

ROUTERS = [cart_router, checkout_router, webhook_router, order_router, product_router]

__all__ = [
    "ROUTERS",
    "cart_router",
    "checkout_router",
    "order_router",
    "product_router",
    "register_error_handlers",
    "webhook_router",
]
