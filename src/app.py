"""Recipe shop commerce API.

Serves the cart, checkout, payment webhook and order endpoints. Commands
are processed synchronously inside each request.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from commerce.channel import build_email_channel, set_email_channel
from commerce.config import Settings, set_settings
from commerce.domain import commerce
from commerce.gateway import build_gateway, set_gateway
from commerce.utils.logging import add_context, clear_context, configure_logging

# ---------------------------------------------------------------------------
# Configuration and adapters
# ---------------------------------------------------------------------------
# Settings are read once; a missing required key stops the process here.
configure_logging()
settings = Settings.from_env()
set_settings(settings)
set_gateway(build_gateway(settings))
set_email_channel(build_email_channel(settings))

commerce.init()

from commerce.checkout.reconciliation import Reconciler, set_reconciler  # noqa: E402
from commerce.pricing.localization import PriceLocalizer, set_localizer  # noqa: E402

set_reconciler(Reconciler.from_settings(settings))
set_localizer(PriceLocalizer.from_settings(settings))

logger = structlog.get_logger(__name__)
logger.info(
    "Commerce service configured",
    environment=settings.environment,
    payment_provider=settings.payment_provider.value,
    email_backend=settings.email_backend.value,
    oversell_policy=settings.oversell_policy.value,
)

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title=f"{settings.site_name} Commerce API",
    description="Cart, checkout, payment reconciliation and order access",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url] if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the commerce domain context and bind a request id for each request."""
    clear_context()
    add_context(request_id=request.headers.get("X-Request-Id") or uuid.uuid4().hex[:16], path=request.url.path)
    with commerce.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from commerce.api import ROUTERS, register_error_handlers  # noqa: E402

for router in ROUTERS:
    app.include_router(router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": commerce.name,
            "environment": settings.environment,
            "payment_provider": settings.payment_provider.value,
        }
    )
