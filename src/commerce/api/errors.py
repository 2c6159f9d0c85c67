"""Map domain errors to HTTP responses.

``CommerceError`` subclasses render as ``{"error", "code", ...extra}`` with
the error's own status code. Protean's validation and not-found errors use
the framework's handlers.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers

from commerce.errors import CommerceError

logger = structlog.get_logger(__name__)


def error_body(exc: CommerceError) -> dict:
    return {"error": str(exc), "code": exc.code, **exc.extra()}


async def commerce_error_handler(request: Request, exc: CommerceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, code=exc.code, error=str(exc))
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("Concurrent update conflict", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=409,
        content={"error": "The resource was updated concurrently, retry the request", "code": "Conflict"},
    )


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(CommerceError, commerce_error_handler)
    app.add_exception_handler(ExpectedVersionError, version_conflict_handler)
