"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from scopegate import __version__
from scopegate.api.middleware import NoStoreMiddleware, RequestIDMiddleware, RequestLoggingMiddleware
from scopegate.api.router import api_router
from scopegate.api.utils import error_response
from scopegate.config import settings
from scopegate.database import close_db
from scopegate.logging import setup_logging
from scopegate.services.errors import AdminAuthError, InfrastructureError, RateLimitedError

setup_logging()

logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking
if settings.sentry_dsn:
    import sentry_sdk

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup: schema is managed by Alembic migrations
    yield
    await close_db()


app = FastAPI(
    title="Scopegate API",
    description="Scoped admin sessions and passcode sign-in",
    version=__version__,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug_enabled else None,
    redoc_url="/api/redoc" if settings.debug_enabled else None,
    openapi_url="/api/openapi.json" if settings.debug_enabled else None,
)

app.add_middleware(NoStoreMiddleware)  # type: ignore[arg-type]
app.add_middleware(RequestLoggingMiddleware)  # type: ignore[arg-type]
# Added last so it runs first and the request ID is set for the logging middleware
app.add_middleware(RequestIDMiddleware)  # type: ignore[arg-type]

app.include_router(api_router, prefix="/api")


@app.exception_handler(AdminAuthError)
async def admin_auth_error_handler(request: Request, exc: AdminAuthError):
    """Render taxonomy errors as ``{"ok": false, "error": ...}``."""
    if isinstance(exc, InfrastructureError):
        logger.error(
            f"{request.method} {request.url.path} failed: store unavailable "
            f"(permission_denied={exc.permission_denied}): {exc.detail}"
        )
    headers = exc.headers if isinstance(exc, RateLimitedError) else None
    return error_response(exc.status_code, exc.message, headers)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are validation failures, never 422s."""
    logger.debug(f"Rejected malformed request to {request.url.path}: {exc.errors()!r}")
    return error_response(400, "Invalid request body.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
    """Routing errors (404, 405) in the same error shape."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed."
    return error_response(exc.status_code, message, getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Last resort: never expose internals."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")
    return error_response(500, "Request failed.")


if __name__ == "__main__":
    import uvicorn

    from scopegate.logging import get_uvicorn_log_config

    uvicorn.run(
        "scopegate.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_config=get_uvicorn_log_config(),
    )
