"""Main FastAPI application for the SharePoint knowledge proxy.

Entry point for the application. Configures:
- FastAPI app with settings
- API key gate and rate limiting middleware
- Exception handlers (upstream pass-through, validation, fallbacks)
- Route registration

Missing required configuration is fatal: the process exits with status 1.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, get_app_config, get_settings, setup_logging
from dependencies import get_graph_client, get_http_client, get_token_manager
from middleware import ApiKeyMiddleware, RateLimitConfig, RateLimitMiddleware
from responses import ResponseCode, code_for_status, error_dict
from router import router as api_router
from services.errors import GraphError, RetrievalTimeoutError

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan - startup and shutdown."""
    # Startup
    settings = get_settings()
    logger.info("Starting %s...", settings.service_name)
    logger.info("Site: %s, drive: %s", settings.site_id, settings.drive_id)
    if not settings.api_key:
        logger.warning("API key gate disabled (API_KEY unset)")

    yield

    # Shutdown
    logger.info("Shutting down %s...", settings.service_name)
    await get_http_client().aclose()
    get_graph_client.cache_clear()
    get_token_manager.cache_clear()
    get_http_client.cache_clear()


# =============================================================================
# Exception Handlers
# =============================================================================


async def graph_exception_handler(request: Request, exc: GraphError) -> JSONResponse:
    """Pass document store failures through with their status and body."""
    body = exc.body if isinstance(exc.body, dict) else {"error": exc.body}
    logger.error(
        "[%s] Upstream failure on %s: %s",
        getattr(request.state, "request_id", None),
        request.url.path,
        exc,
    )
    return JSONResponse(status_code=exc.status_code or 500, content=body)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic validation errors as 400s."""
    request_id = getattr(request.state, "request_id", None)

    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    first_error = errors[0] if errors else {}
    field_name = (first_error.get("loc") or ["unknown"])[-1]

    error_response = error_dict(
        code=ResponseCode.VALIDATION_ERROR,
        custom_message=f"Validation failed for field '{field_name}': "
        f"{first_error.get('msg', 'invalid value')}",
        error_details={"validation_errors": errors},
        request_id=request_id,
    )

    return JSONResponse(status_code=400, content=error_response)


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle HTTP exceptions."""
    request_id = getattr(request.state, "request_id", None)

    error_response = error_dict(
        code=code_for_status(exc.status_code),
        custom_message=str(exc.detail),
        request_id=request_id,
    )

    return JSONResponse(status_code=exc.status_code, content=error_response)


async def timeout_exception_handler(
    request: Request,
    exc: RetrievalTimeoutError,
) -> JSONResponse:
    """Handle retrieval deadline expiry."""
    request_id = getattr(request.state, "request_id", None)
    logger.warning("[%s] %s", request_id, exc)

    error_response = error_dict(
        code=ResponseCode.RETRIEVAL_TIMEOUT,
        custom_message=str(exc),
        request_id=request_id,
    )

    return JSONResponse(status_code=504, content=error_response)


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unhandled exceptions."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception("[%s] Unhandled exception: %s", request_id, exc)

    error_response = error_dict(
        code=ResponseCode.INTERNAL_ERROR,
        custom_message="An unexpected error occurred",
        error_details={"exception_type": type(exc).__name__},
        request_id=request_id,
    )

    return JSONResponse(status_code=500, content=error_response)


# =============================================================================
# Application Factory
# =============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Raises:
        ValidationError: If required configuration is missing.
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(lifespan=lifespan, **get_app_config())

    # Rate limiting (innermost) protects the routes that download content
    app.add_middleware(
        RateLimitMiddleware,
        config=RateLimitConfig(
            requests_per_minute=settings.rate_limit_per_minute,
            requests_per_hour=settings.rate_limit_per_hour,
            burst_limit=settings.rate_limit_burst,
        ),
        enabled=settings.rate_limit_enabled,
    )
    app.add_middleware(ApiKeyMiddleware, api_key=settings.api_key)

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Add request ID to all requests for tracing."""
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response

    app.add_exception_handler(GraphError, graph_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RetrievalTimeoutError, timeout_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router)

    return app


try:
    app = create_app()
except ValidationError as e:
    logger.critical(
        "Missing required configuration (TENANT_ID, CLIENT_ID, CLIENT_SECRET, "
        "SITE_ID, DRIVE_ID): %s",
        e,
    )
    sys.exit(1)


# =============================================================================
# Development Server
# =============================================================================


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
