"""API key gate for every route.

Callers must send the configured key in the `x-api-key` header. When no key
is configured the gate is open (local testing only).
"""

import logging
import secrets
from collections.abc import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Rejects requests without the expected API key."""

    def __init__(self, app, api_key: str | None = None) -> None:
        super().__init__(app)
        self.api_key = api_key
        if not api_key:
            logger.warning("API_KEY not set: proxy is open to any caller")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.api_key:
            return await call_next(request)

        supplied = request.headers.get(API_KEY_HEADER, "")
        if secrets.compare_digest(supplied.encode(), self.api_key.encode()):
            return await call_next(request)

        logger.warning(
            "Rejected %s %s: missing or invalid API key",
            request.method,
            request.url.path,
        )
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
