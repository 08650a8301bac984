"""Middleware package for FastAPI application."""

from middleware.api_key import API_KEY_HEADER, ApiKeyMiddleware
from middleware.rate_limit import RateLimitConfig, RateLimitMiddleware

__all__ = [
    "API_KEY_HEADER",
    "ApiKeyMiddleware",
    "RateLimitMiddleware",
    "RateLimitConfig",
]
