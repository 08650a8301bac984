"""Per-client rate limiting for the routes that fan out to the document store.

A single /retrieve call can download dozens of files, so /retrieve and
/download are throttled with in-memory sliding windows (burst, minute, hour)
keyed by client IP. State is per process.
"""

import logging
import time
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

BURST_WINDOW_SECONDS = 10
MINUTE = 60
HOUR = 3600


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    requests_per_minute: int = 30
    requests_per_hour: int = 600
    burst_limit: int = 10  # per BURST_WINDOW_SECONDS


@dataclass
class RateLimitDecision:
    """Outcome of one limiter check plus the headers to send back."""

    allowed: bool
    message: str | None = None
    headers: dict[str, str] = field(default_factory=dict)


class RateLimiter:
    """Sliding-window limiter over request timestamps per client."""

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._history: dict[str, deque[float]] = defaultdict(deque)

    @property
    def windows(self) -> list[tuple[int, int, str]]:
        """(window seconds, limit, rejection message), narrowest first."""
        return [
            (BURST_WINDOW_SECONDS, self.config.burst_limit, "Too many requests. Please slow down."),
            (MINUTE, self.config.requests_per_minute, "Rate limit exceeded. Please wait a moment."),
            (HOUR, self.config.requests_per_hour, "Hourly rate limit exceeded."),
        ]

    def get_client_id(self, request: Request) -> str:
        """First X-Forwarded-For hop, else the socket peer."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
        if request.client:
            return f"ip:{request.client.host}"
        return "unknown"

    def check_rate_limit(self, request: Request) -> RateLimitDecision:
        """Record the request if every window has room, else reject it."""
        history = self._history[self.get_client_id(request)]
        now = self._clock()

        while history and history[0] <= now - HOUR:
            history.popleft()

        for seconds, limit, message in self.windows:
            in_window = sum(1 for ts in history if ts > now - seconds)
            if in_window >= limit:
                return RateLimitDecision(
                    allowed=False,
                    message=message,
                    headers={
                        "X-RateLimit-Limit": str(limit),
                        "X-RateLimit-Remaining": "0",
                        "Retry-After": str(seconds),
                    },
                )

        last_minute = sum(1 for ts in history if ts > now - MINUTE)
        history.append(now)
        return RateLimitDecision(
            allowed=True,
            headers={
                "X-RateLimit-Limit": str(self.config.requests_per_minute),
                "X-RateLimit-Remaining": str(
                    self.config.requests_per_minute - last_minute - 1
                ),
            },
        )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies RateLimiter to the download-heavy routes only."""

    RATE_LIMITED_PATHS = frozenset({"/retrieve", "/download"})

    def __init__(
        self,
        app,
        config: RateLimitConfig | None = None,
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self.limiter = RateLimiter(config)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or request.url.path not in self.RATE_LIMITED_PATHS:
            return await call_next(request)

        decision = self.limiter.check_rate_limit(request)
        if decision.allowed:
            response = await call_next(request)
        else:
            logger.warning(
                "Rate limit exceeded for %s on %s",
                self.limiter.get_client_id(request),
                request.url.path,
            )
            response = JSONResponse(
                status_code=429,
                content={"error": decision.message, "code": "RATE_LIMIT_EXCEEDED"},
            )

        response.headers.update(decision.headers)
        return response
