"""Exceptions raised by the remote-store services."""

from typing import Any

import httpx


class GraphError(Exception):
    """Raised when a Graph API call fails.

    Carries the upstream status code and body so route handlers can pass
    them through unchanged. `status_code` is None for network failures.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body if body is not None else {"error": message}

    @classmethod
    def from_response(cls, response: httpx.Response) -> "GraphError":
        """Build from a non-2xx response whose body has already been read."""
        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text or response.reason_phrase}
        return cls(
            f"{response.request.method} {response.request.url.path} "
            f"returned {response.status_code}",
            status_code=response.status_code,
            body=body,
        )

    @classmethod
    def from_transport(cls, exc: httpx.HTTPError) -> "GraphError":
        return cls(str(exc) or type(exc).__name__)


class AuthenticationError(GraphError):
    """Raised when the client-credentials token exchange fails."""

    pass


class RetrievalTimeoutError(Exception):
    """Raised when a retrieval deadline expires before candidates are known."""

    pass
