"""Bearer token cache for the Graph API.

Acquires tokens with the OAuth2 client-credentials grant and keeps the
current one in memory for the life of the process. A cached token is only
handed out while it stays valid beyond the refresh margin; otherwise a new
exchange is performed first. The check-and-refresh sequence is serialized
with a lock, and the cached Credential is replaced whole.
"""

import asyncio
import logging
import time
from collections.abc import Callable

import httpx

from config import Settings, get_settings
from services.errors import AuthenticationError
from services.types import Credential

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600


class TokenManager:
    """Process-wide holder of the Graph bearer credential."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or get_settings()
        self._http = http_client
        self._clock = clock
        self._credential: Credential | None = None
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Credential | None:
        """Currently cached credential, possibly stale."""
        return self._credential

    def _cached(self) -> Credential | None:
        now = int(self._clock())
        cached = self._credential
        if cached and cached.is_fresh(now, self.settings.token_refresh_margin_seconds):
            return cached
        return None

    async def get_credential(self) -> Credential:
        """Return a credential valid beyond the refresh margin.

        Raises:
            AuthenticationError: If the token exchange fails.
        """
        cached = self._cached()
        if cached:
            return cached

        async with self._lock:
            # Another caller may have refreshed while we waited
            cached = self._cached()
            if cached:
                return cached
            self._credential = await self._exchange()
            return self._credential

    async def get_token(self) -> str:
        """Return the bearer token string."""
        credential = await self.get_credential()
        return credential.token

    async def auth_headers(self) -> dict[str, str]:
        """Authorization header for a Graph call."""
        return {"Authorization": f"Bearer {await self.get_token()}"}

    async def _exchange(self) -> Credential:
        """Perform the client-credentials exchange."""
        now = int(self._clock())
        form = {
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "grant_type": "client_credentials",
            "scope": self.settings.graph_scope,
        }

        try:
            response = await self._http.post(self.settings.token_url, data=form)
        except httpx.HTTPError as e:
            logger.error("Token exchange failed: %s", e)
            raise AuthenticationError(f"Token exchange failed: {e}") from e

        if response.is_error:
            error = AuthenticationError.from_response(response)
            logger.error(
                "Token exchange rejected (%d): %s", response.status_code, error.body
            )
            raise error

        try:
            data = response.json()
            token = data["access_token"]
            expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("Unreadable token response (%d)", response.status_code)
            raise AuthenticationError(
                f"Unreadable token response: {e}",
                status_code=502,
                body={"error": "Unreadable token response"},
            ) from e

        logger.info("Acquired Graph token (expires in %ds)", expires_in)

        return Credential(token=token, expires_at=now + expires_in)
