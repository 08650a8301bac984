"""Graph API client scoped to one SharePoint document library.

Operations:
- List the children of the drive root or of a folder addressed by path
- Full-text search across the whole drive
- Download file content by item id or by path (buffered or streamed)

Every call fetches a bearer token from TokenManager. Failures are raised as
GraphError with the upstream status and body; nothing is retried.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from config import Settings, get_settings
from services.errors import GraphError
from services.token import TokenManager

logger = logging.getLogger(__name__)


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """Drop unset query parameters."""
    return {k: v for k, v in (params or {}).items() if v is not None}


def encode_path(path: str) -> str:
    """Percent-encode a slash-separated drive path, keeping the slashes."""
    return quote(path.strip("/"), safe="/")


class GraphClient:
    """Typed access to the drive endpoints of the Graph API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_manager: TokenManager,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._http = http_client
        self._tokens = token_manager
        self.base_url = self.settings.graph_base_url.rstrip("/")
        self.drive_path = self.settings.drive_path

    def _url(self, path: str) -> str:
        return f"{self.base_url}{self.drive_path}{path}"

    async def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        headers = await self._tokens.auth_headers()
        try:
            response = await self._http.get(
                url, params=_clean_params(params) or None, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("Graph request failed: GET %s: %s", url, e)
            raise GraphError.from_transport(e) from e

        if response.is_error:
            error = GraphError.from_response(response)
            logger.warning("Graph error %d: GET %s", response.status_code, url)
            raise error
        return response

    async def get_json(
        self, url: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """GET an absolute Graph URL (e.g. an @odata.nextLink) as JSON."""
        response = await self._get(url, params)
        return response.json()

    async def list_root(self, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """List the children of the drive root, upstream JSON unchanged."""
        return await self.get_json(self._url("/root/children"), params)

    async def list_children(
        self, path: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """List the immediate children of the folder at `path`.

        Args:
            path: Slash-separated folder path; empty means the drive root.
            params: OData query options passed through unvalidated.

        Returns:
            One page of the listing, upstream JSON unchanged.
        """
        if not path.strip("/"):
            return await self.list_root(params)
        return await self.get_json(
            self._url(f"/root:/{encode_path(path)}:/children"), params
        )

    async def search(self, query: str, top: int) -> dict[str, Any]:
        """Drive-wide full-text search; results may include folders."""
        literal = quote(query.replace("'", "''"), safe="")
        return await self.get_json(
            self._url(f"/root/search(q='{literal}')"), {"$top": top}
        )

    def _content_url(self, path: str | None = None, item_id: str | None = None) -> str:
        if path:
            return self._url(f"/root:/{encode_path(path)}:/content")
        if item_id:
            return self._url(f"/items/{quote(item_id, safe='')}/content")
        raise ValueError("Either path or item_id is required")

    async def download_bytes(self, item_id: str) -> bytes:
        """Download the full content of a file into memory."""
        response = await self._get(self._content_url(item_id=item_id))
        return response.content

    async def open_download(
        self, path: str | None = None, item_id: str | None = None
    ) -> httpx.Response:
        """Start a streamed download by path (preferred) or item id.

        The caller owns the returned response and must close it with
        `aclose()` once the body has been relayed.

        Raises:
            GraphError: With the upstream status and body, before any
                content is streamed.
        """
        url = self._content_url(path=path, item_id=item_id)
        headers = await self._tokens.auth_headers()
        request = self._http.build_request("GET", url, headers=headers)

        try:
            response = await self._http.send(request, stream=True)
        except httpx.HTTPError as e:
            logger.error("Graph download failed: GET %s: %s", url, e)
            raise GraphError.from_transport(e) from e

        if response.is_error:
            try:
                await response.aread()
            finally:
                await response.aclose()
            logger.warning("Graph error %d: GET %s", response.status_code, url)
            raise GraphError.from_response(response)

        return response
