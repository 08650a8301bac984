"""GET /download - Stream a file by path or item id."""

import logging

from fastapi import Depends, Query, Request, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from dependencies import get_graph_client
from responses import ResponseCode, error_response
from services import GraphClient

logger = logging.getLogger(__name__)

# Upstream headers relayed to the caller
RELAYED_HEADERS = ("content-type", "content-disposition")


async def download_file(
    request: Request,
    path: str | None = Query(None, description="File path within the drive"),
    item_id: str | None = Query(None, alias="id", description="Drive item id"),
    graph: GraphClient = Depends(get_graph_client),
) -> Response:
    """Relay file content from the document store.

    `path` takes precedence when both are given. Upstream errors are raised
    before streaming starts, so they keep their status and body.
    """
    request_id = getattr(request.state, "request_id", None)

    if not path and not item_id:
        return error_response(
            ResponseCode.VALIDATION_ERROR, "Provide ?path= or ?id=", request_id
        )

    logger.info("[%s] Download: %s", request_id, path or f"id={item_id}")
    upstream = await graph.open_download(path=path, item_id=item_id)

    headers = {
        name: upstream.headers[name]
        for name in RELAYED_HEADERS
        if name in upstream.headers
    }
    return StreamingResponse(
        upstream.aiter_bytes(),
        status_code=upstream.status_code,
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )
