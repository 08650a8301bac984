"""GET /folder - List a folder addressed by path."""

import logging

from fastapi import Depends, Query, Request
from fastapi.responses import JSONResponse

from dependencies import get_graph_client
from responses import ResponseCode, error_response
from services import GraphClient

logger = logging.getLogger(__name__)


async def list_folder(
    request: Request,
    path: str | None = Query(None, description="Folder path, e.g. HR/Policies"),
    graph: GraphClient = Depends(get_graph_client),
) -> JSONResponse:
    """Return the upstream folder listing unchanged."""
    request_id = getattr(request.state, "request_id", None)

    if not path:
        return error_response(
            ResponseCode.VALIDATION_ERROR, "Missing query param: path", request_id
        )

    logger.info("[%s] List folder: %s", request_id, path)
    data = await graph.list_children(path)
    return JSONResponse(content=data)
