"""GET /root - List the children of the drive root."""

import logging

from fastapi import Depends, Query
from fastapi.responses import JSONResponse

from dependencies import get_graph_client
from services import GraphClient

logger = logging.getLogger(__name__)


async def list_root(
    top: str | None = Query(None, alias="$top"),
    skip: str | None = Query(None, alias="$skip"),
    select: str | None = Query(None, alias="$select"),
    expand: str | None = Query(None, alias="$expand"),
    graph: GraphClient = Depends(get_graph_client),
) -> JSONResponse:
    """Return the upstream root listing unchanged.

    Only the OData options listed here are forwarded, and only when given.
    """
    data = await graph.list_root(
        {"$top": top, "$skip": skip, "$select": select, "$expand": expand}
    )
    return JSONResponse(content=data)
