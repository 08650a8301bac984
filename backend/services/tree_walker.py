"""Recursive enumeration of the files under a drive folder.

The drive is a tree, so no cycle guard is kept. Folders are visited depth
first in the order the listing returns them. Only the first page of each
listing is read unless `follow_next_link` is enabled; large folders are
under-enumerated by default.
"""

import logging

from services.graph_client import GraphClient
from services.types import RemoteItem

logger = logging.getLogger(__name__)

WALK_SELECT = "id,name,webUrl,lastModifiedDateTime,parentReference,file,folder"


class TreeWalker:
    """Lists every file below a folder path."""

    def __init__(
        self,
        graph: GraphClient,
        page_size: int = 200,
        follow_next_link: bool = False,
    ) -> None:
        self.graph = graph
        self.page_size = page_size
        self.follow_next_link = follow_next_link

    async def list_all_files(self, path_prefix: str) -> list[RemoteItem]:
        """Return all files under `path_prefix`, depth-first."""
        results: list[RemoteItem] = []
        await self._walk(path_prefix.strip("/"), results)
        logger.info("Walked %s: %d files", path_prefix or "/", len(results))
        return results

    async def _walk(self, path: str, results: list[RemoteItem]) -> None:
        for item in await self._list(path):
            if item.is_folder:
                child = f"{path}/{item.name}" if path else item.name
                await self._walk(child, results)
            elif item.is_file:
                results.append(item)

    async def _list(self, path: str) -> list[RemoteItem]:
        page = await self.graph.list_children(
            path, {"$top": self.page_size, "$select": WALK_SELECT}
        )
        raw = list(page.get("value") or [])

        next_link = page.get("@odata.nextLink")
        while next_link and self.follow_next_link:
            page = await self.graph.get_json(next_link)
            raw.extend(page.get("value") or [])
            next_link = page.get("@odata.nextLink")

        if next_link:
            logger.warning("Folder %s has more than one page; only the first was read", path)

        return [RemoteItem.from_graph(data) for data in raw]
