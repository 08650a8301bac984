"""Candidate selection for a retrieval request.

With a folder scope the candidates are every file found by walking that
folder; without one they are the files among the drive search results. Both
are then filtered by extension and capped at max(top_k * 4, 20) items.
"""

import logging

from services.extractor import extension_of
from services.graph_client import GraphClient
from services.tree_walker import TreeWalker
from services.types import RemoteItem

logger = logging.getLogger(__name__)


def candidate_cap(top_k: int) -> int:
    """Number of files processed for a request asking for top_k snippets."""
    return max(top_k * 4, 20)


def normalize_file_types(file_types: list[str]) -> set[str]:
    """Lowercase extensions without a leading dot."""
    return {t.strip().lower().lstrip(".") for t in file_types if t and t.strip()}


class CandidateSelector:
    """Chooses which remote files a query should download and score."""

    def __init__(
        self,
        graph: GraphClient,
        walker: TreeWalker,
        dedupe: bool = True,
    ) -> None:
        self.graph = graph
        self.walker = walker
        self.dedupe = dedupe

    async def select(
        self,
        query: str,
        path_prefix: str | None,
        top_k: int,
        file_types: list[str],
    ) -> list[RemoteItem]:
        """Select candidate files for a query.

        Args:
            query: Natural-language query (used only for drive search).
            path_prefix: Folder to scan; blank means drive-wide search.
            top_k: Requested number of snippets.
            file_types: Allowed extensions, case-insensitive.

        Returns:
            Files in walk or search-relevance order, at most
            candidate_cap(top_k) long.
        """
        cap = candidate_cap(top_k)

        if path_prefix and path_prefix.strip():
            items = await self.walker.list_all_files(path_prefix)
            source = "walk"
        else:
            page = await self.graph.search(query, cap)
            items = [RemoteItem.from_graph(data) for data in page.get("value") or []]
            items = [it for it in items if it.is_file]
            source = "search"

        allowed = normalize_file_types(file_types)
        items = [it for it in items if extension_of(it.name) in allowed]

        if self.dedupe:
            items = self._dedupe(items)

        selected = items[:cap]
        logger.info(
            "Candidates via %s: %d matching, %d selected (cap %d)",
            source,
            len(items),
            len(selected),
            cap,
        )
        return selected

    def _dedupe(self, items: list[RemoteItem]) -> list[RemoteItem]:
        seen: set[str] = set()
        unique = []
        for item in items:
            if item.id in seen:
                continue
            seen.add(item.id)
            unique.append(item)
        return unique
