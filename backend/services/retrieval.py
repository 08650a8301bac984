"""Snippet retrieval service.

Pipeline for one query:
1. Select candidate files (folder walk or drive search)
2. Download, extract, chunk and score each candidate, a few at a time
3. Keep the best chunk of each file
4. Rank all kept chunks by score and truncate to top_k

Per-file failures (download errors, unreadable content) skip that file only
and are reported by name.
Authentication failures abort the request. The whole request runs under a
deadline; work still outstanding when it expires is cancelled and the
ranking is built from the files already scored.
"""

import asyncio
import logging
import time

from config import Settings, get_settings
from services.candidates import CandidateSelector
from services.chunker import DEFAULT_MAX_CHARS, Chunker
from services.errors import AuthenticationError, GraphError, RetrievalTimeoutError
from services.extractor import DocumentParseError, TextExtractor
from services.graph_client import GraphClient
from services.scoring import best_chunk, rank, score_chunk
from services.types import FileInfo, RemoteItem, RetrievalResult, ScoredChunk

logger = logging.getLogger(__name__)


__all__ = ["RetrievalService", "CONTEXT_SEPARATOR", "DEFAULT_FILE_TYPES", "DEFAULT_TOP_K"]

CONTEXT_SEPARATOR = "\n---\n"
DEFAULT_TOP_K = 6
DEFAULT_FILE_TYPES = ("pdf", "docx", "txt")


class RetrievalService:
    """Finds the most relevant passages for a query under a folder scope."""

    def __init__(
        self,
        graph: GraphClient,
        selector: CandidateSelector,
        extractor: TextExtractor,
        chunker: Chunker,
        settings: Settings | None = None,
    ) -> None:
        """Initialize retrieval service."""
        self.settings = settings or get_settings()
        self.graph = graph
        self.selector = selector
        self.extractor = extractor
        self.chunker = chunker

    async def retrieve(
        self,
        query: str,
        path_prefix: str | None = None,
        top_k: int = DEFAULT_TOP_K,
        max_chars: int = DEFAULT_MAX_CHARS,
        file_types: list[str] | None = None,
        include_file_text: bool = False,
    ) -> RetrievalResult:
        """Retrieve the top_k best snippets for a query.

        Args:
            query: Natural-language query.
            path_prefix: Folder to scan; None or blank searches the drive.
            top_k: Maximum number of snippets returned.
            max_chars: Chunk length used when splitting documents.
            file_types: Allowed extensions; None means pdf, docx, txt. An
                empty list allows nothing.
            include_file_text: Also return the top snippet as full_text.

        Returns:
            RetrievalResult with snippets sorted by score descending.

        Raises:
            ValueError: If the query is blank.
            RetrievalTimeoutError: If the deadline expires before the
                candidate list is known.
            GraphError: If listing/search or authentication fails.
        """
        if not query or not query.strip():
            raise ValueError("Query cannot be empty")
        if file_types is None:
            file_types = list(DEFAULT_FILE_TYPES)

        started = time.monotonic()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.retrieve_timeout_seconds

        try:
            candidates = await asyncio.wait_for(
                self.selector.select(query, path_prefix, top_k, list(file_types)),
                timeout=self.settings.retrieve_timeout_seconds,
            )
        except TimeoutError as e:
            logger.warning("Retrieval timed out while selecting candidates")
            raise RetrievalTimeoutError(
                f"No candidates within {self.settings.retrieve_timeout_seconds}s"
            ) from e

        snippets, skipped, partial = await self._score_candidates(
            candidates, query, max_chars, deadline - loop.time()
        )

        limited = rank(snippets, top_k)
        result = RetrievalResult(
            query=query,
            snippets=limited,
            combined_context=CONTEXT_SEPARATOR.join(s.text for s in limited),
            partial=partial,
            skipped_files=skipped,
        )
        if include_file_text and limited:
            result.full_text = limited[0].text

        logger.info(
            "Retrieval complete: %d candidates, %d scored, %d skipped, %d returned "
            "(%.2fs%s)",
            len(candidates),
            len(snippets),
            len(skipped),
            len(limited),
            time.monotonic() - started,
            ", partial" if partial else "",
        )
        return result

    async def _score_candidates(
        self,
        candidates: list[RemoteItem],
        query: str,
        max_chars: int,
        timeout: float,
    ) -> tuple[list[ScoredChunk], list[str], bool]:
        """Score candidates concurrently; results keep candidate order.

        Returns:
            Tuple of (best chunk per scored file, skipped file names,
            whether the deadline cut processing short).
        """
        if not candidates:
            return [], [], False

        semaphore = asyncio.Semaphore(max(1, self.settings.max_concurrent_downloads))
        tasks = [
            asyncio.create_task(
                self._score_candidate(item, query, max_chars, semaphore)
            )
            for item in candidates
        ]

        _, pending = await asyncio.wait(tasks, timeout=max(0.0, timeout))
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "Retrieval deadline reached: %d of %d files unscored",
                len(pending),
                len(tasks),
            )

        snippets: list[ScoredChunk] = []
        skipped: list[str] = []
        for item, task in zip(candidates, tasks):
            if task in pending:
                continue
            error = task.exception()
            if error is None:
                if task.result() is not None:
                    snippets.append(task.result())
            elif isinstance(error, AuthenticationError):
                raise error
            elif isinstance(error, GraphError):
                logger.warning(
                    "Skipping %s (%s): %s", item.name, error.status_code, error
                )
                skipped.append(item.name)
            elif isinstance(error, DocumentParseError):
                logger.warning("Skipping %s: %s", item.name, error)
                skipped.append(item.name)
            else:
                raise error

        return snippets, skipped, bool(pending)

    async def _score_candidate(
        self,
        item: RemoteItem,
        query: str,
        max_chars: int,
        semaphore: asyncio.Semaphore,
    ) -> ScoredChunk | None:
        """Best-scoring chunk of one file, or None when it has no text."""
        async with semaphore:
            content = await self.graph.download_bytes(item.id)

        text = await self.extractor.extract_async(content, item.name)
        if not text:
            return None

        file_info = FileInfo.from_item(item)
        scored = [
            ScoredChunk(text=chunk.text, score=score_chunk(chunk.text, query), file=file_info)
            for chunk in self.chunker.chunk_text(text, max_chars)
        ]
        return best_chunk(scored)
