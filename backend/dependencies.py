"""FastAPI dependency injection for services.

Services are cached with @lru_cache() so the HTTP connection pool and the
token cache are shared by every request in the process.
"""

from functools import lru_cache

import httpx
from fastapi import Depends

from config import get_settings
from services.candidates import CandidateSelector
from services.chunker import Chunker
from services.extractor import TextExtractor
from services.graph_client import GraphClient
from services.retrieval import RetrievalService
from services.token import TokenManager
from services.tree_walker import TreeWalker

MAX_REDIRECTS = 5

# --- Cached Singletons ---
# These are created once and reused across all requests


@lru_cache
def get_http_client() -> httpx.AsyncClient:
    """Get the shared HTTP client (closed on application shutdown)."""
    settings = get_settings()
    return httpx.AsyncClient(
        timeout=settings.http_timeout_seconds,
        follow_redirects=True,
        max_redirects=MAX_REDIRECTS,
    )


@lru_cache
def get_token_manager() -> TokenManager:
    """Get the process-wide token cache."""
    return TokenManager(get_http_client())


@lru_cache
def get_graph_client() -> GraphClient:
    """Get cached Graph drive client."""
    return GraphClient(get_http_client(), get_token_manager())


# --- Lightweight Services (per-request is fine) ---


def get_chunker() -> Chunker:
    """Get chunker (stateless, cheap to create)."""
    return Chunker()


def get_extractor() -> TextExtractor:
    """Get text extractor (stateless, cheap to create)."""
    return TextExtractor()


# --- Composed Services ---
# Use Depends() for proper FastAPI DI chaining


def get_candidate_selector(
    graph: GraphClient = Depends(get_graph_client),
) -> CandidateSelector:
    """Get candidate selector wired to the Graph client."""
    settings = get_settings()
    walker = TreeWalker(
        graph,
        page_size=settings.walk_page_size,
        follow_next_link=settings.follow_next_link,
    )
    return CandidateSelector(graph, walker, dedupe=settings.dedupe_candidates)


def get_retrieval_service(
    graph: GraphClient = Depends(get_graph_client),
    selector: CandidateSelector = Depends(get_candidate_selector),
    extractor: TextExtractor = Depends(get_extractor),
    chunker: Chunker = Depends(get_chunker),
) -> RetrievalService:
    """Get retrieval service with injected dependencies.

    FastAPI will automatically inject the cached dependencies.
    """
    return RetrievalService(
        graph=graph,
        selector=selector,
        extractor=extractor,
        chunker=chunker,
    )
