"""Services module for the retrieval pipeline.

Contains the pieces the HTTP handlers are built on:
- Token acquisition and caching (client-credentials grant)
- Graph drive client (listing, search, download)
- Folder walking and candidate selection
- Text extraction, chunking and scoring
- Retrieval orchestration

Note: Service instances are managed via dependencies.py using FastAPI DI.
"""

from services.candidates import CandidateSelector
from services.chunker import Chunker
from services.errors import AuthenticationError, GraphError, RetrievalTimeoutError
from services.extractor import DocumentParseError, TextExtractor
from services.graph_client import GraphClient
from services.retrieval import RetrievalService
from services.token import TokenManager
from services.tree_walker import TreeWalker
from services.types import (
    Credential,
    FileInfo,
    RemoteItem,
    RetrievalResult,
    ScoredChunk,
    TextChunk,
)

__all__ = [
    # Remote store
    "AuthenticationError",
    "GraphClient",
    "GraphError",
    "TokenManager",
    "TreeWalker",
    # Retrieval pipeline
    "CandidateSelector",
    "Chunker",
    "DocumentParseError",
    "RetrievalService",
    "RetrievalTimeoutError",
    "TextExtractor",
    # Types
    "Credential",
    "FileInfo",
    "RemoteItem",
    "RetrievalResult",
    "ScoredChunk",
    "TextChunk",
]
