"""Retrieval module - ranked snippet search."""

from apps.retrieval.routes import router

__all__ = ["router"]
