"""Retrieval handlers."""

from apps.retrieval.handlers.retrieve import retrieve

__all__ = ["retrieve"]
