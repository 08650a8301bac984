"""Term-frequency relevance scoring.

Both query and chunk are lowercased and stripped of diacritics, the query is
split on whitespace, and the score is the total number of non-overlapping
occurrences of every query term in the chunk.
"""

import unicodedata

from services.types import ScoredChunk


def normalize_for_match(text: str | None) -> str:
    """Lowercase and strip combining diacritical marks (U+0300-U+036F)."""
    decomposed = unicodedata.normalize("NFD", (text or "").lower())
    return "".join(ch for ch in decomposed if not "\u0300" <= ch <= "\u036f")


def score_chunk(chunk: str, query: str) -> int:
    """Count occurrences of each query term in the chunk."""
    terms = normalize_for_match(query).split()
    haystack = normalize_for_match(chunk)
    return sum(haystack.count(term) for term in terms)


def best_chunk(scored: list[ScoredChunk]) -> ScoredChunk | None:
    """Highest-scoring chunk; the earliest one wins a tie."""
    if not scored:
        return None
    return max(scored, key=lambda s: s.score)


def rank(snippets: list[ScoredChunk], top_k: int) -> list[ScoredChunk]:
    """Sort by score descending (stable for ties) and keep the first top_k."""
    return sorted(snippets, key=lambda s: s.score, reverse=True)[:top_k]
