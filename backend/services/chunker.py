"""Text chunking for snippet scoring.

Splits extracted text into consecutive, non-overlapping windows of a fixed
character length. The last window may be shorter. A safety cap bounds the
number of windows per document, so very long documents are only partially
scored.
"""

import logging

from config import get_settings
from services.types import TextChunk

logger = logging.getLogger(__name__)


DEFAULT_MAX_CHARS = 1200


class Chunker:
    """Chunks text into fixed-size windows starting at offset 0."""

    def __init__(self, max_chunks: int | None = None) -> None:
        """Initialize chunker with the per-document chunk cap from settings."""
        if max_chunks is None:
            max_chunks = get_settings().max_chunks_per_document
        self.max_chunks = max_chunks

    def chunk_text(
        self,
        text: str,
        max_chars: int = DEFAULT_MAX_CHARS,
    ) -> list[TextChunk]:
        """Split text into windows of at most `max_chars` characters.

        Args:
            text: Full document text to chunk.
            max_chars: Window length; every chunk but the last has this length.

        Returns:
            List of TextChunk objects in document order, at most
            `self.max_chunks` long.

        Raises:
            ValueError: If max_chars is not positive.
        """
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")

        chunks: list[TextChunk] = []
        start = 0
        text_length = len(text)

        while start < text_length and len(chunks) < self.max_chunks:
            end = min(start + max_chars, text_length)
            chunks.append(
                TextChunk(
                    text=text[start:end],
                    chunk_index=len(chunks),
                    start_char=start,
                    end_char=end,
                )
            )
            start = end

        if start < text_length:
            logger.debug(
                "Chunk cap reached: %d of %d chars covered (%d chunks)",
                start,
                text_length,
                len(chunks),
            )

        return chunks
