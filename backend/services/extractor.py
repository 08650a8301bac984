"""Text extraction for PDF, Word, and text files.

Handles:
- Extension detection from a remote file name
- Text extraction from PDF (PyMuPDF), DOCX (python-docx), and TXT bytes
- Decoder failures raised as DocumentParseError so callers can skip the file

Decoders run on in-memory bytes. Blocking work is wrapped with
asyncio.to_thread so extraction never stalls the event loop.
"""

import asyncio
import io
import logging
import re

import fitz  # PyMuPDF
from docx import Document as DocxDocument

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset({"pdf", "docx", "txt"})

_EXTENSION_RE = re.compile(r"\.([a-z0-9]+)$")


class DocumentParseError(Exception):
    """Raised when a decoder cannot read a document."""

    pass


def extension_of(filename: str | None) -> str:
    """Lowercase extension without the dot, or "" when there is none."""
    match = _EXTENSION_RE.search((filename or "").lower())
    return match.group(1) if match else ""


class TextExtractor:
    """Converts downloaded file bytes to plain text by file extension."""

    def extract(self, content: bytes, filename: str) -> str:
        """Extract plain text from file bytes.

        Args:
            content: Raw file bytes
            filename: Remote file name, used only for its extension

        Returns:
            Extracted text. Empty when the extension has no decoder or the
            document has no text layer.

        Raises:
            DocumentParseError: If the decoder cannot read the bytes.
        """
        ext = extension_of(filename)
        if ext not in SUPPORTED_EXTENSIONS:
            logger.debug("No decoder for %s (extension %r)", filename, ext)
            return ""

        if ext == "pdf":
            return self._parse_pdf(content)
        if ext == "docx":
            return self._parse_docx(content)
        return self._parse_txt(content)

    async def extract_async(self, content: bytes, filename: str) -> str:
        """Non-blocking variant of extract()."""
        return await asyncio.to_thread(self.extract, content, filename)

    def _parse_pdf(self, content: bytes) -> str:
        """Extract the text layer of a PDF, page by page."""
        doc = None
        try:
            doc = fitz.open(stream=content, filetype="pdf")
            text_parts = []

            for page_num, page in enumerate(doc, start=1):
                try:
                    page_text = page.get_text()
                    if page_text:
                        text_parts.append(page_text)
                except Exception as e:
                    logger.warning(
                        "Failed to extract text from page %d: %s", page_num, e
                    )

            return "\n\n".join(text_parts)

        except Exception as e:
            raise DocumentParseError(f"Failed to parse PDF: {e}") from e
        finally:
            if doc is not None:
                doc.close()

    def _parse_docx(self, content: bytes) -> str:
        """Extract raw paragraph text from a Word document."""
        try:
            doc = DocxDocument(io.BytesIO(content))
            return "\n\n".join(p.text for p in doc.paragraphs if p.text.strip())
        except Exception as e:
            raise DocumentParseError(f"Failed to parse DOCX: {e}") from e

    def _parse_txt(self, content: bytes) -> str:
        """Decode plain text as UTF-8, replacing invalid sequences."""
        return content.decode("utf-8", errors="replace")
