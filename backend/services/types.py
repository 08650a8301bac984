"""Shared types and dataclasses for services.

Provides typed alternatives to the raw Graph JSON for better type safety.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Credential:
    """Bearer token with its absolute expiry (epoch seconds)."""

    token: str
    expires_at: int

    def is_fresh(self, now: int, margin: int) -> bool:
        """True while the token is still valid `margin` seconds from now."""
        return self.expires_at - margin > now


@dataclass(frozen=True)
class RemoteItem:
    """A driveItem (file or folder) returned by the Graph API."""

    id: str
    name: str
    web_url: str | None = None
    last_modified: str | None = None
    parent_path: str | None = None
    mime_type: str | None = None
    is_file: bool = False
    is_folder: bool = False

    @classmethod
    def from_graph(cls, data: dict[str, Any]) -> "RemoteItem":
        """Build from a driveItem JSON object."""
        file_facet = data.get("file")
        parent = data.get("parentReference") or {}
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            web_url=data.get("webUrl"),
            last_modified=data.get("lastModifiedDateTime"),
            parent_path=parent.get("path"),
            mime_type=file_facet.get("mimeType") if file_facet else None,
            is_file=file_facet is not None,
            is_folder=data.get("folder") is not None,
        )

    @property
    def display_path(self) -> str:
        """Path of the item relative to the drive root, e.g. /HR/policy.txt."""
        parent = self.parent_path or ""
        marker = parent.find("root:")
        if marker != -1:
            parent = parent[marker + len("root:") :]
        else:
            parent = parent.replace("/drive", "", 1)
        return f"{parent.rstrip('/')}/{self.name}"


@dataclass(frozen=True)
class FileInfo:
    """Snapshot of the file metadata attached to a scored chunk."""

    item_id: str
    name: str
    path: str
    web_url: str | None
    content_type: str | None
    last_modified: str | None

    @classmethod
    def from_item(cls, item: RemoteItem) -> "FileInfo":
        return cls(
            item_id=item.id,
            name=item.name,
            path=item.display_path,
            web_url=item.web_url,
            content_type=item.mime_type,
            last_modified=item.last_modified,
        )


@dataclass
class TextChunk:
    """A chunk of text with position metadata."""

    text: str
    chunk_index: int
    start_char: int
    end_char: int


@dataclass
class ScoredChunk:
    """A chunk with its term-frequency score and owning file."""

    text: str
    score: int
    file: FileInfo


@dataclass
class RetrievalResult:
    """Outcome of one retrieval request, best chunk per file, ranked."""

    query: str
    snippets: list[ScoredChunk]
    combined_context: str
    full_text: str | None = None
    partial: bool = False
    skipped_files: list[str] = field(default_factory=list)

    @property
    def top_files(self) -> list[FileInfo]:
        return [s.file for s in self.snippets]
