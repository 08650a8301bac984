"""POST /retrieve - Find the most relevant snippets for a query."""

import logging

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from dependencies import get_retrieval_service
from services import RetrievalResult, RetrievalService
from services.candidates import normalize_file_types
from services.chunker import DEFAULT_MAX_CHARS
from services.retrieval import DEFAULT_FILE_TYPES, DEFAULT_TOP_K

logger = logging.getLogger(__name__)


# --- Request/Response Schemas (API-specific) ---


class CamelModel(BaseModel):
    """Model serialized with camelCase keys, accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RetrieveRequest(CamelModel):
    """Request body for the retrieve endpoint."""

    query: str = Field(..., description="Natural-language query")
    path_prefix: str | None = Field(
        None,
        description="Folder to scan recursively; omit to search the whole drive",
    )
    top_k: int = Field(DEFAULT_TOP_K, ge=1, description="Snippets to return")
    max_chars_per_chunk: int = Field(
        DEFAULT_MAX_CHARS, ge=1, description="Chunk length in characters"
    )
    file_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FILE_TYPES),
        description="Extensions to consider, e.g. ['pdf', 'txt']",
    )
    include_file_text: bool = Field(
        False, description="Also return the top snippet as fullText"
    )

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query (string) is required")
        return v

    @field_validator("file_types")
    @classmethod
    def normalize_types(cls, v: list[str]) -> list[str]:
        return sorted(normalize_file_types(v))


class FileSummary(CamelModel):
    """Metadata of the file a snippet came from."""

    item_id: str
    name: str
    path: str
    web_url: str | None = None
    content_type: str | None = None
    last_modified: str | None = Field(None, alias="lastModifiedDateTime")


class Snippet(CamelModel):
    """Best chunk of one file."""

    text: str
    score: int
    file: FileSummary


class UsedParams(CamelModel):
    """Effective parameters of the request."""

    path_prefix: str | None
    top_k: int
    max_chars_per_chunk: int
    file_types: list[str]
    include_file_text: bool


class RetrieveResponse(CamelModel):
    """Ranked snippets plus their joined context."""

    query: str
    used_params: UsedParams
    snippets: list[Snippet]
    top_files: list[FileSummary]
    combined_context: str
    full_text: str | None = None
    partial: bool = False
    skipped_files: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(
        cls, result: RetrievalResult, params: RetrieveRequest
    ) -> "RetrieveResponse":
        snippets = [
            Snippet(
                text=s.text,
                score=s.score,
                file=FileSummary(
                    item_id=s.file.item_id,
                    name=s.file.name,
                    path=s.file.path,
                    web_url=s.file.web_url,
                    content_type=s.file.content_type,
                    last_modified=s.file.last_modified,
                ),
            )
            for s in result.snippets
        ]
        return cls(
            query=result.query,
            used_params=UsedParams(**params.model_dump(exclude={"query"})),
            snippets=snippets,
            top_files=[s.file for s in snippets],
            combined_context=result.combined_context,
            full_text=result.full_text,
            partial=result.partial,
            skipped_files=result.skipped_files,
        )


# --- Handler ---


async def retrieve(
    body: RetrieveRequest,
    request: Request,
    service: RetrievalService = Depends(get_retrieval_service),
) -> JSONResponse:
    """Return the best-matching snippet of each candidate file, ranked.

    Candidates come from a recursive walk of `pathPrefix` when given, else
    from a drive-wide search. `fullText` is only present when requested.
    """
    request_id = getattr(request.state, "request_id", None)
    logger.info(
        "[%s] Retrieve: %r (path=%s, topK=%d)",
        request_id,
        body.query[:100],
        body.path_prefix or "-",
        body.top_k,
    )

    result = await service.retrieve(
        query=body.query,
        path_prefix=body.path_prefix,
        top_k=body.top_k,
        max_chars=body.max_chars_per_chunk,
        file_types=body.file_types,
        include_file_text=body.include_file_text,
    )

    response = RetrieveResponse.from_result(result, body)
    exclude = {"full_text"} if response.full_text is None else None
    return JSONResponse(
        content=response.model_dump(mode="json", by_alias=True, exclude=exclude)
    )
