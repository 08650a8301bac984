"""Standardized error responses for API endpoints.

Every error body carries an `error` message plus a structured code.
Successful responses are route-specific (upstream JSON or retrieval results)
and are not wrapped.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from fastapi.responses import JSONResponse


class ResponseCode(str, Enum):
    """Response codes for API error responses.

    Ranges: 1xxx=Client Error, 2xxx=Server Error, 3xxx=Remote Store
    """

    # Client errors
    VALIDATION_ERROR = "1000"
    UNAUTHORIZED = "1001"
    NOT_FOUND = "1002"
    METHOD_NOT_ALLOWED = "1003"
    RATE_LIMITED = "1004"

    # Server errors
    INTERNAL_ERROR = "2000"
    RETRIEVAL_TIMEOUT = "2001"

    # Remote store errors
    UPSTREAM_ERROR = "3000"


# Response messages mapped to codes
RESPONSE_MESSAGES: dict[ResponseCode, str] = {
    ResponseCode.VALIDATION_ERROR: "Request validation failed",
    ResponseCode.UNAUTHORIZED: "Unauthorized",
    ResponseCode.NOT_FOUND: "Not found",
    ResponseCode.METHOD_NOT_ALLOWED: "Method not allowed",
    ResponseCode.RATE_LIMITED: "Rate limit exceeded. Please wait and retry",
    ResponseCode.INTERNAL_ERROR: "An internal error occurred",
    ResponseCode.RETRIEVAL_TIMEOUT: "Retrieval timed out",
    ResponseCode.UPSTREAM_ERROR: "Document store request failed",
}

# HTTP status codes for each response code
HTTP_STATUS_MAP: dict[ResponseCode, int] = {
    ResponseCode.VALIDATION_ERROR: 400,
    ResponseCode.UNAUTHORIZED: 401,
    ResponseCode.NOT_FOUND: 404,
    ResponseCode.METHOD_NOT_ALLOWED: 405,
    ResponseCode.RATE_LIMITED: 429,
    ResponseCode.INTERNAL_ERROR: 500,
    ResponseCode.RETRIEVAL_TIMEOUT: 504,
    ResponseCode.UPSTREAM_ERROR: 502,
}


def get_message(code: ResponseCode) -> str:
    """Get the message for a response code."""
    return RESPONSE_MESSAGES.get(code, "Unknown error")


def get_http_status(code: ResponseCode) -> int:
    """Get HTTP status code for a response code."""
    return HTTP_STATUS_MAP.get(code, 500)


def code_for_status(status_code: int) -> ResponseCode:
    """Best response code for a bare HTTP status."""
    for code, status in HTTP_STATUS_MAP.items():
        if status == status_code:
            return code
    return (
        ResponseCode.VALIDATION_ERROR
        if 400 <= status_code < 500
        else ResponseCode.INTERNAL_ERROR
    )


def error_dict(
    code: ResponseCode,
    custom_message: str | None = None,
    error_details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Build a standardized error response dictionary."""
    return {
        "error": custom_message or get_message(code),
        "code": code.value,
        "timestamp": datetime.now(UTC).isoformat(),
        "request_id": request_id,
        "error_details": error_details,
    }


def error_response(
    code: ResponseCode,
    custom_message: str | None = None,
    request_id: str | None = None,
    status_code: int | None = None,
) -> JSONResponse:
    """Create a JSONResponse with error format."""
    return JSONResponse(
        content=error_dict(code, custom_message, request_id=request_id),
        status_code=status_code or get_http_status(code),
    )
