"""
Tweet Archive - Error Taxonomy

Every failure the ingest pipeline or the search path can report has a
stable error_code so it can be grepped in logs and referenced in docs.

Error Code Format: TWA-{CATEGORY}-{NUMBER}
- ARCHIVE (001-099): Upload is not a usable tweet archive
- PARSE (100-199): A tweets shard could not be read or decoded
- FIELD (200-299): A tweet record is missing or mistyping a field
- STORE (300-399): Database connectivity, schema or transaction failures
- INTERNAL (900-999): Unexpected internal errors

None of these are retried. Each failure is reported once to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .middleware import get_request_id

logger = logging.getLogger(__name__)


# =============================================================================
# ERROR CODES
# =============================================================================


class ErrorCategory(str, Enum):
    """Error category for classification."""

    ARCHIVE = "ARCHIVE"
    PARSE = "PARSE"
    FIELD = "FIELD"
    STORE = "STORE"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class ErrorCode:
    """Immutable error code definition."""

    code: str
    category: ErrorCategory
    message: str
    http_status: int = 500

    def __str__(self) -> str:
        return self.code


# -----------------------------------------------------------------------------
# ARCHIVE Errors (001-099)
# -----------------------------------------------------------------------------
ERR_ARCHIVE_INVALID = ErrorCode(
    code="TWA-ARCHIVE-001",
    category=ErrorCategory.ARCHIVE,
    message="invalid tweet archive zipfile",
)
ERR_ARCHIVE_UNREADABLE = ErrorCode(
    code="TWA-ARCHIVE-002",
    category=ErrorCategory.ARCHIVE,
    message="Upload is not a readable zip archive",
)
ERR_ARCHIVE_TOO_LARGE = ErrorCode(
    code="TWA-ARCHIVE-003",
    category=ErrorCategory.ARCHIVE,
    message="Upload exceeds the maximum archive size",
)
ERR_ARCHIVE_MISSING = ErrorCode(
    code="TWA-ARCHIVE-004",
    category=ErrorCategory.ARCHIVE,
    message="no zipfile in the upload form",
)

# -----------------------------------------------------------------------------
# PARSE Errors (100-199)
# -----------------------------------------------------------------------------
ERR_PARSE_OPEN = ErrorCode(
    code="TWA-PARSE-100",
    category=ErrorCategory.PARSE,
    message="Could not open tweets shard",
)
ERR_PARSE_NO_NEWLINE = ErrorCode(
    code="TWA-PARSE-101",
    category=ErrorCategory.PARSE,
    message="Tweets shard has no prefix line",
)
ERR_PARSE_JSON = ErrorCode(
    code="TWA-PARSE-102",
    category=ErrorCategory.PARSE,
    message="Tweets shard body is not valid JSON",
)
ERR_PARSE_SHAPE = ErrorCode(
    code="TWA-PARSE-103",
    category=ErrorCategory.PARSE,
    message="Tweets shard body is not an array of objects",
)

# -----------------------------------------------------------------------------
# FIELD Errors (200-299)
# -----------------------------------------------------------------------------
ERR_FIELD_MISSING = ErrorCode(
    code="TWA-FIELD-200",
    category=ErrorCategory.FIELD,
    message="Tweet record is missing a required field",
)
ERR_FIELD_INVALID = ErrorCode(
    code="TWA-FIELD-201",
    category=ErrorCategory.FIELD,
    message="Tweet record field has the wrong type or value",
)

# -----------------------------------------------------------------------------
# STORE Errors (300-399)
# -----------------------------------------------------------------------------
ERR_STORE_CONNECTION = ErrorCode(
    code="TWA-STORE-300",
    category=ErrorCategory.STORE,
    message="Database connection failed",
)
ERR_STORE_SCHEMA = ErrorCode(
    code="TWA-STORE-301",
    category=ErrorCategory.STORE,
    message="Could not provision the tweets table",
)
ERR_STORE_WRITE = ErrorCode(
    code="TWA-STORE-302",
    category=ErrorCategory.STORE,
    message="Tweet insert failed",
)
ERR_STORE_DUPLICATE = ErrorCode(
    code="TWA-STORE-303",
    category=ErrorCategory.STORE,
    message="Tweet id already exists",
)
ERR_STORE_QUERY = ErrorCode(
    code="TWA-STORE-304",
    category=ErrorCategory.STORE,
    message="Search query failed",
)
ERR_STORE_UNAVAILABLE = ErrorCode(
    code="TWA-STORE-305",
    category=ErrorCategory.STORE,
    message="Tweet store is not initialized",
)

# -----------------------------------------------------------------------------
# INTERNAL Errors (900-999)
# -----------------------------------------------------------------------------
ERR_INTERNAL = ErrorCode(
    code="TWA-INTERNAL-900",
    category=ErrorCategory.INTERNAL,
    message="Internal server error",
)


# =============================================================================
# EXCEPTIONS
# =============================================================================


class TweetArchiveError(Exception):
    """Base class for every failure reported by the archive pipeline."""

    default_code: ErrorCode = ERR_INTERNAL

    def __init__(self, message: str | None = None, *, error_code: ErrorCode | None = None):
        self.error_code = error_code or self.default_code
        self.message = message or self.error_code.message
        super().__init__(self.message)


class StructuralError(TweetArchiveError):
    """The upload is not a tweet archive (missing files, not a zip, too big)."""

    default_code = ERR_ARCHIVE_INVALID


class ParseError(TweetArchiveError):
    """A tweets shard could not be opened or decoded."""

    default_code = ERR_PARSE_JSON

    def __init__(self, entry: str, detail: str, *, error_code: ErrorCode | None = None):
        self.entry = entry
        self.detail = detail
        super().__init__(f"{entry}: {detail}", error_code=error_code)


class FieldError(TweetArchiveError):
    """A tweet record is missing, or mistyping, a field."""

    default_code = ERR_FIELD_INVALID

    def __init__(
        self,
        field: str,
        reason: str,
        *,
        record_id: str | None = None,
        error_code: ErrorCode | None = None,
    ):
        self.field = field
        self.reason = reason
        self.record_id = record_id
        where = f" (id_str={record_id})" if record_id else ""
        super().__init__(f"field '{field}' {reason}{where}", error_code=error_code)


class StoreError(TweetArchiveError):
    """Connection, schema provisioning or transaction failure."""

    default_code = ERR_STORE_WRITE

    def __init__(
        self,
        message: str | None = None,
        *,
        message_id: int | None = None,
        error_code: ErrorCode | None = None,
    ):
        self.message_id = message_id
        super().__init__(message, error_code=error_code)


class DuplicateMessageError(StoreError):
    """A tweet id in the batch already exists in the store."""

    default_code = ERR_STORE_DUPLICATE

    def __init__(self, message_id: int, detail: str | None = None):
        text = f"tweet {message_id} already exists"
        if detail:
            text = f"{text}: {detail}"
        super().__init__(text, message_id=message_id)


# =============================================================================
# Error Response Models
# =============================================================================


class ErrorResponse(BaseModel):
    """Standardized JSON error body."""

    error: str  # Stable error code, e.g. TWA-STORE-302
    message: str
    status_code: int
    request_id: str | None = None


def create_error_response(status_code: int, error: str, message: str) -> JSONResponse:
    """Create a standardized error response."""
    request_id = get_request_id()

    response = ErrorResponse(
        error=error,
        message=message,
        status_code=status_code,
        request_id=request_id if request_id else None,
    )

    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(exclude_none=True),
    )


# =============================================================================
# Exception Handlers
# =============================================================================


async def tweet_archive_exception_handler(request: Request, exc: TweetArchiveError) -> JSONResponse:
    """Map pipeline failures to a 500-class response carrying the message text."""
    logger.error(
        f"{exc.error_code.code}: {exc.message}",
        extra={
            "request_id": get_request_id(),
            "path": request.url.path,
            "error_code": exc.error_code.code,
        },
    )
    return create_error_response(
        status_code=exc.error_code.http_status,
        error=exc.error_code.code,
        message=exc.message,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all handler for unhandled exceptions.

    Logs the full traceback but returns a generic error to the client.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        extra={
            "request_id": get_request_id(),
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )
    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error=ERR_INTERNAL.code,
        message=ERR_INTERNAL.message,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on the application."""
    app.add_exception_handler(TweetArchiveError, tweet_archive_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
