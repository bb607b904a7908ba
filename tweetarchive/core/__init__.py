"""
Tweet Archive - Core

Cross-cutting pieces shared by the ingest pipeline and the HTTP layer:
error taxonomy, structured logging and request middleware.
"""

from .errors import (
    DuplicateMessageError,
    FieldError,
    ParseError,
    StoreError,
    StructuralError,
    TweetArchiveError,
)
from .logging import LogContext, configure_structured_logging, get_logger

__all__ = [
    "TweetArchiveError",
    "StructuralError",
    "ParseError",
    "FieldError",
    "StoreError",
    "DuplicateMessageError",
    "LogContext",
    "configure_structured_logging",
    "get_logger",
]
