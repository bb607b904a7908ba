"""
Tweet Archive - Request Dependencies

The store lives on ``app.state.store``; routers get it (and the services
built on it) through these FastAPI dependencies so tests can override them.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from .config import Settings, get_settings
from .db import TweetStore
from .services.ingest_service import IngestService
from .services.search import SearchEngine


def get_store(request: Request) -> Optional[TweetStore]:
    return getattr(request.app.state, "store", None)


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_search_engine(request: Request) -> SearchEngine:
    return SearchEngine(get_store(request))


def get_ingest_service(request: Request) -> IngestService:
    settings = get_app_settings(request)
    return IngestService(get_store(request), max_upload_bytes=settings.MAX_UPLOAD_BYTES)
