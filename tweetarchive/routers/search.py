"""
Tweet Archive - Search Router

GET /search?q=... returns every stored tweet matching the query, ranked by
Postgres text-search relevance.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..config import Settings
from ..deps import get_app_settings, get_search_engine
from ..services.search import SearchEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------


class TweetOut(BaseModel):
    """A single search hit."""

    id: str = Field(description="Tweet id as a decimal string")
    text: str
    timestamp: datetime
    headline: Optional[str] = Field(
        default=None,
        description="Text with matches highlighted (only when SEARCH_INCLUDE_HEADLINE is on)",
    )


class SearchResponse(BaseModel):
    tweets: list[TweetOut]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get(
    "/search",
    response_model=SearchResponse,
    response_model_exclude_none=True,
    summary="Full-text search over uploaded tweets",
)
def search_tweets(
    q: str = Query(default="", description="Free-text query"),
    engine: SearchEngine = Depends(get_search_engine),
    settings: Settings = Depends(get_app_settings),
) -> SearchResponse:
    """
    Search tweets. An empty query returns no results.

    Results are ordered best match first and are not paginated.
    """
    results = engine.search(q)

    tweets = [
        TweetOut(
            id=result.id,
            text=result.text,
            timestamp=result.created_at,
            headline=result.headline if settings.SEARCH_INCLUDE_HEADLINE else None,
        )
        for result in results
    ]
    return SearchResponse(tweets=tweets)
