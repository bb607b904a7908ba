"""
Tweet Archive - Full-Text Search

Ranked search over the tweets table using Postgres text search:
plainto_tsquery('english', ...) against the trigger-maintained tsv column,
ordered by ts_rank_cd, best match first. Results are not limited.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import psycopg
from psycopg.rows import dict_row

from ..core.errors import ERR_STORE_QUERY, StoreError
from ..db import TweetStore, require_store

logger = logging.getLogger(__name__)

SEARCH_SQL = """
    SELECT
        id::text AS id,
        text,
        ts_headline('english', text, q, 'HighlightAll=TRUE') AS headline,
        created_at
    FROM tweets, plainto_tsquery('english', %(query)s) q
    WHERE tsv @@ q
    ORDER BY ts_rank_cd(tsv, q) DESC
"""


@dataclass(frozen=True, slots=True)
class SearchResult:
    """One matching tweet. Built per query, never stored."""

    id: str
    text: str
    headline: str
    created_at: datetime


class SearchEngine:
    """Runs ranked text queries against a TweetStore."""

    def __init__(self, store: Optional[TweetStore]):
        self._store = store

    def search(self, query: str) -> List[SearchResult]:
        """
        Return every tweet matching the query, most relevant first.

        A blank query returns an empty list without touching the store.
        """
        if not query or not query.strip():
            return []

        logger.info("Search query: %r", query)
        store = require_store(self._store)

        with store.connection() as conn:
            try:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(SEARCH_SQL, {"query": query})
                    rows = cur.fetchall()
            except psycopg.Error as exc:
                raise StoreError(f"search failed: {exc}", error_code=ERR_STORE_QUERY) from exc

        results = [
            SearchResult(
                id=row["id"],
                text=row["text"],
                headline=row["headline"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
        logger.info("Search returned %d results", len(results), extra={"count": len(results)})
        return results
