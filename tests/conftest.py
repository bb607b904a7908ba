"""
tests/conftest.py

Pytest configuration and shared fixtures for the tweet archive test suite.

Unit tests never need a database: HTTP tests override the service
dependencies and store tests use MagicMock connections.

Integration tests (marked ``integration``) run against a real PostgreSQL
with PostGIS, named by TWEETARCHIVE_TEST_DATABASE_URL. They create and drop
the tweets table themselves, so point the variable at a scratch database.
"""

from __future__ import annotations

import os
from typing import Generator
from unittest.mock import MagicMock

import psycopg
import pytest

from tweetarchive.config import Settings, reset_settings
from tweetarchive.db import TweetStore

TEST_DB_ENV = "TWEETARCHIVE_TEST_DATABASE_URL"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as requiring a live PostgreSQL database",
    )


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    return Settings(ENVIRONMENT="dev", LOG_LEVEL="WARNING", MAX_UPLOAD_BYTES=1024 * 1024)


# ═══════════════════════════════════════════════════════════════════════════
# MOCKED STORE
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def mock_pool() -> MagicMock:
    """ConnectionPool stand-in whose getconn() hands out one MagicMock connection."""
    pool = MagicMock()
    conn = MagicMock()
    pool.getconn.return_value = conn
    return pool


@pytest.fixture
def mock_conn(mock_pool: MagicMock) -> MagicMock:
    return mock_pool.getconn.return_value


@pytest.fixture
def mock_cursor(mock_conn: MagicMock) -> MagicMock:
    return mock_conn.cursor.return_value.__enter__.return_value


@pytest.fixture
def mocked_store(mock_pool: MagicMock) -> TweetStore:
    return TweetStore(pool=mock_pool)


# ═══════════════════════════════════════════════════════════════════════════
# LIVE DATABASE
# ═══════════════════════════════════════════════════════════════════════════


def _drop_tweets_table(url: str) -> None:
    with psycopg.connect(url, autocommit=True) as conn:
        conn.execute("DROP TABLE IF EXISTS tweets")


@pytest.fixture
def live_store() -> Generator[TweetStore, None, None]:
    """
    A TweetStore on the test database with a freshly provisioned table.

    Skips when TWEETARCHIVE_TEST_DATABASE_URL is not set.
    """
    url = os.environ.get(TEST_DB_ENV)
    if not url:
        pytest.skip(f"{TEST_DB_ENV} not configured")

    _drop_tweets_table(url)
    store = TweetStore(url, min_size=1, max_size=2)
    store.open()
    try:
        store.ensure_schema()
        yield store
    finally:
        store.close()
        _drop_tweets_table(url)
