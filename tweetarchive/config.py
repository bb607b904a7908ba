"""
Tweet Archive - Configuration

Settings are read from the process environment only; .env files are not
auto-loaded.

Database:
  DATABASE_URL      - Full libpq DSN or postgres:// URL (takes precedence)
  DB_NAME           - Database name when DATABASE_URL is unset (tweetarchive)
  DB_HOST           - Database host (localhost)
  DB_PORT           - Database port (5432)
  DB_SSLMODE        - libpq sslmode (disable)
  DB_POOL_MIN_SIZE  - Connections kept open by the pool (1)
  DB_POOL_MAX_SIZE  - Upper bound on pooled connections (4)
  DB_CONNECT_TIMEOUT- Seconds to wait for a pooled connection (10)

Server:
  HOST / PORT       - Bind address (0.0.0.0:13331)
  ENVIRONMENT       - dev | staging | prod (prod switches to JSON logs)
  LOG_LEVEL         - DEBUG | INFO | WARNING | ERROR

Behavior:
  MAX_UPLOAD_BYTES        - Uploads larger than this are rejected before parsing
  SEARCH_INCLUDE_HEADLINE - Include the highlighted snippet in /search results
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from psycopg.conninfo import make_conninfo
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.logging import configure_structured_logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from the environment."""

    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # =========================================================================
    # DATABASE
    # =========================================================================

    DATABASE_URL: str = Field(
        default="",
        description="Postgres connection string (overrides the DB_* parts)",
    )
    DB_NAME: str = Field(default="tweetarchive")
    DB_HOST: str = Field(default="localhost")
    DB_PORT: int = Field(default=5432, ge=1, le=65535)
    DB_SSLMODE: str = Field(default="disable")
    DB_POOL_MIN_SIZE: int = Field(default=1, ge=0)
    DB_POOL_MAX_SIZE: int = Field(default=4, ge=1)
    DB_CONNECT_TIMEOUT: float = Field(default=10.0, gt=0)

    # =========================================================================
    # SERVER
    # =========================================================================

    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=13331, ge=1, le=65535)
    ENVIRONMENT: Literal["dev", "staging", "prod"] = Field(default="dev")
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    # =========================================================================
    # BEHAVIOR
    # =========================================================================

    MAX_UPLOAD_BYTES: int = Field(
        default=256 * 1024 * 1024,
        gt=0,
        description="Uploads are buffered in memory; larger archives are rejected",
    )
    SEARCH_INCLUDE_HEADLINE: bool = Field(
        default=False,
        description="Expose the ts_headline snippet in search responses",
    )

    @property
    def database_url(self) -> str:
        """DSN for psycopg: DATABASE_URL verbatim, else built from the DB_* parts."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return make_conninfo(
            dbname=self.DB_NAME,
            host=self.DB_HOST,
            port=self.DB_PORT,
            sslmode=self.DB_SSLMODE,
        )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "prod"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


def reset_settings() -> None:
    """Clear the cached settings (tests change the environment between runs)."""
    get_settings.cache_clear()


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure application logging based on settings.

    In production, uses structured JSON logging for observability.
    In development, uses colored console output.
    """
    if settings is None:
        settings = get_settings()

    configure_structured_logging(
        level=settings.LOG_LEVEL,
        json_output=settings.is_production,
        service_name="tweetarchive",
    )

    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
