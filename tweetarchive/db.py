# tweetarchive/db.py
"""
Tweet Archive - Database Layer

TweetStore owns the PostgreSQL connection pool (psycopg3 + psycopg_pool)
and the tweets table. One store is created per process by the application
lifespan and handed to the components that need it; nothing here is
module-global.

Pooled connections run in autocommit mode. Writes open an explicit
transaction with ``conn.transaction()``, which rolls back on any exception.

The tsv column is maintained by a database trigger so that write-time and
query-time tokenization both come from Postgres' english configuration.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional

import psycopg
from psycopg.conninfo import conninfo_to_dict
from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from .config import Settings
from .core.errors import (
    ERR_STORE_CONNECTION,
    ERR_STORE_SCHEMA,
    ERR_STORE_UNAVAILABLE,
    ERR_STORE_WRITE,
    DuplicateMessageError,
    StoreError,
)
from .ingest.contract import Message

logger = logging.getLogger(__name__)

TABLE_NAME = "tweets"

TABLE_EXISTS_SQL = """
    SELECT EXISTS (
        SELECT 1 FROM pg_catalog.pg_tables
        WHERE schemaname = current_schema() AND tablename = %(table)s
    )
"""

CREATE_TABLE_STATEMENTS = (
    """
    CREATE TABLE tweets (
        id bigint,
        created_at timestamptz,
        geog geography(point),
        text text,
        is_reply boolean DEFAULT 'f',
        is_rt boolean DEFAULT 'f',
        in_reply_to_status_id bigint,
        hashtags text[],
        user_mentions text[],
        tsv tsvector,
        full_tweet json,
        PRIMARY KEY (id)
    )
    """,
    """
    CREATE TRIGGER ts_tsv BEFORE INSERT OR UPDATE ON tweets
    FOR EACH ROW EXECUTE PROCEDURE tsvector_update_trigger(tsv, 'pg_catalog.english', text)
    """,
    "CREATE INDEX ON tweets USING gin(tsv)",
    "CREATE INDEX ON tweets USING gist(geog)",
)

INSERT_SQL = """
    INSERT INTO tweets (
        id, created_at, geog, text, is_reply, is_rt,
        in_reply_to_status_id, hashtags, user_mentions, full_tweet
    ) VALUES (
        %(id)s::bigint, %(created_at)s::timestamptz, %(geog)s::geography, %(text)s::text,
        %(is_reply)s::boolean, %(is_rt)s::boolean, %(in_reply_to_status_id)s::bigint,
        %(hashtags)s::text[], %(user_mentions)s::text[], %(full_tweet)s
    )
"""


def _dsn_for_logging(conninfo: str) -> dict[str, Any]:
    """Loggable DSN components (never the password)."""
    try:
        params = conninfo_to_dict(conninfo)
    except psycopg.ProgrammingError as e:
        return {"error": str(e)}
    return {key: params.get(key) for key in ("host", "port", "dbname", "user", "sslmode")}


def message_params(message: Message) -> dict[str, Any]:
    """Bind parameters for INSERT_SQL."""
    return {
        "id": message.id,
        "created_at": message.created_at,
        "geog": message.geog,
        "text": message.text,
        "is_reply": message.is_reply,
        "is_rt": message.is_rt,
        "in_reply_to_status_id": message.in_reply_to_status_id,
        "hashtags": message.hashtags,
        "user_mentions": message.user_mentions,
        "full_tweet": Json(message.full_tweet),
    }


class TweetStore:
    """
    Handle on the tweets database.

    Construct with a conninfo string (or an already-built pool), call
    open() at process start and close() at shutdown.
    """

    def __init__(
        self,
        conninfo: str = "",
        *,
        min_size: int = 1,
        max_size: int = 4,
        timeout: float = 10.0,
        pool: Optional[ConnectionPool] = None,
    ):
        self._conninfo = conninfo
        self._timeout = timeout
        self._pool = pool or ConnectionPool(
            conninfo,
            min_size=min_size,
            max_size=max_size,
            kwargs={"autocommit": True},
            open=False,
            name="tweetarchive",
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "TweetStore":
        return cls(
            settings.database_url,
            min_size=settings.DB_POOL_MIN_SIZE,
            max_size=settings.DB_POOL_MAX_SIZE,
            timeout=settings.DB_CONNECT_TIMEOUT,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(self) -> None:
        """Open the pool and wait for the first connection."""
        logger.info("Opening tweet store pool: %s", _dsn_for_logging(self._conninfo))
        try:
            self._pool.open(wait=True, timeout=self._timeout)
        except psycopg.OperationalError as exc:
            raise StoreError(
                f"could not connect to the database: {exc}", error_code=ERR_STORE_CONNECTION
            ) from exc

    def close(self) -> None:
        self._pool.close()
        logger.info("Tweet store pool closed")

    @contextmanager
    def connection(self) -> Iterator[psycopg.Connection]:
        """Borrow a pooled (autocommit) connection."""
        try:
            conn = self._pool.getconn(timeout=self._timeout)
        except psycopg.OperationalError as exc:
            # PoolTimeout and PoolClosed are OperationalErrors
            raise StoreError(
                f"could not get a database connection: {exc}", error_code=ERR_STORE_CONNECTION
            ) from exc
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    def check_ready(self) -> bool:
        """Readiness probe: True if SELECT 1 succeeds."""
        try:
            with self.connection() as conn:
                conn.execute("SELECT 1")
            return True
        except (StoreError, psycopg.Error) as exc:
            logger.warning("Tweet store not ready: %s", exc)
            return False

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def table_exists(self) -> bool:
        try:
            with self.connection() as conn:
                row = conn.execute(TABLE_EXISTS_SQL, {"table": TABLE_NAME}).fetchone()
        except psycopg.Error as exc:
            raise StoreError(
                f"could not inspect schema: {exc}", error_code=ERR_STORE_SCHEMA
            ) from exc
        return bool(row and row[0])

    def ensure_schema(self) -> bool:
        """
        Create the tweets table, trigger and indexes if the table is absent.

        Idempotent: returns False without touching anything when the table
        already exists, True when it was created.
        """
        if self.table_exists():
            logger.debug("tweets table already exists")
            return False

        logger.info("creating tweets table")
        try:
            with self.connection() as conn:
                with conn.transaction():
                    for statement in CREATE_TABLE_STATEMENTS:
                        conn.execute(statement)
        except psycopg.Error as exc:
            raise StoreError(
                f"couldn't create the tweets table: {exc}", error_code=ERR_STORE_SCHEMA
            ) from exc
        return True

    # -------------------------------------------------------------------------
    # Batch load
    # -------------------------------------------------------------------------

    def load_batch(self, messages: Iterable[Message]) -> int:
        """
        Insert every message in one transaction.

        The iterable is consumed inside the transaction, so an error raised
        while producing a message (ParseError, FieldError) aborts the batch
        the same way a failed INSERT does: nothing is committed.

        Returns:
            Number of rows inserted.

        Raises:
            DuplicateMessageError: a message id already exists.
            StoreError: any other database failure, naming the row.
        """
        inserted = 0
        with self.connection() as conn:
            try:
                with conn.transaction():
                    with conn.cursor() as cur:
                        for message in messages:
                            try:
                                cur.execute(INSERT_SQL, message_params(message), prepare=True)
                            except psycopg.errors.UniqueViolation as exc:
                                raise DuplicateMessageError(
                                    message.id, exc.diag.message_detail
                                ) from exc
                            except psycopg.Error as exc:
                                raise StoreError(
                                    f"insert of tweet {message.id} failed: {exc}",
                                    message_id=message.id,
                                    error_code=ERR_STORE_WRITE,
                                ) from exc
                            inserted += 1
            except psycopg.Error as exc:
                # BEGIN/COMMIT themselves failed
                raise StoreError(f"batch transaction failed: {exc}", error_code=ERR_STORE_WRITE) from exc

        logger.info("Inserted %d tweets", inserted, extra={"count": inserted})
        return inserted


def require_store(store: Optional[TweetStore]) -> TweetStore:
    """Return the store or raise if the process started without one."""
    if store is None:
        raise StoreError(error_code=ERR_STORE_UNAVAILABLE)
    return store
