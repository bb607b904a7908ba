"""
Tests for the TweetStore database layer (mocked connections).

Tests cover:
- Idempotent schema provisioning
- Batch load: one transaction, prepared insert, all-or-nothing
- Error mapping (duplicate id, write failure, connection failure)
"""

from __future__ import annotations

from unittest.mock import MagicMock

import psycopg
import pytest
from psycopg_pool import PoolTimeout

from tweetarchive.config import Settings
from tweetarchive.core.errors import (
    ERR_STORE_CONNECTION,
    ERR_STORE_SCHEMA,
    ERR_STORE_UNAVAILABLE,
    ERR_STORE_WRITE,
    DuplicateMessageError,
    FieldError,
    StoreError,
)
from tweetarchive.db import (
    CREATE_TABLE_STATEMENTS,
    INSERT_SQL,
    TweetStore,
    message_params,
    require_store,
)
from tweetarchive.ingest.contract import Message


def _messages(*ids: int) -> list[Message]:
    return [Message(id=i, created_at="2013-01-01", text=f"tweet {i}") for i in ids]


def _exists(mock_conn: MagicMock, value: bool) -> None:
    mock_conn.execute.return_value.fetchone.return_value = (value,)


# =============================================================================
# CONNECTIONS
# =============================================================================


class TestConnection:
    def test_connection_is_returned_to_pool(self, mocked_store, mock_pool, mock_conn) -> None:
        with mocked_store.connection() as conn:
            assert conn is mock_conn
        mock_pool.putconn.assert_called_once_with(mock_conn)

    def test_connection_is_returned_on_error(self, mocked_store, mock_pool, mock_conn) -> None:
        with pytest.raises(RuntimeError):
            with mocked_store.connection():
                raise RuntimeError("boom")
        mock_pool.putconn.assert_called_once_with(mock_conn)

    def test_pool_timeout_is_store_error(self, mocked_store, mock_pool) -> None:
        mock_pool.getconn.side_effect = PoolTimeout("couldn't get a connection after 10 sec")

        with pytest.raises(StoreError) as exc_info:
            with mocked_store.connection():
                pass
        assert exc_info.value.error_code is ERR_STORE_CONNECTION

    def test_open_failure_is_store_error(self, mocked_store, mock_pool) -> None:
        mock_pool.open.side_effect = PoolTimeout("pool initialization incomplete")

        with pytest.raises(StoreError) as exc_info:
            mocked_store.open()
        assert exc_info.value.error_code is ERR_STORE_CONNECTION

    def test_check_ready(self, mocked_store, mock_conn) -> None:
        assert mocked_store.check_ready() is True
        mock_conn.execute.assert_called_once_with("SELECT 1")

    def test_check_ready_false_when_database_down(self, mocked_store, mock_pool) -> None:
        mock_pool.getconn.side_effect = PoolTimeout("down")
        assert mocked_store.check_ready() is False

    def test_require_store(self, mocked_store) -> None:
        assert require_store(mocked_store) is mocked_store
        with pytest.raises(StoreError) as exc_info:
            require_store(None)
        assert exc_info.value.error_code is ERR_STORE_UNAVAILABLE

    def test_from_settings_builds_dsn_from_parts(self) -> None:
        settings = Settings(DATABASE_URL="", DB_NAME="tweets_test", DB_HOST="db", DB_PORT=6543)
        assert "dbname=tweets_test" in settings.database_url
        assert "host=db" in settings.database_url
        assert "port=6543" in settings.database_url


# =============================================================================
# SCHEMA
# =============================================================================


class TestEnsureSchema:
    def test_creates_table_when_absent(self, mocked_store, mock_conn) -> None:
        _exists(mock_conn, False)

        assert mocked_store.ensure_schema() is True

        mock_conn.transaction.assert_called_once()
        executed = [c.args[0] for c in mock_conn.execute.call_args_list[1:]]
        assert executed == list(CREATE_TABLE_STATEMENTS)

    def test_noop_when_table_exists(self, mocked_store, mock_conn) -> None:
        _exists(mock_conn, True)

        assert mocked_store.ensure_schema() is False

        mock_conn.transaction.assert_not_called()
        assert mock_conn.execute.call_count == 1

    def test_create_failure_is_store_error(self, mocked_store, mock_conn) -> None:
        _exists(mock_conn, False)
        calls = {"n": 0}

        def execute(sql, *args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                return MagicMock(fetchone=MagicMock(return_value=(False,)))
            raise psycopg.errors.UndefinedObject('type "geography" does not exist')

        mock_conn.execute.side_effect = execute

        with pytest.raises(StoreError) as exc_info:
            mocked_store.ensure_schema()
        assert exc_info.value.error_code is ERR_STORE_SCHEMA
        assert "geography" in str(exc_info.value)

    def test_schema_has_trigger_and_indexes(self) -> None:
        ddl = "\n".join(CREATE_TABLE_STATEMENTS)
        assert "PRIMARY KEY (id)" in ddl
        assert "tsvector_update_trigger(tsv, 'pg_catalog.english', text)" in ddl
        assert "USING gin(tsv)" in ddl
        assert "USING gist(geog)" in ddl
        for column in ("in_reply_to_status_id", "hashtags text[]", "user_mentions text[]", "full_tweet json"):
            assert column in ddl


# =============================================================================
# BATCH LOAD
# =============================================================================


class TestLoadBatch:
    def test_inserts_every_message_in_one_transaction(self, mocked_store, mock_conn, mock_cursor) -> None:
        inserted = mocked_store.load_batch(_messages(1, 2, 3))

        assert inserted == 3
        mock_conn.transaction.assert_called_once()
        assert mock_cursor.execute.call_count == 3
        for call in mock_cursor.execute.call_args_list:
            assert call.args[0] == INSERT_SQL
            assert call.kwargs == {"prepare": True}

    def test_params_match_message(self) -> None:
        message = Message(
            id=7,
            created_at="2013-01-01",
            text="hi #python",
            is_reply=True,
            in_reply_to_status_id=6,
            hashtags=["python"],
            user_mentions=["alice"],
            full_tweet={"id_str": "7"},
        )

        params = message_params(message)

        assert params["id"] == 7
        assert params["geog"] is None
        assert params["in_reply_to_status_id"] == 6
        assert params["hashtags"] == ["python"]
        assert params["full_tweet"].obj == {"id_str": "7"}

    def test_empty_batch(self, mocked_store, mock_cursor) -> None:
        assert mocked_store.load_batch([]) == 0
        mock_cursor.execute.assert_not_called()

    def test_duplicate_id_aborts_batch(self, mocked_store, mock_conn, mock_cursor) -> None:
        mock_cursor.execute.side_effect = [
            None,
            psycopg.errors.UniqueViolation('duplicate key value violates unique constraint "tweets_pkey"'),
            None,
        ]

        with pytest.raises(DuplicateMessageError) as exc_info:
            mocked_store.load_batch(_messages(1, 2, 3))

        assert exc_info.value.message_id == 2
        assert "tweet 2 already exists" in str(exc_info.value)
        # The transaction context saw the exception, so it rolled back
        exit_args = mock_conn.transaction.return_value.__exit__.call_args.args
        assert exit_args[0] is DuplicateMessageError
        assert mock_cursor.execute.call_count == 2

    def test_write_failure_names_row(self, mocked_store, mock_cursor) -> None:
        mock_cursor.execute.side_effect = psycopg.errors.InvalidDatetimeFormat(
            'invalid input syntax for type timestamp with time zone: "yesterday-ish"'
        )

        with pytest.raises(StoreError) as exc_info:
            mocked_store.load_batch(_messages(5))

        assert exc_info.value.message_id == 5
        assert exc_info.value.error_code is ERR_STORE_WRITE
        assert "tweet 5" in str(exc_info.value)

    def test_error_from_message_source_aborts_batch(self, mocked_store, mock_conn, mock_cursor) -> None:
        def source():
            yield from _messages(1)
            raise FieldError("text", "is missing")

        with pytest.raises(FieldError):
            mocked_store.load_batch(source())

        exit_args = mock_conn.transaction.return_value.__exit__.call_args.args
        assert exit_args[0] is FieldError
        assert mock_cursor.execute.call_count == 1

    def test_commit_failure_is_store_error(self, mocked_store, mock_conn) -> None:
        mock_conn.transaction.return_value.__exit__.side_effect = psycopg.OperationalError(
            "server closed the connection unexpectedly"
        )

        with pytest.raises(StoreError) as exc_info:
            mocked_store.load_batch(_messages(1))
        assert "batch transaction failed" in str(exc_info.value)
