"""
Tweet Archive - Ingest Service

Runs one upload through the pipeline:

    buffered zip -> validate -> extract shards -> transform records -> load

The whole upload is loaded in a single store transaction. A structural
problem is reported before the store is touched; a bad shard, a bad record
or a failed insert rolls back everything from the upload.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO, Iterator, Optional

from ..core.errors import ERR_ARCHIVE_INVALID, StructuralError
from ..core.logging import LogContext
from ..db import TweetStore, require_store
from ..ingest.archive import Archive
from ..ingest.contract import Message, transform_record

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestResult:
    """Outcome of one successful upload."""

    upload_id: str
    shards: int = 0
    records: int = 0
    inserted: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    def summary(self) -> str:
        duration = ""
        if self.completed_at:
            delta = (self.completed_at - self.started_at).total_seconds()
            duration = f" in {delta:.2f}s"
        return (
            f"Upload {self.upload_id}{duration}: "
            f"{self.shards} shards, {self.records} records, {self.inserted} inserted"
        )


class IngestService:
    """Loads tweet archives into a TweetStore."""

    def __init__(self, store: Optional[TweetStore], max_upload_bytes: Optional[int] = None):
        self._store = store
        self._max_upload_bytes = max_upload_bytes

    def ingest_stream(self, stream: BinaryIO) -> IngestResult:
        """Buffer an uploaded file object and ingest it."""
        with Archive.from_stream(stream, max_bytes=self._max_upload_bytes) as archive:
            return self.ingest_archive(archive)

    def ingest_archive(self, archive: Archive) -> IngestResult:
        """
        Validate and load an archive.

        Raises:
            StructuralError: the archive is not a tweet archive.
            ParseError: a month shard could not be decoded.
            FieldError: a tweet record is missing or mistyping a field.
            StoreError: the store is unavailable or the load failed.
        """
        if not archive.is_valid():
            raise StructuralError(error_code=ERR_ARCHIVE_INVALID)

        store = require_store(self._store)
        result = IngestResult(upload_id=uuid.uuid4().hex)

        with LogContext(upload_id=result.upload_id):
            logger.info("Ingesting archive with %d shards", len(archive.shard_entries()))
            result.inserted = store.load_batch(self._iter_messages(archive, result))
            result.completed_at = datetime.now(timezone.utc)
            logger.info(result.summary())

        return result

    def _iter_messages(self, archive: Archive, result: IngestResult) -> Iterator[Message]:
        for entry, records in archive.extract_records():
            count = 0
            for record in records:
                yield transform_record(record)
                count += 1
            logger.debug("Read %d records from %s", count, entry, extra={"entry": entry, "count": count})
            result.shards += 1
            result.records += count
