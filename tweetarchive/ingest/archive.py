"""
Tweet Archive - Archive Reader

Validates an uploaded tweet archive and extracts the tweet objects from its
month shards.

Zip archives keep their central directory at the end of the file, so an
upload is always buffered completely into memory before it is opened. The
buffer is bounded by MAX_UPLOAD_BYTES.

Usage:
    archive = Archive.from_stream(upload.file, max_bytes=settings.MAX_UPLOAD_BYTES)
    if not archive.is_valid():
        ...
    for entry, records in archive.extract_records():
        for record in records:
            ...
"""

from __future__ import annotations

import io
import json
import logging
import zipfile
import zlib
from typing import Any, BinaryIO, Dict, Iterable, Iterator, List, Optional, Tuple

from ..core.errors import (
    ERR_ARCHIVE_TOO_LARGE,
    ERR_ARCHIVE_UNREADABLE,
    ERR_PARSE_JSON,
    ERR_PARSE_NO_NEWLINE,
    ERR_PARSE_OPEN,
    ERR_PARSE_SHAPE,
    ParseError,
    StructuralError,
)
from .contract import REQUIRED_PATHS, is_shard_path

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024 * 1024


def validate_manifest(paths: Iterable[str]) -> bool:
    """
    Check a set of archive entry paths against the archive layout.

    Returns False (and logs which path is missing) instead of raising:
    an upload that is not a tweet archive is an expected outcome.
    """
    manifest = set(paths)

    for path in REQUIRED_PATHS:
        if path not in manifest:
            logger.warning("expected %s in zip file", path)
            return False

    if not any(is_shard_path(path) for path in manifest):
        logger.warning("expected to find at least one tweets JSON file in zip archive")
        return False

    return True


def decode_shard(entry: str, content: bytes) -> List[Dict[str, Any]]:
    """
    Decode one month shard.

    The first line is a JavaScript assignment and is discarded; the rest
    must be a JSON array of objects, optionally followed by a single ``;``.

    Raises:
        ParseError: no prefix line, invalid JSON, or not an array of objects.
    """
    newline = content.find(b"\n")
    if newline < 0:
        raise ParseError(entry, "no newline after the assignment prefix", error_code=ERR_PARSE_NO_NEWLINE)

    payload = content[newline + 1 :].rstrip()
    if payload.endswith(b";"):
        # A JavaScript statement terminator after the array
        payload = payload[:-1]

    try:
        body = json.loads(payload)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ParseError(entry, f"invalid JSON: {exc}", error_code=ERR_PARSE_JSON) from exc

    if not isinstance(body, list):
        raise ParseError(
            entry, f"expected a JSON array, got {type(body).__name__}", error_code=ERR_PARSE_SHAPE
        )
    for index, item in enumerate(body):
        if not isinstance(item, dict):
            raise ParseError(
                entry,
                f"element {index} is {type(item).__name__}, expected an object",
                error_code=ERR_PARSE_SHAPE,
            )

    return body


class Archive:
    """Random-access view over a buffered tweet archive zip."""

    def __init__(self, zip_file: zipfile.ZipFile):
        self._zip = zip_file

    @classmethod
    def from_bytes(cls, data: bytes) -> "Archive":
        try:
            zip_file = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
            raise StructuralError(f"not a zip archive: {exc}", error_code=ERR_ARCHIVE_UNREADABLE) from exc
        return cls(zip_file)

    @classmethod
    def from_stream(cls, stream: BinaryIO, max_bytes: Optional[int] = None) -> "Archive":
        """
        Buffer a (possibly non-seekable) upload stream and open it.

        Raises:
            StructuralError: the upload is larger than max_bytes or not a zip.
        """
        buffer = io.BytesIO()
        total = 0
        while True:
            chunk = stream.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if max_bytes is not None and total > max_bytes:
                raise StructuralError(
                    f"archive exceeds {max_bytes} bytes", error_code=ERR_ARCHIVE_TOO_LARGE
                )
            buffer.write(chunk)

        logger.debug("buffered %d byte upload", total)
        return cls.from_bytes(buffer.getvalue())

    @property
    def manifest(self) -> frozenset[str]:
        """Every entry path in the archive."""
        return frozenset(self._zip.namelist())

    def is_valid(self) -> bool:
        """True if this looks like a tweet archive as downloaded from Twitter."""
        return validate_manifest(self._zip.namelist())

    def shard_entries(self) -> List[str]:
        """Month shard paths in archive order."""
        return [name for name in self._zip.namelist() if is_shard_path(name)]

    def read_entry(self, entry: str) -> bytes:
        try:
            with self._zip.open(entry) as handle:
                return handle.read()
        except (KeyError, zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError) as exc:
            raise ParseError(entry, f"could not open entry: {exc}", error_code=ERR_PARSE_OPEN) from exc

    def iter_records(self, entry: str) -> Iterator[Dict[str, Any]]:
        """
        Lazily yield the tweet objects of one shard.

        Nothing is read until the first record is requested. Calling this
        again re-opens the entry and starts over.
        """
        yield from decode_shard(entry, self.read_entry(entry))

    def extract_records(self) -> Iterator[Tuple[str, Iterator[Dict[str, Any]]]]:
        """Yield (entry path, lazy record iterator) for every month shard."""
        for entry in self.shard_entries():
            yield entry, self.iter_records(entry)

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "Archive":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
