"""
tests/helpers.py

Builders for in-memory tweet archives.
"""

from __future__ import annotations

import io
import json
import zipfile
from typing import Any, Iterable, Mapping

REQUIRED_FILES = {
    "data/js/tweet_index.js": "var tweet_index = [];\n",
    "data/js/user_details.js": 'var user_details = {"screen_name": "someone"};\n',
    "data/js/payload_details.js": 'var payload_details = {"tweets": 1};\n',
}


def tweet(id_str: str = "42", text: str = "hello world", created_at: str = "2013-01-01", **extra: Any) -> dict:
    record = {"id_str": id_str, "created_at": created_at, "text": text}
    record.update(extra)
    return record


def shard(records: Iterable[Mapping[str, Any]], prefix: str = "Grailbird.data.tweets_2013_01 =") -> bytes:
    """Month shard content: an assignment line, then a JSON array."""
    return (prefix + "\n" + json.dumps(list(records))).encode("utf-8")


def build_zip(files: Mapping[str, bytes | str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def build_archive(shards: Mapping[str, bytes | str] | None = None, **overrides: Any) -> bytes:
    """
    Zip containing the three required files plus the given shards.

    Pass ``drop=[...]`` to leave required files out, and ``extra={...}``
    for unrelated entries.
    """
    files: dict[str, bytes | str] = dict(REQUIRED_FILES)
    for path in overrides.get("drop", ()):
        files.pop(path, None)
    files.update(overrides.get("extra", {}))
    if shards is None:
        shards = {"data/js/tweets/2013_01.js": shard([tweet()])}
    files.update(shards)
    return build_zip(files)
