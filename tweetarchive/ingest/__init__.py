"""
Ingest Module

Archive validation, shard extraction and record transformation.

Usage:
    from tweetarchive.ingest import Archive, transform_record
"""

from tweetarchive.ingest.archive import Archive, decode_shard, validate_manifest
from tweetarchive.ingest.contract import (
    REQUIRED_PATHS,
    SHARD_GLOB,
    Message,
    TweetRecord,
    is_shard_path,
    transform_record,
)

__all__ = [
    "Archive",
    "Message",
    "TweetRecord",
    "REQUIRED_PATHS",
    "SHARD_GLOB",
    "decode_shard",
    "is_shard_path",
    "transform_record",
    "validate_manifest",
]
