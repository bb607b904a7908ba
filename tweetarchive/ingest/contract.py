"""
Tweet Archive - Ingest Contract

The fixed layout of a downloaded tweet archive, and the typed record schema
every tweet must satisfy before it is handed to the store.

Archive layout:
    data/js/tweet_index.js        required
    data/js/user_details.js       required
    data/js/payload_details.js    required
    data/js/tweets/YYYY_MM.js     one or more month shards

Each month shard is a JavaScript file whose first line assigns to a global
(``Grailbird.data.tweets_2013_01 =``); everything after that line is a JSON
array of tweet objects.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError, field_validator

from ..core.errors import ERR_FIELD_INVALID, ERR_FIELD_MISSING, FieldError

# =============================================================================
# Archive Layout
# =============================================================================

REQUIRED_PATHS = (
    "data/js/tweet_index.js",
    "data/js/user_details.js",
    "data/js/payload_details.js",
)

SHARD_GLOB = "data/js/tweets/????_??.js"


def _compile_path_glob(glob: str) -> re.Pattern[str]:
    """
    Compile a path glob where ``?`` is exactly one character other than ``/``.

    fnmatch is not used because its ``?`` also matches the separator.
    """
    return re.compile("".join("[^/]" if char == "?" else re.escape(char) for char in glob))


SHARD_PATTERN = _compile_path_glob(SHARD_GLOB)

INT64_MAX = 2**63 - 1
_DIGITS = re.compile(r"[0-9]+")


def is_shard_path(path: str) -> bool:
    """True if an archive entry path is a month shard."""
    return SHARD_PATTERN.fullmatch(path) is not None


def parse_int64(value: str) -> int:
    """
    Parse a string-encoded tweet id.

    Only plain base-10 digits are accepted; anything that would need
    truncation or normalization is rejected.
    """
    if not _DIGITS.fullmatch(value):
        raise ValueError(f"not a base-10 integer: {value!r}")
    number = int(value)
    if number > INT64_MAX:
        raise ValueError(f"out of 64-bit range: {value}")
    return number


# =============================================================================
# Record Schema
# =============================================================================


class HashtagEntity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    text: StrictStr


class MentionEntity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    screen_name: StrictStr


class TweetEntities(BaseModel):
    model_config = ConfigDict(extra="ignore")

    hashtags: List[HashtagEntity] = []
    user_mentions: List[MentionEntity] = []


class TweetRecord(BaseModel):
    """
    Typed view of one tweet object from a month shard.

    Required: id_str, created_at, text. Everything else is optional and only
    checked when present. Unknown keys are ignored here; the raw object is
    kept separately as the full_tweet payload.
    """

    model_config = ConfigDict(extra="ignore")

    id_str: StrictStr
    created_at: StrictStr
    text: StrictStr
    in_reply_to_status_id_str: Optional[StrictStr] = None
    retweeted_status: Optional[Dict[str, Any]] = None
    entities: Optional[TweetEntities] = None

    @field_validator("id_str", "in_reply_to_status_id_str")
    @classmethod
    def _must_be_int64(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            parse_int64(value)
        return value


# =============================================================================
# Canonical Message
# =============================================================================


@dataclass(slots=True)
class Message:
    """A tweet ready to insert. Never mutated after it is stored."""

    id: int
    created_at: str
    text: str
    geog: Optional[str] = None  # Geography point; not populated from archives yet
    is_reply: bool = False
    is_rt: bool = False
    in_reply_to_status_id: Optional[int] = None
    hashtags: List[str] = field(default_factory=list)
    user_mentions: List[str] = field(default_factory=list)
    full_tweet: Dict[str, Any] = field(default_factory=dict)


def _field_error(record: Any, exc: ValidationError) -> FieldError:
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first.get("loc", ())) or "<record>"
    record_id = record.get("id_str") if isinstance(record, dict) else None
    if not isinstance(record_id, str):
        record_id = None

    if first.get("type") == "missing":
        return FieldError(loc, "is missing", record_id=record_id, error_code=ERR_FIELD_MISSING)

    reason = first.get("msg", "is invalid")
    return FieldError(loc, f"is invalid: {reason}", record_id=record_id, error_code=ERR_FIELD_INVALID)


def transform_record(record: Dict[str, Any]) -> Message:
    """
    Map one generic tweet object to a Message.

    Raises:
        FieldError: naming the first missing or mistyped field. No defaults
            are ever fabricated for required fields.
    """
    try:
        tweet = TweetRecord.model_validate(record)
    except ValidationError as exc:
        raise _field_error(record, exc) from exc

    reply_to = (
        parse_int64(tweet.in_reply_to_status_id_str)
        if tweet.in_reply_to_status_id_str is not None
        else None
    )
    entities = tweet.entities or TweetEntities()

    return Message(
        id=parse_int64(tweet.id_str),
        created_at=tweet.created_at,
        text=tweet.text,
        is_reply=reply_to is not None,
        is_rt=tweet.retweeted_status is not None,
        in_reply_to_status_id=reply_to,
        hashtags=[tag.text for tag in entities.hashtags],
        user_mentions=[mention.screen_name for mention in entities.user_mentions],
        full_tweet=record,
    )
