"""Best-effort field extraction for schema-less export records.

Each logical attribute has an ordered list of candidate source fields and the
first present, non-empty value wins. The candidate order feeds the
content-addressable IDs, so new candidates are only ever appended.
"""

import math
from typing import Any

from memory_etl.models import dump_json

# Values below this magnitude are epoch seconds, not milliseconds
SECONDS_THRESHOLD = 10_000_000_000

MEDIA_FIELDS = ("photos", "videos", "gifs", "audio_files", "files")

TIMESTAMP_FIELDS = ("timestamp_ms", "timestamp", "creation_timestamp")


def safe_string(value: Any) -> str | None:
    """Trimmed string, or None for non-strings and blank strings."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def safe_number(value: Any) -> float | int | None:
    """Finite number from a number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            number = float(value)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def coerce_epoch_ms(value: float | int) -> int:
    """Epoch milliseconds from a value that may be in seconds."""
    if value < SECONDS_THRESHOLD:
        return math.floor(value * 1000)
    return math.floor(value)


def first_string(item: dict[str, Any], *fields: str) -> str | None:
    """First candidate field holding a non-empty string."""
    for name in fields:
        value = safe_string(item.get(name))
        if value is not None:
            return value
    return None


def best_timestamp_ms(item: dict[str, Any], fields: tuple[str, ...] = TIMESTAMP_FIELDS) -> int | None:
    """First numeric timestamp among the candidate fields, in milliseconds."""
    for name in fields:
        value = safe_number(item.get(name))
        if value is not None:
            return coerce_epoch_ms(value)
    return None


def _nested_data_text(item: dict[str, Any], key: str) -> str | None:
    data = item.get("data")
    if isinstance(data, dict):
        return safe_string(data.get(key))
    return None


def _data_list_text(item: dict[str, Any]) -> str | None:
    # Newer exports: "data": [{"post": "..."}] or [{"comment": {"comment": "..."}}]
    data = item.get("data")
    if not isinstance(data, list):
        return None
    for entry in data:
        if not isinstance(entry, dict):
            continue
        post = safe_string(entry.get("post"))
        if post is not None:
            return post
        comment = entry.get("comment")
        if isinstance(comment, dict):
            text = safe_string(comment.get("comment"))
            if text is not None:
                return text
    return None


def best_text(item: dict[str, Any]) -> str | None:
    """Best-effort body text of a generic item."""
    return (
        first_string(item, "text", "content", "title", "name")
        or _nested_data_text(item, "text")
        or _data_list_text(item)
    )


def first_media_uri(message: dict[str, Any]) -> str | None:
    """URI of the first attachment across the known media arrays."""
    for name in MEDIA_FIELDS:
        media = message.get(name)
        if not isinstance(media, list):
            continue
        for entry in media:
            if isinstance(entry, dict) and isinstance(entry.get("uri"), str) and entry["uri"]:
                return entry["uri"]
    return None


def json_or_none(value: Any) -> str | None:
    """Serialize a present value, keep None as None."""
    if value is None:
        return None
    return dump_json(value)
