"""Normalization of message-thread files.

A thread file looks like::

    {
      "title": "Alice and Bob",
      "participants": [{"name": "Alice"}, {"name": "Bob"}],
      "messages": [
        {"sender_name": "Alice", "timestamp_ms": 1700000000000,
         "content": "hi", "type": "Generic", "is_unsent": false,
         "photos": [{"uri": "photos/1.jpg"}], "reactions": [...]},
        ...
      ]
    }
"""

from pathlib import PurePosixPath
from typing import Any

from memory_etl.hashing import content_id
from memory_etl.ingest.extract import (
    best_timestamp_ms,
    first_media_uri,
    safe_string,
)
from memory_etl.models import Message, Thread, dump_json

MESSAGE_TIMESTAMP_FIELDS = ("timestamp_ms", "timestamp")


def thread_id_for(rel_path: str) -> str:
    """Thread ID: the export-relative folder holding the message file."""
    return str(PurePosixPath(rel_path).parent)


def normalize_thread(title: Any, participants: Any, rel_path: str) -> Thread:
    """Build the thread row from the file's header values."""
    return Thread(
        thread_id=thread_id_for(rel_path),
        title=safe_string(title),
        participants=participants if isinstance(participants, list) else [],
        source_path=rel_path,
    )


def normalize_message(
    item: dict[str, Any],
    thread_id: str,
    rel_path: str,
    index: int,
) -> Message:
    """Normalize one message record.

    Args:
        item: Raw message object
        thread_id: Owning thread
        rel_path: Export-relative path of the source file
        index: Position of the message in the file's messages array

    Returns:
        Message with a content-addressable ID
    """
    timestamp_ms = best_timestamp_ms(item, MESSAGE_TIMESTAMP_FIELDS) or 0
    sender_name = safe_string(item.get("sender_name"))
    content = safe_string(item.get("content"))
    reactions = item.get("reactions")

    return Message(
        id=content_id(thread_id, rel_path, index, timestamp_ms, sender_name, content),
        thread_id=thread_id,
        timestamp_ms=timestamp_ms,
        sender_name=sender_name,
        content=content,
        msg_type=safe_string(item.get("type")),
        is_unsent=item.get("is_unsent") is True,
        media_uri=first_media_uri(item),
        reactions_json=dump_json(reactions) if isinstance(reactions, list) else None,
    )
