"""Normalized entity models stored in a pack."""

import json
from dataclasses import dataclass
from typing import Any, ClassVar


def dump_json(value: Any) -> str:
    """Compact, key-order-preserving JSON used for every serialized column."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


@dataclass
class Thread:
    """One conversation, keyed by its folder path inside the export."""

    thread_id: str
    title: str | None
    participants: list[Any]
    source_path: str

    def to_row(self) -> dict[str, Any]:
        return {
            "thread_id": self.thread_id,
            "title": self.title,
            "participants_json": dump_json(self.participants),
            "source_path": self.source_path,
        }


@dataclass
class Message:
    """One utterance within a thread."""

    table: ClassVar[str] = "messages"

    id: str
    thread_id: str
    timestamp_ms: int
    sender_name: str | None
    content: str | None
    msg_type: str | None
    is_unsent: bool
    media_uri: str | None
    reactions_json: str | None

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "thread_id": self.thread_id,
            "timestamp_ms": self.timestamp_ms,
            "sender_name": self.sender_name,
            "content": self.content,
            "msg_type": self.msg_type,
            "is_unsent": 1 if self.is_unsent else 0,
            "media_uri": self.media_uri,
            "reactions_json": self.reactions_json,
        }


@dataclass
class Post:
    table: ClassVar[str] = "posts"

    id: str
    timestamp_ms: int | None
    title: str | None
    content: str | None
    attachments_json: str | None
    place_json: str | None

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp_ms": self.timestamp_ms,
            "title": self.title,
            "content": self.content,
            "attachments_json": self.attachments_json,
            "place_json": self.place_json,
        }


@dataclass
class Comment:
    table: ClassVar[str] = "comments"

    id: str
    timestamp_ms: int | None
    author: str | None
    content: str | None
    parent_ref: str | None

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp_ms": self.timestamp_ms,
            "author": self.author,
            "content": self.content,
            "parent_ref": self.parent_ref,
        }


@dataclass
class Reaction:
    table: ClassVar[str] = "reactions"

    id: str
    timestamp_ms: int | None
    actor: str | None
    reaction: str | None
    target_ref: str | None

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp_ms": self.timestamp_ms,
            "actor": self.actor,
            "reaction": self.reaction,
            "target_ref": self.target_ref,
        }


@dataclass
class Document:
    """A chunk of searchable text derived from one entity."""

    table: ClassVar[str] = "documents"

    source: str  # messages, posts, comments
    source_id: str
    chunk_index: int
    timestamp_ms: int | None
    text: str
    metadata: dict[str, Any]

    @property
    def doc_id(self) -> str:
        """Stable document ID: {source}:{owner id}:{chunk index}."""
        return f"{self.source}:{self.source_id}:{self.chunk_index}"

    def to_row(self) -> dict[str, Any]:
        return {
            "doc_id": self.doc_id,
            "source": self.source,
            "source_id": self.source_id,
            "timestamp_ms": self.timestamp_ms,
            "text": self.text,
            "metadata_json": dump_json(self.metadata),
        }


Entity = Message | Post | Comment | Reaction | Document
