"""Document projection: chunked, searchable text built from entity rows.

Documents are disposable. Every build deletes the previous set and
regenerates it in one transaction, so readers never see a half-built index
and chunk boundaries always reflect the full ordered text of their entity.
"""

import json
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from memory_etl.config import DocumentConfig
from memory_etl.ingest.extract import safe_string
from memory_etl.logging import get_logger
from memory_etl.models import Document
from memory_etl.store import PackStore

logger = get_logger("documents")

UNKNOWN_SENDER = "Unknown"


@dataclass
class Chunk:
    """Lines ``start`` (inclusive) to ``end`` (exclusive) joined by newlines."""

    text: str
    start: int
    end: int


def iter_chunks(lines: Iterable[str], min_chars: int, max_chars: int) -> Iterator[Chunk]:
    """Greedily pack lines into newline-joined chunks.

    A chunk is closed before the next line when adding that line would push
    it past ``max_chars`` and it already holds at least ``min_chars``. Lines
    are never split, so a single line longer than ``max_chars`` becomes an
    oversized chunk of its own.

    Args:
        lines: Lines in order
        min_chars: Size a chunk must reach before it may be closed
        max_chars: Size a chunk should not exceed

    Yields:
        Chunks in order
    """
    buffer: list[str] = []
    length = 0
    start = 0

    for index, line in enumerate(lines):
        added = len(line) + (1 if buffer else 0)
        if buffer and length + added > max_chars and length >= min_chars:
            yield Chunk("\n".join(buffer), start, index)
            buffer = []
            length = 0
            start = index
            added = len(line)
        buffer.append(line)
        length += added

    if buffer:
        yield Chunk("\n".join(buffer), start, start + len(buffer))


def chunk_lines(lines: Iterable[str], min_chars: int, max_chars: int) -> list[str]:
    """Chunk texts only; see iter_chunks()."""
    return [chunk.text for chunk in iter_chunks(lines, min_chars, max_chars)]


def render_message(sender_name: str | None, content: str | None, media_uri: str | None) -> str | None:
    """One transcript line for a message, or None if it has nothing to show."""
    sender = safe_string(sender_name) or UNKNOWN_SENDER
    text = safe_string(content)
    if text:
        return f"{sender}: {text}"
    if media_uri:
        return f"{sender}: [media] {media_uri}"
    return None


def _load_json(value: str | None):
    return json.loads(value) if value else None


def build_thread_documents(store: PackStore, config: DocumentConfig) -> Iterator[Document]:
    for thread in list(store.iter_threads()):
        lines: list[str] = []
        timestamps: list[int] = []
        for message in store.iter_thread_messages(thread["thread_id"]):
            line = render_message(message["sender_name"], message["content"], message["media_uri"])
            if line is None:
                continue
            lines.append(line)
            timestamps.append(message["timestamp_ms"])

        participants = _load_json(thread["participants_json"]) or []
        chunks = iter_chunks(lines, config.thread_min_chars, config.thread_max_chars)
        for index, chunk in enumerate(chunks):
            start_ts = timestamps[chunk.start]
            end_ts = timestamps[chunk.end - 1]
            yield Document(
                source="messages",
                source_id=thread["thread_id"],
                chunk_index=index,
                timestamp_ms=start_ts,
                text=chunk.text,
                metadata={
                    "thread_id": thread["thread_id"],
                    "title": thread["title"],
                    "participants": participants,
                    "chunk_index": index,
                    "start_ts": start_ts,
                    "end_ts": end_ts,
                    "source_file": thread["source_path"],
                },
            )


def build_post_documents(store: PackStore, config: DocumentConfig) -> Iterator[Document]:
    for post in list(store.iter_posts()):
        text = safe_string(post["content"]) or safe_string(post["title"])
        if not text:
            continue
        for index, chunk in enumerate(iter_chunks(text.split("\n"), 0, config.item_max_chars)):
            yield Document(
                source="posts",
                source_id=post["id"],
                chunk_index=index,
                timestamp_ms=post["timestamp_ms"],
                text=chunk.text,
                metadata={
                    "post_id": post["id"],
                    "title": post["title"],
                    "attachments": _load_json(post["attachments_json"]),
                    "place": _load_json(post["place_json"]),
                    "chunk_index": index,
                },
            )


def build_comment_documents(store: PackStore, config: DocumentConfig) -> Iterator[Document]:
    for comment in list(store.iter_comments()):
        text = safe_string(comment["content"])
        if not text:
            continue
        for index, chunk in enumerate(iter_chunks(text.split("\n"), 0, config.item_max_chars)):
            yield Document(
                source="comments",
                source_id=comment["id"],
                chunk_index=index,
                timestamp_ms=comment["timestamp_ms"],
                text=chunk.text,
                metadata={
                    "comment_id": comment["id"],
                    "author": comment["author"],
                    "parent_ref": comment["parent_ref"],
                    "chunk_index": index,
                },
            )


def rebuild_documents(
    store: PackStore,
    config: DocumentConfig | None = None,
    log: Callable[[str], None] | None = None,
) -> dict[str, int]:
    """Discard all documents and regenerate them from the entity tables.

    Args:
        store: Open pack store
        config: Chunk size settings (defaults to DocumentConfig())
        log: Optional progress line callback

    Returns:
        Number of documents written per source
    """
    if config is None:
        config = DocumentConfig()
    (log or logger.info)("rebuild documents + FTS")

    written = {"messages": 0, "posts": 0, "comments": 0}
    builders = (build_thread_documents, build_post_documents, build_comment_documents)
    with store.transaction():
        store.clear_documents()
        for build in builders:
            for document in build(store, config):
                store.upsert(document)
                written[document.source] += 1

    logger.debug(
        "Documents rebuilt: messages=%d posts=%d comments=%d",
        written["messages"],
        written["posts"],
        written["comments"],
    )
    return written
