"""Embedded pack store with SQLite persistence and FTS5 search."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Self

from memory_etl.models import Entity, Thread

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
    # REPLACE fires the documents delete trigger only with this on
    "PRAGMA recursive_triggers=ON;",
)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS threads (
    thread_id TEXT PRIMARY KEY,
    title TEXT,
    participants_json TEXT NOT NULL,
    source_path TEXT
);

CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    thread_id TEXT NOT NULL,
    timestamp_ms INTEGER NOT NULL,
    sender_name TEXT,
    content TEXT,
    msg_type TEXT,
    is_unsent INTEGER NOT NULL DEFAULT 0,
    media_uri TEXT,
    reactions_json TEXT,
    FOREIGN KEY (thread_id) REFERENCES threads(thread_id)
);

CREATE INDEX IF NOT EXISTS idx_messages_thread_ts ON messages(thread_id, timestamp_ms);
CREATE INDEX IF NOT EXISTS idx_messages_ts ON messages(timestamp_ms);

CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    timestamp_ms INTEGER,
    title TEXT,
    content TEXT,
    attachments_json TEXT,
    place_json TEXT
);

CREATE INDEX IF NOT EXISTS idx_posts_ts ON posts(timestamp_ms);

CREATE TABLE IF NOT EXISTS comments (
    id TEXT PRIMARY KEY,
    timestamp_ms INTEGER,
    author TEXT,
    content TEXT,
    parent_ref TEXT
);

CREATE INDEX IF NOT EXISTS idx_comments_ts ON comments(timestamp_ms);

CREATE TABLE IF NOT EXISTS reactions (
    id TEXT PRIMARY KEY,
    timestamp_ms INTEGER,
    actor TEXT,
    reaction TEXT,
    target_ref TEXT
);

CREATE INDEX IF NOT EXISTS idx_reactions_ts ON reactions(timestamp_ms);

CREATE TABLE IF NOT EXISTS documents (
    doc_id TEXT PRIMARY KEY,
    source TEXT NOT NULL,
    source_id TEXT,
    timestamp_ms INTEGER,
    text TEXT NOT NULL,
    metadata_json TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_documents_ts ON documents(timestamp_ms);
CREATE INDEX IF NOT EXISTS idx_documents_source ON documents(source, source_id);

CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts
USING fts5(doc_id, text, metadata_json, tokenize = 'porter');

CREATE TRIGGER IF NOT EXISTS documents_ai AFTER INSERT ON documents BEGIN
    INSERT INTO documents_fts (doc_id, text, metadata_json)
    VALUES (new.doc_id, new.text, new.metadata_json);
END;

-- Recreated by every ensure_schema() so existing stores pick up the current bodies
DROP TRIGGER IF EXISTS documents_ad;
DROP TRIGGER IF EXISTS documents_au;

CREATE TRIGGER documents_ad AFTER DELETE ON documents BEGIN
    DELETE FROM documents_fts WHERE doc_id = old.doc_id;
END;

CREATE TRIGGER documents_au AFTER UPDATE ON documents BEGIN
    DELETE FROM documents_fts WHERE doc_id = old.doc_id;
    INSERT INTO documents_fts (doc_id, text, metadata_json)
    VALUES (new.doc_id, new.text, new.metadata_json);
END;

CREATE TABLE IF NOT EXISTS ingested_files (
    path TEXT PRIMARY KEY,
    size_bytes INTEGER NOT NULL,
    mtime_ms INTEGER NOT NULL,
    ingested_at_ms INTEGER NOT NULL
);
"""

# Entity tables whose row counts are snapshotted in the manifest
COUNTED_TABLES = ("threads", "messages", "posts", "comments", "reactions", "documents")

REQUIRED_TABLES = COUNTED_TABLES + ("documents_fts", "ingested_files")


def fts_phrase(text: str) -> str:
    """Quote arbitrary user text as a single FTS5 phrase."""
    return '"' + text.replace('"', '""') + '"'


class PackStore:
    """Manages the pack's SQLite database.

    All entity tables, the document projection with its FTS5 index, and the
    ingested-files tracker live in this one file. Writes only become durable
    inside ``transaction()``.
    """

    def __init__(self, db_path: Path, read_only: bool = False) -> None:
        """Open (or create) the store.

        Args:
            db_path: Path to SQLite database file. Parent directories
                     will be created if they don't exist.
            read_only: Open an existing file without creating, configuring
                       or writing anything
        """
        self._db_path = db_path
        if read_only:
            self._conn = sqlite3.connect(f"{db_path.resolve().as_uri()}?mode=ro", uri=True)
            self._conn.row_factory = sqlite3.Row
            return

        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        for pragma in DEFAULT_PRAGMAS:
            self._conn.execute(pragma)

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def connection(self) -> sqlite3.Connection:
        """Access the underlying sqlite3 connection."""
        return self._conn

    def ensure_schema(self) -> None:
        """Create all tables, indexes and FTS triggers if they don't exist."""
        self._conn.executescript(SCHEMA_SQL)
        self._conn.commit()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit everything written inside the block, or nothing."""
        try:
            yield self._conn
            self._conn.commit()
        except BaseException:
            self._conn.rollback()
            raise

    def upsert_thread(self, thread: Thread) -> None:
        """Insert a thread or replace its metadata wholesale."""
        row = thread.to_row()
        self._conn.execute(
            """
            INSERT INTO threads (thread_id, title, participants_json, source_path)
            VALUES (:thread_id, :title, :participants_json, :source_path)
            ON CONFLICT(thread_id) DO UPDATE SET
                title = excluded.title,
                participants_json = excluded.participants_json,
                source_path = excluded.source_path
            """,
            row,
        )

    def upsert(self, entity: Entity) -> None:
        """INSERT OR REPLACE an entity row keyed by its content-addressable ID."""
        row = entity.to_row()
        columns = ", ".join(row)
        placeholders = ", ".join(f":{name}" for name in row)
        self._conn.execute(
            f"INSERT OR REPLACE INTO {entity.table} ({columns}) VALUES ({placeholders})",
            row,
        )

    def clear_documents(self) -> None:
        """Delete every document (the FTS delete trigger keeps the index in sync)."""
        self._conn.execute("DELETE FROM documents")

    def iter_threads(self) -> Iterator[sqlite3.Row]:
        yield from self._conn.execute(
            "SELECT thread_id, title, participants_json, source_path FROM threads ORDER BY thread_id"
        )

    def iter_thread_messages(self, thread_id: str) -> Iterator[sqlite3.Row]:
        """Messages of one thread in timestamp order, ties kept in insertion order."""
        yield from self._conn.execute(
            """
            SELECT sender_name, content, timestamp_ms, media_uri
            FROM messages
            WHERE thread_id = ?
            ORDER BY timestamp_ms ASC, rowid ASC
            """,
            (thread_id,),
        )

    def iter_posts(self) -> Iterator[sqlite3.Row]:
        yield from self._conn.execute(
            """
            SELECT id, timestamp_ms, title, content, attachments_json, place_json
            FROM posts
            ORDER BY id
            """
        )

    def iter_comments(self) -> Iterator[sqlite3.Row]:
        yield from self._conn.execute(
            "SELECT id, timestamp_ms, author, content, parent_ref FROM comments ORDER BY id"
        )

    def table_exists(self, name: str) -> bool:
        row = self._conn.execute(
            "SELECT name FROM sqlite_master WHERE type IN ('table', 'view') AND name = ?",
            (name,),
        ).fetchone()
        return row is not None

    def count_rows(self, table: str) -> int:
        if table not in REQUIRED_TABLES:
            raise ValueError(f"Unknown table: {table}")
        return int(self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])

    def counts(self) -> dict[str, int]:
        """Row counts for every entity kind recorded in the manifest."""
        return {table: self.count_rows(table) for table in COUNTED_TABLES}

    def search_documents(self, query: str, limit: int = 10) -> list[dict[str, Any]]:
        """Full-text search over documents.

        Args:
            query: Free text; matched as a single phrase
            limit: Maximum number of hits

        Returns:
            List of dicts with doc_id, source, source_id, timestamp_ms and text
        """
        cursor = self._conn.execute(
            """
            SELECT d.doc_id, d.source, d.source_id, d.timestamp_ms, d.text
            FROM documents_fts
            JOIN documents AS d ON d.doc_id = documents_fts.doc_id
            WHERE documents_fts MATCH ?
            ORDER BY rank
            LIMIT ?
            """,
            (fts_phrase(query), limit),
        )
        return [dict(row) for row in cursor]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> Self:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Exit context manager, closing database connection."""
        self.close()
