"""Ingestion tracker persisted in the pack store."""

import sqlite3
from dataclasses import dataclass
from pathlib import Path

from memory_etl.store import PackStore


@dataclass
class IngestedFileState:
    """State information for an ingested export file."""

    path: str
    size_bytes: int
    mtime_ms: int
    ingested_at_ms: int | None = None


def stat_file(path: Path) -> tuple[int, int]:
    """Return (size in bytes, modification time in whole milliseconds)."""
    st = path.stat()
    return st.st_size, st.st_mtime_ns // 1_000_000


class IngestionTracker:
    """Records which export files have been ingested.

    A file is unchanged only if its relative path, size and modification
    time all match the recorded values exactly. Content is never hashed.

    The tracker shares the store's connection and never commits on its own:
    ``record_ingested`` is meant to run inside the same transaction as the
    file's rows so that both land together or not at all.
    """

    def __init__(self, store: PackStore) -> None:
        """Initialize the tracker on an open store.

        Args:
            store: PackStore whose schema has been ensured
        """
        self._conn = store.connection

    def get_record(self, path: str) -> IngestedFileState | None:
        """Get the recorded state of a file.

        Args:
            path: Export-relative file path

        Returns:
            IngestedFileState if found, None otherwise
        """
        row = self._conn.execute(
            """
            SELECT path, size_bytes, mtime_ms, ingested_at_ms
            FROM ingested_files
            WHERE path = ?
            """,
            (path,),
        ).fetchone()
        if row is None:
            return None
        return _to_state(row)

    def was_ingested(self, path: str, size_bytes: int, mtime_ms: int) -> bool:
        """Check whether a file is unchanged since it was last ingested.

        Args:
            path: Export-relative file path
            size_bytes: Current size
            mtime_ms: Current modification time in milliseconds

        Returns:
            True if path, size and mtime all match the recorded entry
        """
        record = self.get_record(path)
        if record is None:
            return False
        return record.size_bytes == size_bytes and record.mtime_ms == mtime_ms

    def record_ingested(
        self,
        path: str,
        size_bytes: int,
        mtime_ms: int,
        ingested_at_ms: int,
    ) -> None:
        """Insert or update the tracker entry for a file.

        Args:
            path: Export-relative file path
            size_bytes: Size at ingestion time
            mtime_ms: Modification time at ingestion time
            ingested_at_ms: Wall-clock time of the ingestion
        """
        self._conn.execute(
            """
            INSERT INTO ingested_files (path, size_bytes, mtime_ms, ingested_at_ms)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(path) DO UPDATE SET
                size_bytes = excluded.size_bytes,
                mtime_ms = excluded.mtime_ms,
                ingested_at_ms = excluded.ingested_at_ms
            """,
            (path, size_bytes, mtime_ms, ingested_at_ms),
        )

    def list_records(self) -> list[IngestedFileState]:
        """List all tracked files ordered by path."""
        cursor = self._conn.execute(
            """
            SELECT path, size_bytes, mtime_ms, ingested_at_ms
            FROM ingested_files
            ORDER BY path
            """
        )
        return [_to_state(row) for row in cursor]


def _to_state(row: sqlite3.Row) -> IngestedFileState:
    return IngestedFileState(
        path=row["path"],
        size_bytes=row["size_bytes"],
        mtime_ms=row["mtime_ms"],
        ingested_at_ms=row["ingested_at_ms"],
    )
