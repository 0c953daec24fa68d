"""Per-file ingestion: normalize a classified export file into the store.

All rows of one file and its tracker entry are committed in one
transaction. A file that fails to parse leaves nothing behind and stays
unrecorded so the next run retries it.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import ijson

from memory_etl.config import IngestConfig
from memory_etl.ingest.normalizers import (
    NormalizerRegistry,
    normalize_message,
    normalize_thread,
    thread_id_for,
)
from memory_etl.ingest.readers import RecordReader, open_reader
from memory_etl.ingest.state import IngestionTracker, stat_file
from memory_etl.logging import get_logger
from memory_etl.scanner import to_posix
from memory_etl.store import PackStore

logger = get_logger("ingester")

# Errors that abort one file but never the run
FILE_ERRORS = (OSError, ValueError, ijson.JSONError)

# Ingest order: message threads, then every registered item normalizer
CATEGORIES = ("messages", *NormalizerRegistry.all_categories())


@dataclass
class FileOutcome:
    """Result of ingesting one file."""

    rel_path: str
    status: str  # ingested, skipped, failed
    rows: int = 0
    mode: str | None = None
    error: str | None = None


class ProgressLog:
    """Routes progress lines to an injected callback or the module logger.

    Warnings and errors always reach the logger at their own level and are
    forwarded to the callback as ``warn:``/``error:`` lines.
    """

    def __init__(self, callback: Callable[[str], None] | None = None, name: str = "pipeline") -> None:
        self._callback = callback
        self._logger = get_logger(name)

    def info(self, line: str) -> None:
        if self._callback is None:
            self._logger.info(line)
        else:
            self._callback(line)

    def warning(self, line: str) -> None:
        self._logger.warning(line)
        if self._callback is not None:
            self._callback(f"warn: {line}")

    def error(self, line: str) -> None:
        if self._callback is not None:
            self._callback(f"error: {line}")


def ingest_thread_file(store: PackStore, reader: RecordReader, rel_path: str) -> int:
    """Write one message-thread file's thread row and messages.

    The header scalars are read before the messages array; in streaming
    mode each of the three reads is its own pass over the file.

    Returns:
        Number of message rows written
    """
    thread = normalize_thread(reader.read_value("title"), reader.read_value("participants"), rel_path)
    store.upsert_thread(thread)

    rows = 0
    for index, item in reader.iter_records(("messages",)):
        if not isinstance(item, dict):
            continue
        store.upsert(normalize_message(item, thread.thread_id, rel_path, index))
        rows += 1
    return rows


def ingest_item_file(
    store: PackStore,
    reader: RecordReader,
    rel_path: str,
    category: str,
    progress: ProgressLog,
) -> int:
    """Write one generic (posts/comments/reactions) file's rows.

    Returns:
        Number of rows written; 0 with a warning when no record array is found
    """
    normalizer = NormalizerRegistry.get(category)
    if normalizer is None:
        raise ValueError(f"No normalizer for category: {category}")

    location = reader.locate_array()
    if location is None:
        progress.warning(f"no array detected in {rel_path}")
        return 0

    logger.debug("Record array located: path=%s at=%s mode=%s", rel_path, location.label, reader.mode)
    rows = 0
    for index, item in reader.iter_records(location.path):
        if not isinstance(item, dict):
            continue
        store.upsert(normalizer.normalize(item, rel_path, index))
        rows += 1
    return rows


def ingest_file(
    store: PackStore,
    tracker: IngestionTracker,
    file_path: Path,
    input_root: Path,
    category: str,
    config: IngestConfig,
    progress: ProgressLog,
    force: bool = False,
) -> FileOutcome:
    """Ingest one classified file as a single atomic unit.

    Args:
        store: Open pack store
        tracker: Ingestion tracker on the same store
        file_path: Absolute path of the file
        input_root: Export root the relative path is computed from
        category: messages, posts, comments or reactions
        config: Streaming threshold and probe settings
        progress: Progress line sink
        force: Re-ingest even if the tracker says the file is unchanged

    Returns:
        FileOutcome describing what happened
    """
    rel_path = to_posix(file_path.relative_to(input_root))

    try:
        size_bytes, mtime_ms = stat_file(file_path)
    except OSError as e:
        logger.exception("Cannot stat file: path=%s", rel_path)
        progress.error(f"{rel_path}: {e}")
        return FileOutcome(rel_path, "failed", error=str(e))

    if not force and tracker.was_ingested(rel_path, size_bytes, mtime_ms):
        progress.info(f"skip (unchanged): {rel_path}")
        return FileOutcome(rel_path, "skipped")

    streaming = size_bytes > config.streaming_threshold_bytes
    progress.info(f"ingest {category}: {rel_path}" + (" [stream]" if streaming else ""))
    ingested_at_ms = int(time.time() * 1000)

    try:
        with store.transaction():
            reader = open_reader(
                file_path,
                size_bytes,
                config.streaming_threshold_bytes,
                config.probe_limit,
            )
            if category == "messages":
                rows = ingest_thread_file(store, reader, rel_path)
            else:
                rows = ingest_item_file(store, reader, rel_path, category, progress)
            tracker.record_ingested(rel_path, size_bytes, mtime_ms, ingested_at_ms)
    except FILE_ERRORS as e:
        logger.exception("Error ingesting file: category=%s path=%s", category, rel_path)
        progress.error(f"{rel_path}: {e}")
        return FileOutcome(rel_path, "failed", error=str(e))

    return FileOutcome(rel_path, "ingested", rows=rows, mode=reader.mode)
