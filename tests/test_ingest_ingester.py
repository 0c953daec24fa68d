"""Tests for per-file ingestion."""

import logging
import os
from pathlib import Path

import pytest

from memory_etl.config import IngestConfig
from memory_etl.ingest.ingester import (
    CATEGORIES,
    FileOutcome,
    ProgressLog,
    ingest_file,
)
from memory_etl.ingest.state import IngestionTracker
from memory_etl.store import PackStore

from conftest import COMMENTS_REL, POSTS_REL, REACTIONS_REL, THREAD_REL, write_json

BULK = IngestConfig()
STREAM = IngestConfig(streaming_threshold_bytes=0)


@pytest.fixture
def store(tmp_path: Path) -> PackStore:
    s = PackStore(tmp_path / "pack" / "store.sqlite")
    s.ensure_schema()
    yield s
    s.close()


@pytest.fixture
def tracker(store: PackStore) -> IngestionTracker:
    return IngestionTracker(store)


@pytest.fixture
def lines() -> list[str]:
    return []


@pytest.fixture
def progress(lines: list[str]) -> ProgressLog:
    return ProgressLog(lines.append)


class TestCategories:
    def test_messages_first_then_registered_order(self) -> None:
        """Threads are ingested before posts, comments and reactions."""
        assert CATEGORIES == ("messages", "posts", "comments", "reactions")


class TestProgressLog:
    """Tests for progress line routing."""

    def test_info_goes_to_callback(self, lines: list[str], progress: ProgressLog) -> None:
        progress.info("scan: files=1 bytes=2")
        assert lines == ["scan: files=1 bytes=2"]

    def test_warning_prefixed_and_logged(
        self, lines: list[str], progress: ProgressLog, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="memory_etl"):
            progress.warning("something odd")

        assert lines == ["warn: something odd"]
        assert "something odd" in caplog.text

    def test_error_prefixed(self, lines: list[str], progress: ProgressLog) -> None:
        progress.error("bad.json: boom")
        assert lines == ["error: bad.json: boom"]

    def test_info_without_callback_uses_logger(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="memory_etl"):
            ProgressLog().info("rebuild documents + FTS")

        assert caplog.records[-1].name == "memory_etl.pipeline"
        assert caplog.records[-1].getMessage() == "rebuild documents + FTS"


class TestIngestThreadFile:
    """Tests for message-thread files."""

    @pytest.mark.parametrize("config", [BULK, STREAM], ids=["bulk", "stream"])
    def test_writes_thread_and_messages(
        self,
        sample_export: Path,
        store: PackStore,
        tracker: IngestionTracker,
        progress: ProgressLog,
        config: IngestConfig,
    ) -> None:
        outcome = ingest_file(
            store, tracker, sample_export / THREAD_REL, sample_export, "messages", config, progress
        )

        assert outcome.status == "ingested"
        assert outcome.rows == 3
        assert store.count_rows("threads") == 1
        assert store.count_rows("messages") == 3
        thread = next(store.iter_threads())
        assert thread["thread_id"] == "your_activity_across_facebook/messages/inbox/alice_1"
        assert thread["title"] == "Alice"
        assert thread["source_path"] == THREAD_REL

    def test_skips_non_object_messages(
        self, tmp_path: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        root = tmp_path / "export"
        rel = "messages/inbox/bob_1/message_1.json"
        write_json(root / rel, {"title": "Bob", "messages": ["junk", {"content": "hi"}, None]})

        outcome = ingest_file(store, tracker, root / rel, root, "messages", BULK, progress)

        assert outcome.rows == 1
        assert store.count_rows("messages") == 1

    def test_thread_without_messages_array(
        self, tmp_path: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        """A thread file without messages still records its thread."""
        root = tmp_path / "export"
        rel = "messages/inbox/bob_1/message_1.json"
        write_json(root / rel, {"title": "Bob", "participants": []})

        outcome = ingest_file(store, tracker, root / rel, root, "messages", BULK, progress)

        assert outcome.status == "ingested"
        assert store.count_rows("threads") == 1
        assert store.count_rows("messages") == 0

    def test_multiple_files_share_thread(
        self, tmp_path: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        """message_1.json and message_2.json of one folder form one thread."""
        root = tmp_path / "export"
        folder = "messages/inbox/bob_1"
        write_json(root / folder / "message_1.json", {"title": "Bob", "messages": [{"content": "a"}]})
        write_json(root / folder / "message_2.json", {"title": "Bob", "messages": [{"content": "a"}]})

        for name in ("message_1.json", "message_2.json"):
            ingest_file(store, tracker, root / folder / name, root, "messages", BULK, progress)

        assert store.count_rows("threads") == 1
        # same content at the same position in different files stays distinct
        assert store.count_rows("messages") == 2


class TestIngestItemFile:
    """Tests for posts/comments/reactions files."""

    @pytest.mark.parametrize("config", [BULK, STREAM], ids=["bulk", "stream"])
    @pytest.mark.parametrize(
        "rel,category,rows",
        [(POSTS_REL, "posts", 2), (COMMENTS_REL, "comments", 1), (REACTIONS_REL, "reactions", 1)],
    )
    def test_writes_rows(
        self,
        sample_export: Path,
        store: PackStore,
        tracker: IngestionTracker,
        progress: ProgressLog,
        config: IngestConfig,
        rel: str,
        category: str,
        rows: int,
    ) -> None:
        outcome = ingest_file(store, tracker, sample_export / rel, sample_export, category, config, progress)

        assert outcome == FileOutcome(rel, "ingested", rows=rows, mode="bulk" if config is BULK else "stream")
        assert store.count_rows(category) == rows

    def test_no_array_warns(
        self,
        tmp_path: Path,
        store: PackStore,
        tracker: IngestionTracker,
        lines: list[str],
        progress: ProgressLog,
    ) -> None:
        """A file without a record array is recorded with zero rows and a warning."""
        root = tmp_path / "export"
        rel = "posts/no_data.json"
        write_json(root / rel, {"profile": {"name": "Me"}})

        outcome = ingest_file(store, tracker, root / rel, root, "posts", BULK, progress)

        assert outcome.status == "ingested"
        assert outcome.rows == 0
        assert f"warn: no array detected in {rel}" in lines
        assert tracker.get_record(rel) is not None

    def test_unknown_category_fails(
        self, sample_export: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        """A category without a normalizer fails the file and records nothing."""
        outcome = ingest_file(
            store, tracker, sample_export / POSTS_REL, sample_export, "photos", BULK, progress
        )

        assert outcome.status == "failed"
        assert "No normalizer" in outcome.error
        assert tracker.get_record(POSTS_REL) is None


class TestIngestFileTracking:
    """Tests for skip/force behavior and atomicity."""

    def test_progress_lines(
        self,
        sample_export: Path,
        store: PackStore,
        tracker: IngestionTracker,
        lines: list[str],
        progress: ProgressLog,
    ) -> None:
        ingest_file(store, tracker, sample_export / POSTS_REL, sample_export, "posts", BULK, progress)
        ingest_file(store, tracker, sample_export / POSTS_REL, sample_export, "posts", STREAM, progress)

        assert lines == [f"ingest posts: {POSTS_REL}", f"skip (unchanged): {POSTS_REL}"]

    def test_stream_marker(
        self,
        sample_export: Path,
        store: PackStore,
        tracker: IngestionTracker,
        lines: list[str],
        progress: ProgressLog,
    ) -> None:
        ingest_file(store, tracker, sample_export / POSTS_REL, sample_export, "posts", STREAM, progress)

        assert lines == [f"ingest posts: {POSTS_REL} [stream]"]

    def test_records_tracker_entry(
        self, sample_export: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        path = sample_export / POSTS_REL
        ingest_file(store, tracker, path, sample_export, "posts", BULK, progress)

        record = tracker.get_record(POSTS_REL)
        assert record is not None
        assert record.size_bytes == path.stat().st_size
        assert record.mtime_ms == path.stat().st_mtime_ns // 1_000_000
        assert record.ingested_at_ms > 0

    def test_unchanged_file_skipped(
        self, sample_export: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        path = sample_export / POSTS_REL
        ingest_file(store, tracker, path, sample_export, "posts", BULK, progress)

        outcome = ingest_file(store, tracker, path, sample_export, "posts", BULK, progress)

        assert outcome == FileOutcome(POSTS_REL, "skipped")

    def test_changed_file_reingested(
        self, sample_export: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        """A new mtime makes the file eligible again."""
        path = sample_export / POSTS_REL
        ingest_file(store, tracker, path, sample_export, "posts", BULK, progress)
        st = path.stat()
        os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000))

        outcome = ingest_file(store, tracker, path, sample_export, "posts", BULK, progress)

        assert outcome.status == "ingested"
        assert store.count_rows("posts") == 2

    def test_force_reingests(
        self, sample_export: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        path = sample_export / POSTS_REL
        ingest_file(store, tracker, path, sample_export, "posts", BULK, progress)

        outcome = ingest_file(store, tracker, path, sample_export, "posts", BULK, progress, force=True)

        assert outcome.status == "ingested"
        assert store.count_rows("posts") == 2

    @pytest.mark.parametrize("config", [BULK, STREAM], ids=["bulk", "stream"])
    def test_malformed_file_rolls_back(
        self,
        tmp_path: Path,
        store: PackStore,
        tracker: IngestionTracker,
        lines: list[str],
        progress: ProgressLog,
        config: IngestConfig,
    ) -> None:
        """A file that fails mid-parse leaves no rows and no tracker entry."""
        root = tmp_path / "export"
        rel = "posts/broken.json"
        path = root / rel
        path.parent.mkdir(parents=True)
        path.write_text('[{"text": "one"}, {"text": "two"}, {"text": "thr', encoding="utf-8")

        outcome = ingest_file(store, tracker, path, root, "posts", config, progress)

        assert outcome.status == "failed"
        assert outcome.error
        assert store.count_rows("posts") == 0
        assert tracker.get_record(rel) is None
        assert lines[-1].startswith(f"error: {rel}: ")

    def test_failed_file_retried_next_time(
        self, tmp_path: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        root = tmp_path / "export"
        rel = "posts/broken.json"
        path = root / rel
        path.parent.mkdir(parents=True)
        path.write_text("[{", encoding="utf-8")
        assert ingest_file(store, tracker, path, root, "posts", BULK, progress).status == "failed"

        write_json(path, [{"text": "fixed"}])
        outcome = ingest_file(store, tracker, path, root, "posts", BULK, progress)

        assert outcome.status == "ingested"
        assert store.count_rows("posts") == 1

    def test_vanished_file_fails(
        self, tmp_path: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        root = tmp_path / "export"
        root.mkdir()

        outcome = ingest_file(store, tracker, root / "posts" / "gone.json", root, "posts", BULK, progress)

        assert outcome == FileOutcome("posts/gone.json", "failed", error=outcome.error)
        assert outcome.error

    def test_reingest_is_idempotent(
        self, sample_export: Path, store: PackStore, tracker: IngestionTracker, progress: ProgressLog
    ) -> None:
        """Forced re-ingestion of unchanged content reproduces the same rows."""
        path = sample_export / THREAD_REL
        ingest_file(store, tracker, path, sample_export, "messages", BULK, progress)
        before = store.connection.execute("SELECT * FROM messages ORDER BY id").fetchall()

        ingest_file(store, tracker, path, sample_export, "messages", STREAM, progress, force=True)
        after = store.connection.execute("SELECT * FROM messages ORDER BY id").fetchall()

        assert [tuple(r) for r in before] == [tuple(r) for r in after]
