"""Tests for configuration loading and logging setup."""

import logging
from pathlib import Path

import pytest

from memory_etl.config import (
    DEFAULT_STREAMING_THRESHOLD_BYTES,
    Config,
    expand_path,
    load_config,
)
from memory_etl.logging import get_logger, setup_logging


class TestDefaults:
    def test_default_config(self) -> None:
        config = Config()

        assert config.ingest.streaming_threshold_bytes == 200 * 1024 * 1024
        assert config.ingest.probe_limit == 1000
        assert config.documents.thread_min_chars == 1000
        assert config.documents.thread_max_chars == 1500
        assert config.documents.item_max_chars == 1500
        assert config.pack.source == "facebook"
        assert config.pack.store_filename == "store.sqlite"
        assert config.pack.manifest_filename == "manifest.json"


class TestLoadConfig:
    """Tests for YAML loading."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path / "absent.yaml") == Config()

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")

        config = load_config(path)

        assert config.ingest.streaming_threshold_bytes == DEFAULT_STREAMING_THRESHOLD_BYTES
        assert config.pack.source == "facebook"

    def test_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            """
ingest:
  streaming_threshold_bytes: 1024
  probe_limit: 50
documents:
  thread_min_chars: 100
  thread_max_chars: 200
  item_max_chars: 300
pack:
  source: fb
  store_filename: data.db
  manifest_filename: pack.json
log_dir: /var/log/memory-etl
"""
        )

        config = load_config(path)

        assert config.ingest.streaming_threshold_bytes == 1024
        assert config.ingest.probe_limit == 50
        assert config.documents.thread_min_chars == 100
        assert config.documents.thread_max_chars == 200
        assert config.documents.item_max_chars == 300
        assert config.pack.source == "fb"
        assert config.pack.store_filename == "data.db"
        assert config.pack.manifest_filename == "pack.json"
        assert config.log_dir == Path("/var/log/memory-etl")

    def test_partial_sections(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("documents:\n  item_max_chars: 500\n")

        config = load_config(path)

        assert config.documents.item_max_chars == 500
        assert config.documents.thread_max_chars == 1500
        assert config.ingest.probe_limit == 1000

    def test_min_above_max_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("documents:\n  thread_min_chars: 2000\n  thread_max_chars: 1500\n")

        with pytest.raises(ValueError, match="thread_min_chars"):
            load_config(path)

    def test_log_dir_expands_home(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("log_dir: ~/etl-logs\n")

        assert load_config(path).log_dir == Path.home() / "etl-logs"

    def test_searches_working_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "memory-etl.yaml").write_text("pack:\n  source: local\n")
        monkeypatch.chdir(tmp_path)

        assert load_config().pack.source == "local"


class TestExpandPath:
    def test_expands_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ETL_ROOT", "/srv/etl")

        assert expand_path("$ETL_ROOT/logs") == Path("/srv/etl/logs")


class TestLogging:
    """Tests for logging setup."""

    @pytest.fixture(autouse=True)
    def reset_package_logger(self):
        logger = logging.getLogger("memory_etl")
        saved = list(logger.handlers), logger.level
        logger.handlers.clear()
        yield
        for handler in logger.handlers:
            handler.close()
        logger.handlers[:] = saved[0]
        logger.setLevel(saved[1])

    def test_writes_log_file(self, tmp_path: Path) -> None:
        setup_logging("ingest", log_dir=tmp_path / "logs", console=False)

        get_logger("pipeline").info("scan complete")
        for handler in logging.getLogger("memory_etl").handlers:
            handler.flush()

        text = (tmp_path / "logs" / "ingest.log").read_text(encoding="utf-8")
        assert "[INFO] memory_etl.pipeline: scan complete" in text

    def test_no_duplicate_handlers(self, tmp_path: Path) -> None:
        setup_logging("ingest", log_dir=tmp_path, console=True)
        setup_logging("ingest", log_dir=tmp_path, console=True)

        assert len(logging.getLogger("memory_etl").handlers) == 2

    def test_get_logger_prefix(self) -> None:
        assert get_logger("verify").name == "memory_etl.verify"

    def test_repeat_setup_only_changes_level(self, tmp_path: Path) -> None:
        setup_logging("ingest", log_dir=tmp_path / "first", console=False)
        logger = setup_logging("verify", log_dir=tmp_path / "second", level=logging.DEBUG, console=False)

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert not (tmp_path / "second").exists()
