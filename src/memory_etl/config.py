"""Configuration loading and management."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

# Files above this size are parsed as a token stream instead of json.load()
DEFAULT_STREAMING_THRESHOLD_BYTES = 200 * 1024 * 1024


@dataclass
class IngestConfig:
    streaming_threshold_bytes: int = DEFAULT_STREAMING_THRESHOLD_BYTES
    probe_limit: int = 1000


@dataclass
class DocumentConfig:
    thread_min_chars: int = 1000
    thread_max_chars: int = 1500
    item_max_chars: int = 1500


@dataclass
class PackConfig:
    source: str = "facebook"
    store_filename: str = "store.sqlite"
    manifest_filename: str = "manifest.json"


@dataclass
class Config:
    ingest: IngestConfig = field(default_factory=IngestConfig)
    documents: DocumentConfig = field(default_factory=DocumentConfig)
    pack: PackConfig = field(default_factory=PackConfig)
    log_dir: Path = field(default_factory=lambda: Path.home() / "memory-etl" / "logs")


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config in standard locations
        search_paths = [
            Path.cwd() / "memory-etl.yaml",
            Path.home() / ".config" / "memory-etl" / "config.yaml",
            Path("/etc/memory-etl/config.yaml"),
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    ingest_data = data.get("ingest", {})
    ingest = IngestConfig(
        streaming_threshold_bytes=int(
            ingest_data.get("streaming_threshold_bytes", DEFAULT_STREAMING_THRESHOLD_BYTES)
        ),
        probe_limit=int(ingest_data.get("probe_limit", 1000)),
    )

    docs_data = data.get("documents", {})
    documents = DocumentConfig(
        thread_min_chars=int(docs_data.get("thread_min_chars", 1000)),
        thread_max_chars=int(docs_data.get("thread_max_chars", 1500)),
        item_max_chars=int(docs_data.get("item_max_chars", 1500)),
    )
    if documents.thread_min_chars > documents.thread_max_chars:
        raise ValueError(
            "documents.thread_min_chars must not exceed documents.thread_max_chars"
        )

    pack_data = data.get("pack", {})
    pack = PackConfig(
        source=pack_data.get("source", "facebook"),
        store_filename=pack_data.get("store_filename", "store.sqlite"),
        manifest_filename=pack_data.get("manifest_filename", "manifest.json"),
    )

    return Config(
        ingest=ingest,
        documents=documents,
        pack=pack,
        log_dir=expand_path(data.get("log_dir", "~/memory-etl/logs")),
    )
