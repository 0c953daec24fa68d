"""Export ingestion pipeline: scan, ingest, build documents, write manifest.

Files are processed one at a time in scan order, category by category
(messages, posts, comments, reactions). Each file is its own transaction.
Concurrent runs against the same pack directory are not supported.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from memory_etl.config import Config
from memory_etl.documents import rebuild_documents
from memory_etl.ingest.ingester import CATEGORIES, FileOutcome, ProgressLog, ingest_file
from memory_etl.ingest.state import IngestionTracker
from memory_etl.logging import get_logger
from memory_etl.manifest import compute_pack_id, input_fingerprint, write_manifest
from memory_etl.scanner import ScanResults, scan_export
from memory_etl.store import PackStore

logger = get_logger("pipeline")


@dataclass
class CategoryStats:
    ingested: int = 0
    skipped: int = 0
    failed: int = 0
    rows: int = 0

    def add(self, outcome: FileOutcome) -> None:
        if outcome.status == "ingested":
            self.ingested += 1
            self.rows += outcome.rows
        elif outcome.status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1


@dataclass
class IngestResult:
    """What a run produced; ``pack_id`` and ``out_dir`` form the public contract."""

    pack_id: str
    out_dir: Path
    stats: dict[str, CategoryStats] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)

    def to_json_dict(self) -> dict[str, str]:
        return {"packId": self.pack_id, "outDir": str(self.out_dir)}


def ingest_category(
    store: PackStore,
    tracker: IngestionTracker,
    scan: ScanResults,
    input_dir: Path,
    category: str,
    config: Config,
    progress: ProgressLog,
    force: bool,
) -> CategoryStats:
    """Ingest every file of one category, isolating per-file failures."""
    stats = CategoryStats()
    for file_path in scan.files_for(category):
        outcome = ingest_file(
            store,
            tracker,
            file_path,
            input_dir,
            category,
            config.ingest,
            progress,
            force=force,
        )
        stats.add(outcome)
    return stats


def ingest_export(
    input_dir: Path,
    out_dir: Path,
    force: bool = False,
    log: Callable[[str], None] | None = None,
    config: Config | None = None,
) -> IngestResult:
    """Ingest an export directory into a pack.

    Args:
        input_dir: Extracted export root
        out_dir: Pack directory (created if missing)
        force: Bypass the ingestion tracker and re-ingest every file
        log: Line-oriented progress callback (defaults to the pipeline logger)
        config: Settings (defaults to Config())

    Returns:
        IngestResult with the pack ID and output directory

    Raises:
        FileNotFoundError: If input_dir does not exist
        NotADirectoryError: If input_dir is not a directory
        OSError: If the output directory cannot be created
        sqlite3.Error: If the store cannot be opened or written
    """
    if config is None:
        config = Config()
    progress = ProgressLog(log)

    input_dir = Path(input_dir).resolve()
    out_dir = Path(out_dir).resolve()

    scan = scan_export(input_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    pack_id = compute_pack_id(input_dir)

    store_path = out_dir / config.pack.store_filename
    with PackStore(store_path) as store:
        store.ensure_schema()
        tracker = IngestionTracker(store)

        progress.info(f"scan: files={scan.total_files} bytes={scan.total_bytes}")
        if scan.html_only:
            progress.warning("HTML export detected; HTML ingest not supported (continuing)")

        fingerprint = input_fingerprint(input_dir, scan.total_files, scan.total_bytes)

        stats = {
            category: ingest_category(store, tracker, scan, input_dir, category, config, progress, force)
            for category in CATEGORIES
        }
        for category, category_stats in stats.items():
            logger.debug(
                "Category complete: category=%s ingested=%d skipped=%d failed=%d rows=%d",
                category,
                category_stats.ingested,
                category_stats.skipped,
                category_stats.failed,
                category_stats.rows,
            )

        rebuild_documents(store, config.documents, log=progress.info)

        manifest = write_manifest(
            out_dir,
            store,
            pack_id,
            fingerprint,
            source=config.pack.source,
            manifest_filename=config.pack.manifest_filename,
        )

    progress.info(f"wrote: {out_dir / config.pack.manifest_filename}")
    progress.info(f"wrote: {store_path}")
    progress.info(f"counts: {json.dumps(manifest.counts)}")

    return IngestResult(pack_id=pack_id, out_dir=out_dir, stats=stats, counts=manifest.counts)
