"""Read-only integrity check of a finished pack."""

import json
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from memory_etl.logging import get_logger
from memory_etl.manifest import MANIFEST_FILENAME, STORE_FILENAME, Manifest, read_manifest
from memory_etl.store import COUNTED_TABLES, REQUIRED_TABLES, PackStore

logger = get_logger("verify")

DEFAULT_TOKEN = "test"


class PackVerificationError(Exception):
    """A pack failed verification; ``problems`` lists every issue found."""

    def __init__(self, pack_dir: Path, problems: list[str]) -> None:
        self.pack_dir = pack_dir
        self.problems = list(problems)
        details = "\n".join(f"  - {problem}" for problem in self.problems)
        super().__init__(f"Pack verification failed for {pack_dir}:\n{details}")


@dataclass
class VerifyResult:
    ok: bool
    pack_id: str
    counts: dict[str, int]
    fts_sample_doc_id: str | None

    def to_json_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "packId": self.pack_id,
            "counts": self.counts,
            "ftsSampleDocId": self.fts_sample_doc_id,
        }


def _load_manifest(manifest_path: Path, problems: list[str]) -> Manifest | None:
    if not manifest_path.exists():
        problems.append(f"missing manifest: {manifest_path}")
        return None
    try:
        manifest = read_manifest(manifest_path)
    except (OSError, ValueError) as e:
        problems.append(f"unreadable manifest: {manifest_path}: {e}")
        return None
    if not manifest.pack_id:
        problems.append("manifest.packId missing")
    if not isinstance(manifest.counts, dict):
        problems.append("manifest.counts is not an object")
    return manifest


def _recount(store: PackStore, manifest: Manifest | None, problems: list[str]) -> dict[str, int]:
    missing = [table for table in REQUIRED_TABLES if not store.table_exists(table)]
    for table in missing:
        problems.append(f"missing required table: {table}")

    counts = {table: store.count_rows(table) for table in COUNTED_TABLES if table not in missing}

    if manifest is not None and isinstance(manifest.counts, dict):
        for table, actual in counts.items():
            expected = manifest.counts.get(table)
            if not isinstance(expected, int):
                problems.append(f"manifest.counts.{table} missing")
            elif expected != actual:
                problems.append(f"count mismatch for {table}: expected {expected} got {actual}")
    return counts


def verify_pack(
    pack_dir: Path,
    token: str | None = None,
    manifest_filename: str = MANIFEST_FILENAME,
) -> VerifyResult:
    """Check that a pack is complete and its counts match the manifest.

    Confirms the manifest and store exist, every required table exists,
    and a fresh recount of every entity table equals the manifested count.
    One full-text query for ``token`` is issued as a smoke test; finding no
    match is not a failure.
    The store is opened read-only and the pack is never modified.

    Args:
        pack_dir: Pack directory
        token: Text for the full-text smoke query (defaults to "test")
        manifest_filename: Name of the manifest file inside the pack

    Returns:
        VerifyResult with recomputed counts and the first FTS hit, if any

    Raises:
        PackVerificationError: Listing every problem found
    """
    problems: list[str] = []
    manifest = _load_manifest(pack_dir / manifest_filename, problems)

    store_name = STORE_FILENAME
    if manifest is not None and isinstance(manifest.files, dict):
        store_name = manifest.files.get("store") or STORE_FILENAME
    store_path = pack_dir / store_name
    if not store_path.exists():
        problems.append(f"missing store: {store_path}")
        raise PackVerificationError(pack_dir, problems)

    try:
        with PackStore(store_path, read_only=True) as store:
            counts = _recount(store, manifest, problems)
            if problems:
                raise PackVerificationError(pack_dir, problems)
            hits = store.search_documents(token or DEFAULT_TOKEN, limit=1)
    except sqlite3.DatabaseError as e:
        problems.append(f"unreadable store: {store_path}: {e}")
        raise PackVerificationError(pack_dir, problems) from e

    sample = hits[0]["doc_id"] if hits else None
    logger.debug("Pack verified: pack=%s counts=%s fts_sample=%s", pack_dir, json.dumps(counts), sample)
    return VerifyResult(
        ok=True,
        pack_id=manifest.pack_id,
        counts=counts,
        fts_sample_doc_id=sample,
    )
