"""Pack manifest: identity, input fingerprint and row-count snapshot."""

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from memory_etl.hashing import short_hash
from memory_etl.logging import get_logger
from memory_etl.store import PackStore

logger = get_logger("manifest")

MANIFEST_FILENAME = "manifest.json"
STORE_FILENAME = "store.sqlite"


@dataclass
class Manifest:
    """On-disk description of a pack."""

    pack_id: str
    created_at: str
    source: str
    input_fingerprint: str
    counts: dict[str, int]
    files: dict[str, str] = field(default_factory=lambda: {"store": STORE_FILENAME})

    def to_json_dict(self) -> dict[str, Any]:
        """Convert to the manifest file's camelCase layout."""
        return {
            "packId": self.pack_id,
            "createdAt": self.created_at,
            "source": self.source,
            "inputFingerprint": self.input_fingerprint,
            "counts": dict(self.counts),
            "files": dict(self.files),
        }

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> "Manifest":
        return cls(
            pack_id=data.get("packId", ""),
            created_at=data.get("createdAt", ""),
            source=data.get("source", ""),
            input_fingerprint=data.get("inputFingerprint", ""),
            counts=data.get("counts") or {},
            files=data.get("files") or {},
        )


def compute_pack_id(input_path: Path, now: datetime | None = None) -> str:
    """Pack ID: UTC second-resolution stamp plus a short digest of the input path.

    Two runs on the same input within the same second get the same ID.

    Args:
        input_path: Absolute export root
        now: Clock override (defaults to the current UTC time)

    Returns:
        ID like ``20251227143015-3f2a9c01be``
    """
    if now is None:
        now = datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{stamp}-{short_hash(str(input_path), 10)}"


def input_fingerprint(input_path: Path, file_count: int, total_bytes: int) -> str:
    """Digest identifying "the same export" by path, file count and size."""
    return short_hash(f"{input_path}|{file_count}|{total_bytes}", 16)


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def write_manifest(
    pack_dir: Path,
    store: PackStore,
    pack_id: str,
    fingerprint: str,
    source: str = "facebook",
    manifest_filename: str = MANIFEST_FILENAME,
) -> Manifest:
    """Snapshot row counts and write the manifest next to the store.

    The file is written to a temporary name and renamed into place so a
    crash never leaves a truncated manifest.

    Returns:
        The manifest that was written
    """
    manifest = Manifest(
        pack_id=pack_id,
        created_at=utc_now_iso(),
        source=source,
        input_fingerprint=fingerprint,
        counts=store.counts(),
        files={"store": store.path.name},
    )

    pack_dir.mkdir(parents=True, exist_ok=True)
    target = pack_dir / manifest_filename
    tmp = target.with_name(target.name + ".tmp")
    tmp.write_text(json.dumps(manifest.to_json_dict(), indent=2) + "\n", encoding="utf-8")
    os.replace(tmp, target)

    logger.debug("Wrote manifest: path=%s counts=%s", target, manifest.counts)
    return manifest


def read_manifest(path: Path) -> Manifest:
    """Load a manifest file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If it is not a JSON object
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Manifest is not a JSON object: {path}")
    return Manifest.from_json_dict(data)
