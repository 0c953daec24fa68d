"""Export discovery: walk an export tree and classify its files."""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from memory_etl.logging import get_logger

logger = get_logger("scanner")

MESSAGE_FILE_RE = re.compile(r"/message_\d+\.json$")
MESSAGE_FOLDERS = ("messages/inbox/", "messages/archived_threads/")

# Generic categories in precedence order; first substring match wins
GENERIC_CATEGORIES = ("posts", "comments", "reactions")


@dataclass
class ScanResults:
    """Classified files of one export plus aggregate statistics."""

    message_files: list[Path] = field(default_factory=list)
    posts_files: list[Path] = field(default_factory=list)
    comments_files: list[Path] = field(default_factory=list)
    reactions_files: list[Path] = field(default_factory=list)
    html_files: list[Path] = field(default_factory=list)
    ignored_files: list[Path] = field(default_factory=list)
    total_files: int = 0
    total_bytes: int = 0

    @property
    def html_only(self) -> bool:
        """True for an HTML-format export, which is reported but not ingested."""
        return bool(self.html_files) and not self.message_files

    def files_for(self, category: str) -> list[Path]:
        """Files classified under a category name (messages, posts, ...)."""
        if category == "messages":
            return self.message_files
        return getattr(self, f"{category}_files")


def to_posix(path: Path) -> str:
    """Path as a forward-slash string regardless of platform."""
    return path.as_posix()


def classify(relative_path: str) -> str:
    """Classify an export-relative path.

    Precedence: HTML extension, message-thread file, then the first of the
    ``posts``/``comments``/``reactions`` substrings. Non-JSON files and JSON
    files matching nothing are ``ignored``.

    Args:
        relative_path: Forward-slash path relative to the export root

    Returns:
        One of: html, messages, posts, comments, reactions, ignored
    """
    rel = relative_path.lower()
    if rel.endswith(".html"):
        return "html"
    if not rel.endswith(".json"):
        return "ignored"

    if any(folder in rel for folder in MESSAGE_FOLDERS) and MESSAGE_FILE_RE.search(rel):
        return "messages"

    for category in GENERIC_CATEGORIES:
        if category in rel:
            return category
    return "ignored"


def file_size(path: Path) -> int:
    """Size in bytes, or 0 if the file cannot be stat'ed."""
    try:
        return path.stat().st_size
    except OSError:
        return 0


def walk_files(root: Path) -> list[Path]:
    """List every non-directory entry under root in a deterministic order.

    Symlinks (to files or directories) are neither followed nor reported,
    which also rules out directory cycles. Other special files are kept so
    they count towards the scan totals.

    Args:
        root: Directory to walk

    Returns:
        Sorted list of file paths
    """
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        base = Path(dirpath)
        dirnames[:] = sorted(d for d in dirnames if not (base / d).is_symlink())
        for name in sorted(filenames):
            path = base / name
            if not path.is_symlink():
                files.append(path)
    return files


def scan_export(root: Path) -> ScanResults:
    """Walk an export and classify every file.

    Args:
        root: Export root directory

    Returns:
        ScanResults with classified file lists and totals

    Raises:
        FileNotFoundError: If root does not exist
        NotADirectoryError: If root is not a directory
    """
    if not root.exists():
        raise FileNotFoundError(f"Export root does not exist: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Export root is not a directory: {root}")

    results = ScanResults()
    for path in walk_files(root):
        results.total_files += 1
        results.total_bytes += file_size(path)

        category = classify(to_posix(path.relative_to(root)))
        if category == "html":
            results.html_files.append(path)
        elif category == "ignored":
            results.ignored_files.append(path)
        else:
            results.files_for(category).append(path)

    logger.debug(
        "Scanned export: root=%s files=%d bytes=%d messages=%d posts=%d comments=%d reactions=%d html=%d",
        root,
        results.total_files,
        results.total_bytes,
        len(results.message_files),
        len(results.posts_files),
        len(results.comments_files),
        len(results.reactions_files),
        len(results.html_files),
    )
    return results
