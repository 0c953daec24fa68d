"""Record readers: whole-file (bulk) and constant-memory (streaming) parsing.

Both readers expose the same three operations so that the ingesters and the
per-record normalizers never know which mode is in use:

- ``read_value(key)``: a top-level property of the document
- ``locate_array(candidates)``: the first candidate location holding records
- ``iter_records(path)``: ``(position, item)`` pairs of the array at ``path``

``open_reader`` picks the mode from the file size.
"""

import itertools
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import ijson


@dataclass(frozen=True)
class ArrayLocation:
    """A candidate location of the record array inside a document."""

    label: str
    path: tuple[str, ...]  # () means the document root is the array


# Candidate record-array locations for generic (posts/comments/reactions) files
ARRAY_CANDIDATES: tuple[ArrayLocation, ...] = (
    ArrayLocation("root[]", ()),
    ArrayLocation("posts.item[]", ("posts", "item")),
    ArrayLocation("comments.item[]", ("comments", "item")),
    ArrayLocation("reactions.item[]", ("reactions", "item")),
    ArrayLocation("data.item[]", ("data", "item")),
    ArrayLocation("comments_v2[]", ("comments_v2",)),
    ArrayLocation("reactions_v2[]", ("reactions_v2",)),
)

DEFAULT_PROBE_LIMIT = 1000


class RecordReader(ABC):
    """Read records out of one JSON export file."""

    mode: str

    def __init__(self, path: Path, probe_limit: int = DEFAULT_PROBE_LIMIT) -> None:
        self.path = path
        self.probe_limit = probe_limit

    @abstractmethod
    def read_value(self, key: str) -> Any:
        """Value of a top-level property, or None if absent."""

    @abstractmethod
    def iter_records(self, path: tuple[str, ...]) -> Iterator[tuple[int, Any]]:
        """Yield (position, item) for every element of the array at path."""

    def locate_array(
        self,
        candidates: tuple[ArrayLocation, ...] = ARRAY_CANDIDATES,
    ) -> ArrayLocation | None:
        """Find the first candidate whose array holds at least one object.

        Only the first ``probe_limit`` elements of each candidate are
        examined.

        Args:
            candidates: Locations to try, in priority order

        Returns:
            The chosen location, or None if no candidate holds records
        """
        for candidate in candidates:
            probe = itertools.islice(self.iter_records(candidate.path), self.probe_limit)
            if any(isinstance(item, dict) for _, item in probe):
                return candidate
        return None


class BulkReader(RecordReader):
    """Parses the whole file with json.load() and walks it in memory."""

    mode = "bulk"

    def __init__(self, path: Path, probe_limit: int = DEFAULT_PROBE_LIMIT) -> None:
        super().__init__(path, probe_limit)
        with open(path, "r", encoding="utf-8") as f:
            self._data = json.load(f)

    def read_value(self, key: str) -> Any:
        if isinstance(self._data, dict):
            return self._data.get(key)
        return None

    def iter_records(self, path: tuple[str, ...]) -> Iterator[tuple[int, Any]]:
        node = self._data
        for key in path:
            if not isinstance(node, dict):
                return
            node = node.get(key)
        if isinstance(node, list):
            yield from enumerate(node)


class StreamingReader(RecordReader):
    """Parses the file as an ijson event stream.

    Every call re-opens the file and only the item currently being built is
    held in memory. Numbers are decoded as int/float, matching json.load().
    """

    mode = "stream"

    def read_value(self, key: str) -> Any:
        with open(self.path, "rb") as f:
            return next(ijson.items(f, key, use_float=True), None)

    def iter_records(self, path: tuple[str, ...]) -> Iterator[tuple[int, Any]]:
        # At the root, "item" also names a top-level key "item" of an object
        if not path and not self._root_is_array():
            return
        prefix = ".".join(path + ("item",))
        with open(self.path, "rb") as f:
            yield from enumerate(ijson.items(f, prefix, use_float=True))

    def _root_is_array(self) -> bool:
        with open(self.path, "rb") as f:
            for _, event, _ in ijson.parse(f):
                return event == "start_array"
        return False


def open_reader(
    path: Path,
    size_bytes: int,
    streaming_threshold_bytes: int,
    probe_limit: int = DEFAULT_PROBE_LIMIT,
) -> RecordReader:
    """Choose bulk mode at or below the threshold, streaming above it.

    Args:
        path: File to read
        size_bytes: Its size
        streaming_threshold_bytes: Largest size parsed in memory
        probe_limit: Items examined per candidate while locating arrays

    Returns:
        A RecordReader for the file
    """
    if size_bytes <= streaming_threshold_bytes:
        return BulkReader(path, probe_limit)
    return StreamingReader(path, probe_limit)
