"""Normalizer for comments."""

from typing import Any

from memory_etl.hashing import content_id
from memory_etl.ingest.extract import best_text, best_timestamp_ms, first_string
from memory_etl.ingest.normalizers.base import ItemNormalizer
from memory_etl.models import Comment


class CommentNormalizer(ItemNormalizer):
    category = "comments"

    def normalize(self, item: dict[str, Any], rel_path: str, index: int) -> Comment:
        ts = best_timestamp_ms(item)
        author = first_string(item, "author", "name")
        content = best_text(item)
        return Comment(
            id=content_id(self.category, rel_path, index, ts, author, content),
            timestamp_ms=ts,
            author=author,
            content=content,
            parent_ref=first_string(item, "parent_ref", "target", "post", "uri"),
        )
