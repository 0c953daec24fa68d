"""Normalizer for posts."""

from typing import Any

from memory_etl.hashing import content_id
from memory_etl.ingest.extract import best_text, best_timestamp_ms, first_string, json_or_none
from memory_etl.ingest.normalizers.base import ItemNormalizer
from memory_etl.models import Post


class PostNormalizer(ItemNormalizer):
    """Posts keep their title, text, attachments and place."""

    category = "posts"

    def normalize(self, item: dict[str, Any], rel_path: str, index: int) -> Post:
        ts = best_timestamp_ms(item)
        title = first_string(item, "title", "name")
        content = best_text(item)
        return Post(
            id=content_id(self.category, rel_path, index, ts, title, content),
            timestamp_ms=ts,
            title=title,
            content=content,
            attachments_json=json_or_none(item.get("attachments")),
            place_json=json_or_none(item.get("place")),
        )
