"""Normalizer for reactions."""

from typing import Any

from memory_etl.hashing import content_id
from memory_etl.ingest.extract import best_timestamp_ms, first_string
from memory_etl.ingest.normalizers.base import ItemNormalizer
from memory_etl.models import Reaction


class ReactionNormalizer(ItemNormalizer):
    category = "reactions"

    def normalize(self, item: dict[str, Any], rel_path: str, index: int) -> Reaction:
        ts = best_timestamp_ms(item)
        actor = first_string(item, "actor", "name")
        reaction = first_string(item, "reaction", "title")
        target_ref = first_string(item, "target_ref", "target", "uri")
        return Reaction(
            # Reactions carry little text, so the target joins the identity
            id=content_id(self.category, rel_path, index, ts, actor, reaction, target_ref),
            timestamp_ms=ts,
            actor=actor,
            reaction=reaction,
            target_ref=target_ref,
        )
