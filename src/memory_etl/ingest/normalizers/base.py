"""Base normalizer interface and registry."""

from abc import ABC, abstractmethod
from typing import Any

from memory_etl.models import Comment, Post, Reaction

GenericItem = Post | Comment | Reaction

__all__ = ["GenericItem", "ItemNormalizer", "NormalizerRegistry"]


class ItemNormalizer(ABC):
    """Base class for generic item normalizers.

    Subclasses set the `category` class attribute and implement
    `normalize()` to turn one raw export record into an entity row.
    """

    category: str

    @abstractmethod
    def normalize(self, item: dict[str, Any], rel_path: str, index: int) -> GenericItem:
        """Normalize one record.

        Args:
            item: Raw record object
            rel_path: Export-relative path of the source file
            index: Position of the record in its source array

        Returns:
            Entity with a content-addressable ID
        """


class NormalizerRegistry:
    """Registry of normalizers by category name."""

    _normalizers: dict[str, ItemNormalizer] = {}

    @classmethod
    def register(cls, normalizer: ItemNormalizer) -> None:
        """Register a normalizer."""
        cls._normalizers[normalizer.category] = normalizer

    @classmethod
    def get(cls, category: str) -> ItemNormalizer | None:
        """Get normalizer by category."""
        return cls._normalizers.get(category)

    @classmethod
    def all_categories(cls) -> list[str]:
        """List all registered categories."""
        return list(cls._normalizers.keys())
