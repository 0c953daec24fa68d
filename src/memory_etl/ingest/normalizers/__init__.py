"""Normalizers turning raw export records into entity rows."""

from .base import GenericItem, ItemNormalizer, NormalizerRegistry
from .comments import CommentNormalizer
from .messages import normalize_message, normalize_thread, thread_id_for
from .posts import PostNormalizer
from .reactions import ReactionNormalizer

__all__ = [
    "CommentNormalizer",
    "GenericItem",
    "ItemNormalizer",
    "NormalizerRegistry",
    "PostNormalizer",
    "ReactionNormalizer",
    "normalize_message",
    "normalize_thread",
    "thread_id_for",
]

# Register normalizers
NormalizerRegistry.register(PostNormalizer())
NormalizerRegistry.register(CommentNormalizer())
NormalizerRegistry.register(ReactionNormalizer())
