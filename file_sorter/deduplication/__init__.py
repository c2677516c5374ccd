"""Deduplication module."""

from .hash_engine import ContentHasher
from .index import DuplicateIndex

__all__ = [
    "ContentHasher",
    "DuplicateIndex",
]
