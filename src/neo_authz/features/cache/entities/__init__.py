"""Cache feature entities."""

from .cache_entry import CacheEntry
from .protocols import CacheBackend

__all__ = ["CacheBackend", "CacheEntry"]
