"""Registry cache feature."""

from .adapters import RedisAdapter
from .entities import CacheBackend, CacheEntry
from .services import RegistryCache

__all__ = ["CacheBackend", "CacheEntry", "RedisAdapter", "RegistryCache"]
