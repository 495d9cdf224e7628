"""Cache services."""

from .registry_cache import RegistryCache

__all__ = ["RegistryCache"]
