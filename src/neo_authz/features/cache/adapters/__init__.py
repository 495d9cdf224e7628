"""Cache backend adapters."""

from .redis_adapter import RedisAdapter

__all__ = ["RedisAdapter"]
