"""In-process cache entry."""

import time
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class CacheEntry:
    """Cached value with expiry metadata."""
    value: Any
    created_at: float = field(default_factory=time.monotonic)
    expires_at: Optional[float] = None

    @classmethod
    def with_ttl(cls, value: Any, ttl: int) -> "CacheEntry":
        now = time.monotonic()
        return cls(value=value, created_at=now, expires_at=now + ttl if ttl > 0 else None)

    @property
    def is_expired(self) -> bool:
        """Check if entry is expired."""
        if self.expires_at is None:
            return False
        return time.monotonic() > self.expires_at

    @property
    def ttl(self) -> Optional[int]:
        """Remaining TTL in seconds."""
        if self.expires_at is None:
            return None
        return max(0, int(self.expires_at - time.monotonic()))
