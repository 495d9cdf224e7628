"""Cache backend protocol."""

from abc import abstractmethod
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class CacheBackend(Protocol):
    """Shared key/value backend behind the registry cache.

    Values are serialized strings; the registry cache owns encoding.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        ...
