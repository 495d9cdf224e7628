"""Audit sink protocol."""

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from .audit_entry import AuditEntry


@runtime_checkable
class AuditSink(Protocol):
    """Destination of audit entries."""

    @abstractmethod
    async def record(self, entry: AuditEntry) -> None:
        ...
