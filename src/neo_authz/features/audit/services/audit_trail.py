"""Audit policy wrapper around an AuditSink."""

import logging
from typing import Iterable, Optional

from ....config.settings import AuditSettings
from ...permissions.entities import GLOBAL_CONTEXT, ContextRef, EntityRef
from ..adapters import LoggingAuditSink
from ..entities import AuditAction, AuditEntry, AuditSink

logger = logging.getLogger(__name__)


class AuditTrail:
    """Applies audit settings and shields callers from sink failures.

    Sink errors are logged and swallowed here and nowhere else, so an audit
    outage never changes an authorization decision or a mutation.
    """

    def __init__(self, settings: Optional[AuditSettings] = None, sink: Optional[AuditSink] = None):
        self.settings = settings or AuditSettings()
        self.sink = sink or LoggingAuditSink()

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    async def record_change(
        self,
        action: AuditAction,
        subject: Optional[EntityRef],
        names: Iterable[str],
        context: ContextRef = GLOBAL_CONTEXT,
        **metadata,
    ) -> None:
        if not (self.settings.enabled and self.settings.log_changes):
            return
        await self._write(AuditEntry(
            action=action,
            subject=subject,
            names=tuple(names),
            context=context,
            metadata=metadata,
        ))

    async def record_check(
        self,
        action: AuditAction,
        subject: Optional[EntityRef],
        name: str,
        context: ContextRef,
        result: bool,
        grant_path: Optional[str] = None,
    ) -> None:
        if not self.settings.enabled:
            return
        if self.settings.log_checks:
            await self._write(AuditEntry(
                action=action,
                subject=subject,
                names=(name,),
                context=context,
                result=result,
                grant_path=grant_path,
            ))
        if not result and self.settings.log_denials:
            await self._write(AuditEntry(
                action=AuditAction.ACCESS_DENIED,
                subject=subject,
                names=(name,),
                context=context,
                result=False,
                metadata={"check": action.value},
            ))

    async def _write(self, entry: AuditEntry) -> None:
        try:
            await self.sink.record(entry)
        except Exception as e:
            logger.warning(f"Audit sink failed to record {entry.action.value}: {e}")
