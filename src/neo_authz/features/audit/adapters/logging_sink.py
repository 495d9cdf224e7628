"""Audit sinks shipped with neo-authz."""

import logging

from ..entities import AuditEntry


class LoggingAuditSink:
    """Writes audit entries to the ``neo_authz.audit`` logger.

    The full entry is attached as ``extra["audit"]`` for structured handlers.
    """

    def __init__(self, logger_name: str = "neo_authz.audit", level: int = logging.INFO):
        self.logger = logging.getLogger(logger_name)
        self.level = level

    async def record(self, entry: AuditEntry) -> None:
        subject = entry.subject or "-"
        names = ", ".join(entry.names) or "-"
        message = f"{entry.action.value} subject={subject} names=[{names}] context={entry.context}"
        if entry.result is not None:
            message += f" result={entry.result}"
        if entry.grant_path:
            message += f" path={entry.grant_path}"
        self.logger.log(self.level, message, extra={"audit": entry.to_dict()})


class NullAuditSink:
    """Discards audit entries."""

    async def record(self, entry: AuditEntry) -> None:
        return None
