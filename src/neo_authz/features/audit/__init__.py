"""Audit trail feature."""

from .adapters import LoggingAuditSink, NullAuditSink
from .entities import AuditAction, AuditEntry, AuditSink
from .services import AuditTrail

__all__ = [
    "AuditAction",
    "AuditEntry",
    "AuditSink",
    "AuditTrail",
    "LoggingAuditSink",
    "NullAuditSink",
]
