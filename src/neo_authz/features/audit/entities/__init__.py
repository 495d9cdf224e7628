"""Audit entities."""

from .audit_entry import AuditAction, AuditEntry
from .protocols import AuditSink

__all__ = ["AuditAction", "AuditEntry", "AuditSink"]
