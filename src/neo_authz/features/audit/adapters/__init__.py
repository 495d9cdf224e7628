"""Audit sink adapters."""

from .logging_sink import LoggingAuditSink, NullAuditSink

__all__ = ["LoggingAuditSink", "NullAuditSink"]
