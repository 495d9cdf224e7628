"""Audit services."""

from .audit_trail import AuditTrail

__all__ = ["AuditTrail"]
