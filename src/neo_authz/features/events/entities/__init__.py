"""Event entities."""

from .authz_events import DefinitionsSynced, Granted, Revoked, Synced

__all__ = ["DefinitionsSynced", "Granted", "Revoked", "Synced"]
