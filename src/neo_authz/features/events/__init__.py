"""Authorization domain events."""

from .entities import DefinitionsSynced, Granted, Revoked, Synced
from .services import EventDispatcher

__all__ = ["DefinitionsSynced", "EventDispatcher", "Granted", "Revoked", "Synced"]
