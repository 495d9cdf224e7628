"""Domain events emitted by grant mutations and definition syncs."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Tuple

from ...permissions.entities import GLOBAL_CONTEXT, ContextRef, EntityRef, Relation, SyncResult


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Granted:
    """Grantees were attached to an owner."""
    relation: Relation
    owner: EntityRef
    names: Tuple[str, ...]
    context: ContextRef = GLOBAL_CONTEXT
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class Revoked:
    """Grantees were detached from an owner."""
    relation: Relation
    owner: EntityRef
    names: Tuple[str, ...]
    context: ContextRef = GLOBAL_CONTEXT
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class Synced:
    """An owner's grantee set was replaced for one context."""
    relation: Relation
    owner: EntityRef
    names: Tuple[str, ...]
    attached: Tuple[str, ...] = ()
    detached: Tuple[str, ...] = ()
    context: ContextRef = GLOBAL_CONTEXT
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class DefinitionsSynced:
    """A definition table was synced into the registry."""
    guard: str
    result: SyncResult
    occurred_at: datetime = field(default_factory=_now)
