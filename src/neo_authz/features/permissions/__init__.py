"""Permissions feature: the authorization decision engine."""

from .entities import (
    GLOBAL_CONTEXT,
    Capability,
    ContextFilter,
    ContextRef,
    DefinitionTable,
    EntityRef,
    Permission,
    Relation,
    Role,
    SubjectRef,
    SubjectTraits,
    SyncResult,
)
from .repositories import (
    AsyncPGDefinitionStore,
    AsyncPGRelationStore,
    InMemoryDefinitionStore,
    InMemoryRelationStore,
)
from .services import AuthorizationBuilder, Authorizer, WildcardMatcher

__all__ = [
    "AsyncPGDefinitionStore",
    "AsyncPGRelationStore",
    "AuthorizationBuilder",
    "Authorizer",
    "Capability",
    "ContextFilter",
    "ContextRef",
    "DefinitionTable",
    "EntityRef",
    "GLOBAL_CONTEXT",
    "InMemoryDefinitionStore",
    "InMemoryRelationStore",
    "Permission",
    "Relation",
    "Role",
    "SubjectRef",
    "SubjectTraits",
    "SyncResult",
    "WildcardMatcher",
]
