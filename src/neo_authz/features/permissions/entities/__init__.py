"""Permission feature entities."""

from .context import GLOBAL_CONTEXT, ContextFilter, ContextRef
from .definition import (
    DEFINITION_TYPES,
    Capability,
    Definition,
    Permission,
    Role,
    definition_from_dict,
)
from .definition_table import (
    CapabilityDefinition,
    DefinitionTable,
    PermissionDefinition,
    RoleAssignments,
    RoleDefinition,
    SyncResult,
)
from .grant import EntityRef, GrantEdge, Relation
from .protocols import DefinitionStore, FeatureAccessHandler, FeatureFlags, RelationStore
from .subject import Subject, SubjectRef, SubjectTraits, subject_owner

__all__ = [
    "Capability",
    "CapabilityDefinition",
    "ContextFilter",
    "ContextRef",
    "DEFINITION_TYPES",
    "Definition",
    "DefinitionStore",
    "DefinitionTable",
    "EntityRef",
    "FeatureAccessHandler",
    "FeatureFlags",
    "GLOBAL_CONTEXT",
    "GrantEdge",
    "Permission",
    "PermissionDefinition",
    "Relation",
    "RelationStore",
    "Role",
    "RoleAssignments",
    "RoleDefinition",
    "Subject",
    "SubjectRef",
    "SubjectTraits",
    "SyncResult",
    "definition_from_dict",
    "subject_owner",
]
