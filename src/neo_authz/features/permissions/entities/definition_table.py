"""Statically constructed definition tables for registry sync.

A discovery or build step produces a ``DefinitionTable`` as plain data and
hands it to ``DefinitionRegistry.sync``. The engine never introspects code to
find definitions.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _BaseDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    guard: Optional[str] = None
    label: Optional[str] = None
    description: Optional[str] = None


class PermissionDefinition(_BaseDefinition):
    """Permission entry. ``capabilities`` lists capabilities that include it."""

    feature: Optional[str] = None
    capabilities: List[str] = Field(default_factory=list)


class RoleDefinition(_BaseDefinition):
    """Role entry."""

    feature: Optional[str] = None
    inherits_from: List[str] = Field(default_factory=list)


class CapabilityDefinition(_BaseDefinition):
    """Capability entry. ``permissions`` lists permissions it groups."""

    permissions: List[str] = Field(default_factory=list)


class RoleAssignments(BaseModel):
    """Seed grants for one role."""

    model_config = ConfigDict(extra="forbid")

    permissions: List[str] = Field(default_factory=list)
    capabilities: List[str] = Field(default_factory=list)


class DefinitionTable(BaseModel):
    """All definitions to sync for one or more guards."""

    model_config = ConfigDict(extra="forbid")

    permissions: List[PermissionDefinition] = Field(default_factory=list)
    roles: List[RoleDefinition] = Field(default_factory=list)
    capabilities: List[CapabilityDefinition] = Field(default_factory=list)
    assignments: Dict[str, RoleAssignments] = Field(default_factory=dict)

    @field_validator("permissions", "roles", "capabilities", mode="before")
    @classmethod
    def expand_names(cls, v: Any) -> Any:
        """Allow bare names in place of full entries."""
        if isinstance(v, list):
            return [{"name": item} if isinstance(item, str) else item for item in v]
        return v

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DefinitionTable":
        return cls.model_validate(data)


@dataclass
class SyncResult:
    """Counts of definitions created and updated by a sync."""

    permissions_created: int = 0
    permissions_updated: int = 0
    roles_created: int = 0
    roles_updated: int = 0
    capabilities_created: int = 0
    capabilities_updated: int = 0
    assignments_seeded: int = 0
    guards: List[str] = field(default_factory=list)

    @property
    def total_created(self) -> int:
        return self.permissions_created + self.roles_created + self.capabilities_created

    @property
    def total_updated(self) -> int:
        return self.permissions_updated + self.roles_updated + self.capabilities_updated

    @property
    def total(self) -> int:
        return self.total_created + self.total_updated

    @property
    def has_changes(self) -> bool:
        return self.total > 0 or self.assignments_seeded > 0
