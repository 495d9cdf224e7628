"""Grant edge value objects."""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ....config.constants import CAPABILITY_OWNER_TYPE, ROLE_OWNER_TYPE, DefinitionKind
from .context import GLOBAL_CONTEXT, ContextRef
from .definition import Capability, Role


@dataclass(frozen=True)
class EntityRef:
    """Owner of a grant edge: a subject, a role or a capability."""

    type: str
    id: str

    def __post_init__(self):
        if not isinstance(self.id, str):
            object.__setattr__(self, "id", str(self.id))

    @classmethod
    def of(cls, owner: Union[Role, Capability]) -> "EntityRef":
        """Reference a role or capability definition as an owner."""
        owner_type = ROLE_OWNER_TYPE if isinstance(owner, Role) else CAPABILITY_OWNER_TYPE
        return cls(owner_type, str(owner.id))

    def __str__(self) -> str:
        return f"{self.type}#{self.id}"


class Relation(str, Enum):
    """Kinds of grant edges, named owner_grantee."""

    SUBJECT_PERMISSION = "subject_permission"
    SUBJECT_ROLE = "subject_role"
    SUBJECT_CAPABILITY = "subject_capability"
    ROLE_PERMISSION = "role_permission"
    ROLE_CAPABILITY = "role_capability"
    CAPABILITY_PERMISSION = "capability_permission"

    @property
    def grantee_kind(self) -> DefinitionKind:
        return DefinitionKind(self.value.split("_", 1)[1])

    @property
    def owned_by_subject(self) -> bool:
        return self.value.startswith("subject_")

    @property
    def owner_kind(self) -> DefinitionKind:
        """Definition kind of the owner; only valid for role and capability owned edges."""
        return DefinitionKind(self.value.split("_", 1)[0])


@dataclass(frozen=True)
class GrantEdge:
    """A persisted grant. (relation, owner, grantee, context) is unique."""

    relation: Relation
    owner: EntityRef
    grantee_id: int
    context: ContextRef = GLOBAL_CONTEXT
