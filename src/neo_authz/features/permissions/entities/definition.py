"""Registry definitions: permissions, roles and capabilities.

A definition is unique per (name, guard). Its identity never changes once
created; label and description are cosmetic, and ``feature`` optionally binds
a permission or role to a feature flag.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional, Tuple

from ....config.constants import DefinitionKind
from ....core.exceptions import CircularRoleInheritanceError, ValidationError


@dataclass
class Definition:
    """Common shape of every registry definition."""

    kind: ClassVar[DefinitionKind]

    id: Optional[int]
    name: str
    guard: str
    label: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError(f"{self.kind.value.capitalize()} name must not be empty")
        if not self.guard:
            raise ValidationError(f"{self.kind.value.capitalize()} '{self.name}' must have a guard")

    @property
    def key(self) -> Tuple[str, str]:
        """Natural key of the definition."""
        return (self.name, self.guard)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "guard": self.guard,
            "label": self.label,
            "description": self.description,
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.name}@{self.guard})"


@dataclass
class Permission(Definition):
    """A named permission."""

    kind: ClassVar[DefinitionKind] = DefinitionKind.PERMISSION

    feature: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["feature"] = self.feature
        return data


@dataclass
class Role(Definition):
    """A named role, optionally inheriting from parent roles of the same guard."""

    kind: ClassVar[DefinitionKind] = DefinitionKind.ROLE

    feature: Optional[str] = None
    inherits_from: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        super().__post_init__()
        self.inherits_from = tuple(self.inherits_from or ())
        if self.name in self.inherits_from:
            raise CircularRoleInheritanceError([self.name, self.name])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["feature"] = self.feature
        data["inherits_from"] = list(self.inherits_from)
        return data


@dataclass
class Capability(Definition):
    """A named group of permissions."""

    kind: ClassVar[DefinitionKind] = DefinitionKind.CAPABILITY


DEFINITION_TYPES = {
    DefinitionKind.PERMISSION: Permission,
    DefinitionKind.ROLE: Role,
    DefinitionKind.CAPABILITY: Capability,
}


def definition_from_dict(kind: DefinitionKind, data: Dict[str, Any]) -> Definition:
    """Build a definition from a dictionary produced by ``to_dict``."""
    cls = DEFINITION_TYPES[kind]
    kwargs = {
        "id": data.get("id"),
        "name": data["name"],
        "guard": data["guard"],
        "label": data.get("label"),
        "description": data.get("description"),
    }
    if kind is not DefinitionKind.CAPABILITY:
        kwargs["feature"] = data.get("feature")
    if kind is DefinitionKind.ROLE:
        kwargs["inherits_from"] = tuple(data.get("inherits_from") or ())
    return cls(**kwargs)
