"""Context value objects.

A context is any (type, id) scoping entity attached to a grant edge, such as
a tenant or a team. ``GLOBAL_CONTEXT`` is the (None, None) pair.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from ....core.exceptions import InvalidContextError


@dataclass(frozen=True)
class ContextRef:
    """Normalized (type, id) context pair.

    ``source`` keeps the object the pair was resolved from, such as a tenant
    model, for feature handlers. It takes no part in equality or hashing.
    """

    type: Optional[str] = None
    id: Optional[str] = None
    source: Any = field(default=None, compare=False, hash=False, repr=False)

    def __post_init__(self):
        if (self.type is None) != (self.id is None):
            raise InvalidContextError(
                f"Context type and id must both be set or both be empty, got ({self.type!r}, {self.id!r})"
            )
        if self.id is not None and not isinstance(self.id, str):
            object.__setattr__(self, "id", str(self.id))

    @property
    def is_global(self) -> bool:
        return self.type is None

    def as_tuple(self) -> Tuple[Optional[str], Optional[str]]:
        return (self.type, self.id)

    def __str__(self) -> str:
        return "global" if self.is_global else f"{self.type}:{self.id}"


GLOBAL_CONTEXT = ContextRef()


@dataclass(frozen=True)
class ContextFilter:
    """Predicate over the context columns of grant edges.

    Matches an edge when its context equals one of ``targets``.
    """

    targets: Tuple[ContextRef, ...]

    @classmethod
    def exact(cls, context: ContextRef) -> "ContextFilter":
        return cls((context,))

    @classmethod
    def global_only(cls) -> "ContextFilter":
        return cls((GLOBAL_CONTEXT,))

    def matches(self, context: ContextRef) -> bool:
        return context in self.targets
