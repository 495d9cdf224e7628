"""Authorization domain exceptions."""

from typing import Iterable, Optional

from .base import NeoAuthzError


class AuthorizationError(NeoAuthzError):
    """Base class for authorization errors."""
    pass


class GuardMismatchError(AuthorizationError):
    """Raised when a grantee belongs to a different guard than its owner."""

    def __init__(self, kind: str, name: str, expected_guard: str, actual_guard: str):
        super().__init__(
            f"The {kind} '{name}' belongs to guard '{actual_guard}', expected '{expected_guard}'",
            details={
                "kind": kind,
                "name": name,
                "expected_guard": expected_guard,
                "actual_guard": actual_guard,
            },
        )
        self.expected_guard = expected_guard
        self.actual_guard = actual_guard

    @classmethod
    def for_permission(cls, name: str, expected_guard: str, actual_guard: str) -> "GuardMismatchError":
        return cls("permission", name, expected_guard, actual_guard)

    @classmethod
    def for_role(cls, name: str, expected_guard: str, actual_guard: str) -> "GuardMismatchError":
        return cls("role", name, expected_guard, actual_guard)

    @classmethod
    def for_capability(cls, name: str, expected_guard: str, actual_guard: str) -> "GuardMismatchError":
        return cls("capability", name, expected_guard, actual_guard)


class UnresolvedGranteeError(AuthorizationError):
    """Raised when a name-based grant references an unknown definition."""

    kind = "definition"

    def __init__(self, name: str, guard: str):
        super().__init__(
            f"There is no {self.kind} named '{name}' for guard '{guard}'",
            details={"kind": self.kind, "name": name, "guard": guard},
        )
        self.name = name
        self.guard = guard


class PermissionNotFoundError(UnresolvedGranteeError):
    kind = "permission"


class RoleNotFoundError(UnresolvedGranteeError):
    kind = "role"


class CapabilityNotFoundError(UnresolvedGranteeError):
    kind = "capability"


class DefinitionAlreadyExistsError(AuthorizationError):
    """Raised when creating a definition whose name is taken in the guard."""

    kind = "definition"

    def __init__(self, name: str, guard: str):
        super().__init__(
            f"A {self.kind} '{name}' already exists for guard '{guard}'",
            details={"kind": self.kind, "name": name, "guard": guard},
        )
        self.name = name
        self.guard = guard


class PermissionAlreadyExistsError(DefinitionAlreadyExistsError):
    kind = "permission"


class RoleAlreadyExistsError(DefinitionAlreadyExistsError):
    kind = "role"


class CapabilityAlreadyExistsError(DefinitionAlreadyExistsError):
    kind = "capability"


class CircularRoleInheritanceError(AuthorizationError):
    """Raised when role inheritance forms a cycle."""

    def __init__(self, chain: Iterable[str]):
        chain = list(chain)
        super().__init__(
            f"Circular role inheritance detected: {' -> '.join(chain)}",
            details={"chain": chain},
        )
        self.chain = chain


class FeatureHandlerUnavailableError(AuthorizationError):
    """Raised when feature integration is enabled without a bound handler."""

    def __init__(self, feature: Optional[str] = None):
        message = "Feature integration is enabled but no feature access handler is bound"
        if feature:
            message = f"{message} (feature '{feature}')"
        super().__init__(message, details={"feature": feature})
