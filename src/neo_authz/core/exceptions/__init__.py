"""Exception hierarchy for neo-authz."""

from .authorization import (
    AuthorizationError,
    CapabilityAlreadyExistsError,
    CapabilityNotFoundError,
    CircularRoleInheritanceError,
    DefinitionAlreadyExistsError,
    FeatureHandlerUnavailableError,
    GuardMismatchError,
    PermissionAlreadyExistsError,
    PermissionNotFoundError,
    RoleAlreadyExistsError,
    RoleNotFoundError,
    UnresolvedGranteeError,
)
from .base import NeoAuthzError, create_error_response
from .domain import (
    CapabilitiesDisabledError,
    ConfigurationError,
    InvalidContextError,
    ValidationError,
)
from .infrastructure import CacheError, InfrastructureError, StoreError

__all__ = [
    "AuthorizationError",
    "CacheError",
    "CapabilitiesDisabledError",
    "CapabilityAlreadyExistsError",
    "CapabilityNotFoundError",
    "CircularRoleInheritanceError",
    "ConfigurationError",
    "DefinitionAlreadyExistsError",
    "FeatureHandlerUnavailableError",
    "GuardMismatchError",
    "InfrastructureError",
    "InvalidContextError",
    "NeoAuthzError",
    "PermissionAlreadyExistsError",
    "PermissionNotFoundError",
    "RoleAlreadyExistsError",
    "RoleNotFoundError",
    "StoreError",
    "UnresolvedGranteeError",
    "ValidationError",
    "create_error_response",
]
