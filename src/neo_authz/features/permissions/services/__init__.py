"""Permission feature services."""

from .authorization_builder import AuthorizationBuilder, Condition
from .authorization_service import Authorizer
from .capability_index import CapabilityIndex
from .context_resolver import ContextResolver
from .definition_service import DefinitionRegistry
from .feature_gate import FeatureGate
from .grant_service import GrantService
from .permission_resolver import PermissionResolver
from .role_hierarchy import RoleHierarchy
from .role_resolver import RoleResolver
from .wildcard_matcher import WildcardMatcher

__all__ = [
    "AuthorizationBuilder",
    "Authorizer",
    "CapabilityIndex",
    "Condition",
    "ContextResolver",
    "DefinitionRegistry",
    "FeatureGate",
    "GrantService",
    "PermissionResolver",
    "RoleHierarchy",
    "RoleResolver",
    "WildcardMatcher",
]
