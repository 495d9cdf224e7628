"""Constants and enumerations shared across neo-authz features."""

from enum import Enum


class OnMissingHandler(str, Enum):
    """Policy applied when feature integration is on but no handler is bound."""
    ALLOW = "allow"
    DENY = "deny"
    THROW = "throw"


class ConditionOperator(str, Enum):
    """Boolean operator attached to a builder condition."""
    AND = "and"
    OR = "or"


class CheckKind(str, Enum):
    """Kind of check a builder condition performs."""
    PERMISSION = "permission"
    ANY_PERMISSION = "any_permission"
    ROLE = "role"
    ANY_ROLE = "any_role"
    CAPABILITY = "capability"


class GrantPath(str, Enum):
    """Grant path through which a permission was found, in evaluation order."""
    WILDCARD = "wildcard"
    DIRECT = "direct"
    ROLE = "role"
    ROLE_CAPABILITY = "role_capability"
    DIRECT_CAPABILITY = "direct_capability"


class DefinitionKind(str, Enum):
    """Kinds of registry definitions."""
    PERMISSION = "permission"
    ROLE = "role"
    CAPABILITY = "capability"

    @property
    def plural(self) -> str:
        return {
            DefinitionKind.PERMISSION: "permissions",
            DefinitionKind.ROLE: "roles",
            DefinitionKind.CAPABILITY: "capabilities",
        }[self]


# Owner type used for role and capability owned grant edges
ROLE_OWNER_TYPE = "role"
CAPABILITY_OWNER_TYPE = "capability"

DEFAULT_GUARD = "web"
DEFAULT_CACHE_TTL_SECONDS = 86400
DEFAULT_CACHE_KEY_PREFIX = "neo_authz.registry"
WILDCARD_PATTERN_CACHE_SIZE = 1000
