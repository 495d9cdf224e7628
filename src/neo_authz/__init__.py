"""neo-authz: authorization decision engine for NeoMultiTenant services.

Decides whether a subject holds a permission or role, optionally scoped to a
context such as a tenant, across direct grants, roles, capabilities, wildcard
patterns and feature gates.
"""

from .__version__ import __version__
from .config import AuthzSettings, get_settings, setup_logging
from .core.exceptions import NeoAuthzError
from .features.permissions import (
    GLOBAL_CONTEXT,
    AsyncPGDefinitionStore,
    AsyncPGRelationStore,
    Authorizer,
    ContextRef,
    DefinitionTable,
    InMemoryDefinitionStore,
    InMemoryRelationStore,
    SubjectRef,
    SubjectTraits,
)

__all__ = [
    "AsyncPGDefinitionStore",
    "AsyncPGRelationStore",
    "Authorizer",
    "AuthzSettings",
    "ContextRef",
    "DefinitionTable",
    "GLOBAL_CONTEXT",
    "InMemoryDefinitionStore",
    "InMemoryRelationStore",
    "NeoAuthzError",
    "SubjectRef",
    "SubjectTraits",
    "__version__",
    "get_settings",
    "setup_logging",
]
