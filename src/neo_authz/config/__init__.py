"""Configuration for neo-authz."""

from .constants import (
    CheckKind,
    ConditionOperator,
    DefinitionKind,
    GrantPath,
    OnMissingHandler,
)
from .logging_config import LoggingConfig, get_logger, setup_logging
from .settings import (
    AuditSettings,
    AuthzSettings,
    CacheSettings,
    CapabilitySettings,
    ContextSettings,
    FeatureSettings,
    WildcardSettings,
    get_settings,
)

__all__ = [
    "AuditSettings",
    "AuthzSettings",
    "CacheSettings",
    "CapabilitySettings",
    "CheckKind",
    "ConditionOperator",
    "ContextSettings",
    "DefinitionKind",
    "FeatureSettings",
    "GrantPath",
    "LoggingConfig",
    "OnMissingHandler",
    "WildcardSettings",
    "get_logger",
    "get_settings",
    "setup_logging",
]
