"""Settings for neo-authz.

All settings are read from environment variables prefixed with ``NEO_AUTHZ_``.
Nested sections use a double underscore, for example
``NEO_AUTHZ_CONTEXT__GLOBAL_FALLBACK=false`` or
``NEO_AUTHZ_FEATURES__CONTEXT_TYPES='["team"]'``.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_CACHE_KEY_PREFIX,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_GUARD,
    OnMissingHandler,
)


class ContextSettings(BaseModel):
    """Context scoping of grant edges."""

    enabled: bool = Field(default=False, description="Allow grants scoped to a context entity")
    global_fallback: bool = Field(
        default=True,
        description="Context checks also match global grants",
    )


class CapabilitySettings(BaseModel):
    """Capability grouping layer."""

    enabled: bool = Field(default=False, description="Enable capabilities")
    direct_assignment: bool = Field(
        default=False,
        description="Allow capabilities to be assigned directly to subjects",
    )


class FeatureSettings(BaseModel):
    """Feature gate integration."""

    enabled: bool = Field(default=False, description="Enable feature gate integration")
    context_types: List[str] = Field(
        default_factory=list,
        description="Context types that are treated as features",
    )
    on_missing_handler: OnMissingHandler = Field(
        default=OnMissingHandler.DENY,
        description="Policy when no feature access handler is bound",
    )


class WildcardSettings(BaseModel):
    """Wildcard permission matching."""

    enabled: bool = Field(default=False, description="Enable wildcard permission checks")
    delimiters: str = Field(default=".:", min_length=1, description="Segment delimiter characters")
    token: str = Field(default="*", min_length=1, description="Wildcard token")
    subpart_delimiter: str = Field(default=",", min_length=1, description="Subpart delimiter inside a segment")

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str, info) -> str:
        delimiters = info.data.get("delimiters", "")
        if any(ch in delimiters for ch in v):
            raise ValueError("Wildcard token must not contain a segment delimiter")
        return v


class CacheSettings(BaseModel):
    """Registry cache configuration."""

    ttl: int = Field(default=DEFAULT_CACHE_TTL_SECONDS, ge=0, description="TTL in seconds, 0 disables caching")
    key_prefix: str = Field(default=DEFAULT_CACHE_KEY_PREFIX, description="Cache key prefix")
    redis_url: Optional[str] = Field(default=None, description="Shared Redis backend URL")


class AuditSettings(BaseModel):
    """Audit trail policy."""

    enabled: bool = Field(default=False, description="Enable audit logging")
    log_checks: bool = Field(default=False, description="Record every permission and role check")
    log_changes: bool = Field(default=True, description="Record grant mutations")
    log_denials: bool = Field(default=True, description="Record denied checks")


class AuthzSettings(BaseSettings):
    """Top level authorization engine settings."""

    model_config = SettingsConfigDict(
        env_prefix="NEO_AUTHZ_",
        env_nested_delimiter="__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    default_guard: str = Field(default=DEFAULT_GUARD, min_length=1, description="Guard used when none is given")
    events_enabled: bool = Field(default=False, description="Dispatch domain events on mutations")

    context: ContextSettings = Field(default_factory=ContextSettings)
    capabilities: CapabilitySettings = Field(default_factory=CapabilitySettings)
    features: FeatureSettings = Field(default_factory=FeatureSettings)
    wildcards: WildcardSettings = Field(default_factory=WildcardSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)

    @property
    def feature_integration_enabled(self) -> bool:
        """Feature gating needs both the feature and the context subsystems."""
        return self.features.enabled and self.context.enabled

    @property
    def direct_capabilities_enabled(self) -> bool:
        return self.capabilities.enabled and self.capabilities.direct_assignment


@lru_cache()
def get_settings() -> AuthzSettings:
    """Get cached settings instance."""
    return AuthzSettings()
