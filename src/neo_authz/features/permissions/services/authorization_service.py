"""Authorization facade.

``Authorizer`` wires the resolvers, the registry, the grant service and the
ambient collaborators (cache, audit trail, events, feature handler) and is
the single entry point host applications use.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ....config.constants import GrantPath
from ....config.settings import AuthzSettings, get_settings
from ...audit.entities import AuditSink
from ...audit.services import AuditTrail
from ...cache.adapters import RedisAdapter
from ...cache.services import RegistryCache
from ...events.services import EventDispatcher
from ..entities import (
    Capability,
    ContextRef,
    DefinitionStore,
    DefinitionTable,
    FeatureAccessHandler,
    FeatureFlags,
    Permission,
    RelationStore,
    Role,
    Subject,
    SyncResult,
)
from .authorization_builder import AuthorizationBuilder
from .capability_index import CapabilityIndex
from .context_resolver import ContextResolver
from .definition_service import DefinitionRegistry
from .feature_gate import FeatureGate
from .grant_service import GrantService
from .permission_resolver import PermissionResolver
from .role_resolver import RoleResolver
from .wildcard_matcher import WildcardMatcher

logger = logging.getLogger(__name__)


class Authorizer:
    """Decision engine entry point."""

    def __init__(
        self,
        relations: RelationStore,
        definitions: DefinitionStore,
        settings: Optional[AuthzSettings] = None,
        cache: Optional[RegistryCache] = None,
        audit_sink: Optional[AuditSink] = None,
        feature_handler: Optional[FeatureAccessHandler] = None,
        feature_flags: Optional[FeatureFlags] = None,
        events: Optional[EventDispatcher] = None,
    ):
        self.settings = settings or get_settings()
        self.relations = relations
        self.definitions = definitions
        self.cache = cache or RegistryCache(
            ttl=self.settings.cache.ttl,
            key_prefix=self.settings.cache.key_prefix,
        )
        self.events = events or EventDispatcher()
        self.audit = AuditTrail(self.settings.audit, audit_sink)

        self.context_resolver = ContextResolver(self.settings.context)
        self.wildcards = WildcardMatcher(self.settings.wildcards)
        self.feature_gate = FeatureGate(self.settings, self.context_resolver, feature_handler, feature_flags)
        self.registry = DefinitionRegistry(definitions, relations, self.cache, self.settings, self.events)
        self.capability_index = CapabilityIndex(self.registry, relations, self.settings)
        self.roles = RoleResolver(
            self.registry, relations, self.context_resolver, self.feature_gate, self.audit, self.settings
        )
        self.permissions = PermissionResolver(
            self.registry,
            relations,
            self.context_resolver,
            self.feature_gate,
            self.roles,
            self.capability_index,
            self.wildcards,
            self.audit,
            self.settings,
        )
        self.grants = GrantService(
            self.registry, relations, self.context_resolver, self.audit, self.settings, self.events
        )

    @classmethod
    def from_settings(
        cls,
        relations: RelationStore,
        definitions: DefinitionStore,
        settings: Optional[AuthzSettings] = None,
        **kwargs,
    ) -> "Authorizer":
        """Build an authorizer, sharing the registry cache through Redis when configured."""
        settings = settings or get_settings()
        backend = RedisAdapter.from_url(settings.cache.redis_url) if settings.cache.redis_url else None
        cache = RegistryCache(
            ttl=settings.cache.ttl,
            key_prefix=settings.cache.key_prefix,
            backend=backend,
        )
        return cls(relations, definitions, settings=settings, cache=cache, **kwargs)

    def bind_feature_handler(self, handler: Optional[FeatureAccessHandler]) -> None:
        self.feature_gate.bind(handler)

    def for_subject(self, subject: Subject) -> AuthorizationBuilder:
        return AuthorizationBuilder(self, subject)

    # Permission checks

    async def has_permission(self, subject: Subject, permission, context: Any = None, bypass_feature: bool = False) -> bool:
        return await self.permissions.has_permission(subject, permission, context, bypass_feature)

    async def has_direct_permission(self, subject: Subject, permission, context: Any = None) -> bool:
        return await self.permissions.has_direct_permission(subject, permission, context)

    async def has_any_permission(self, subject: Subject, permissions: Iterable, context: Any = None) -> bool:
        return await self.permissions.has_any_permission(subject, permissions, context)

    async def has_all_permissions(self, subject: Subject, permissions: Iterable, context: Any = None) -> bool:
        return await self.permissions.has_all_permissions(subject, permissions, context)

    async def resolve_permission_path(self, subject: Subject, permission, context: Any = None) -> Optional[GrantPath]:
        return await self.permissions.resolve_permission_path(subject, permission, context)

    # Role checks

    async def has_role(self, subject: Subject, role, context: Any = None, bypass_feature: bool = False) -> bool:
        return await self.roles.has_role(subject, role, context, bypass_feature)

    async def has_any_role(self, subject: Subject, roles: Iterable, context: Any = None) -> bool:
        return await self.roles.has_any_role(subject, roles, context)

    async def has_all_roles(self, subject: Subject, roles: Iterable, context: Any = None) -> bool:
        return await self.roles.has_all_roles(subject, roles, context)

    async def has_exact_roles(self, subject: Subject, roles: Iterable, context: Any = None) -> bool:
        return await self.roles.has_exact_roles(subject, roles, context)

    # Capability checks

    async def has_capability(self, subject: Subject, capability, context: Any = None) -> bool:
        return await self.permissions.has_capability(subject, capability, context)

    async def has_any_capability(self, subject: Subject, capabilities: Iterable, context: Any = None) -> bool:
        return await self.permissions.has_any_capability(subject, capabilities, context)

    async def has_all_capabilities(self, subject: Subject, capabilities: Iterable, context: Any = None) -> bool:
        return await self.permissions.has_all_capabilities(subject, capabilities, context)

    # Subject snapshots

    async def get_all_permissions(self, subject: Subject, context: Any = None) -> List[Permission]:
        return await self.permissions.get_all_permissions(subject, context)

    async def get_all_roles(self, subject: Subject, context: Any = None) -> List[Role]:
        return await self.roles.get_roles(subject, context)

    async def get_all_capabilities(self, subject: Subject, context: Any = None) -> List[Capability]:
        return await self.permissions.get_all_capabilities(subject, context)

    async def get_permission_contexts(self, subject: Subject, permission) -> List[ContextRef]:
        return await self.permissions.get_permission_contexts(subject, permission)

    async def get_role_contexts(self, subject: Subject, role) -> List[ContextRef]:
        return await self.roles.get_role_contexts(subject, role)

    async def get_authorization_data(self, subject: Optional[Subject], context: Any = None) -> Dict[str, List[str]]:
        """Names of everything the subject holds, for front ends."""
        with_capabilities = self.settings.capabilities.enabled
        if subject is None:
            data = {"permissions": [], "roles": []}
            if with_capabilities:
                data["capabilities"] = []
            return data

        data = {
            "permissions": [permission.name for permission in await self.get_all_permissions(subject, context)],
            "roles": [role.name for role in await self.get_all_roles(subject, context)],
        }
        if with_capabilities:
            data["capabilities"] = [
                capability.name for capability in await self.get_all_capabilities(subject, context)
            ]
        return data

    async def check_ability(self, subject: Subject, ability: str, context: Any = None) -> Optional[bool]:
        """Gate hook: None when ``ability`` is not a managed permission, so the host gate can decide."""
        if await self.registry.find_permission(ability, subject.guard) is None:
            if not self.wildcards.enabled:
                return None
            patterns = [
                permission.name
                for permission in await self.registry.all_permissions(subject.guard)
                if self.wildcards.is_pattern(permission.name)
            ]
            if self.wildcards.matches_any(patterns, ability) is None:
                return None
        return await self.has_permission(subject, ability, context)

    # Feature queries

    async def is_feature_active(self, feature: Any) -> bool:
        return await self.feature_gate.is_feature_active(feature)

    async def has_feature_access(self, feature: Any, subject: Subject) -> bool:
        return await self.feature_gate.has_feature_access(feature, subject)

    async def can_access_feature(self, feature: Any, subject: Subject) -> bool:
        return await self.feature_gate.can_access_feature(feature, subject)

    # Registry

    async def all_permissions(self, guard: Optional[str] = None) -> List[Permission]:
        return await self.registry.all_permissions(guard)

    async def all_roles(self, guard: Optional[str] = None) -> List[Role]:
        return await self.registry.all_roles(guard)

    async def all_capabilities(self, guard: Optional[str] = None) -> List[Capability]:
        return await self.registry.all_capabilities(guard)

    async def sync_definitions(
        self,
        table: DefinitionTable,
        guard: Optional[str] = None,
        seed: bool = False,
    ) -> SyncResult:
        return await self.registry.sync(table, guard, seed)

    async def clear_cache(self) -> None:
        await self.cache.clear()
        self.wildcards.clear_cache()
