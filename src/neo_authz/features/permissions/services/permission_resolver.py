"""Permission checks across every grant path.

``has_permission`` runs, in this order and stopping at the first match:

1. the feature gate for the requested context
2. a wildcard scan of every permission the subject holds (when enabled)
3. a direct subject grant
4. a role grant, through the role itself or through one of its capabilities
5. a capability assigned directly to the subject (when enabled)

The first matching path is what the audit trail records.
"""

import logging
from typing import Any, Iterable, List, Optional, Set, Union

from ....config.constants import GrantPath
from ....config.settings import AuthzSettings
from ...audit.entities import AuditAction
from ...audit.services import AuditTrail
from ..entities import (
    Capability,
    ContextFilter,
    ContextRef,
    Permission,
    Relation,
    RelationStore,
    Subject,
    SubjectTraits,
    subject_owner,
)
from .capability_index import CapabilityIndex
from .context_resolver import ContextResolver
from .definition_service import DefinitionRegistry
from .feature_gate import FeatureGate
from .role_resolver import RoleResolver
from .wildcard_matcher import WildcardMatcher

logger = logging.getLogger(__name__)

PermissionArg = Union[str, Permission]
CapabilityArg = Union[str, Capability]


class PermissionResolver:
    """Combines grant paths into permission and capability decisions."""

    def __init__(
        self,
        registry: DefinitionRegistry,
        relations: RelationStore,
        context_resolver: ContextResolver,
        feature_gate: FeatureGate,
        roles: RoleResolver,
        capabilities: CapabilityIndex,
        wildcards: WildcardMatcher,
        audit: AuditTrail,
        settings: AuthzSettings,
    ):
        self.registry = registry
        self.relations = relations
        self.context_resolver = context_resolver
        self.feature_gate = feature_gate
        self.roles = roles
        self.capabilities = capabilities
        self.wildcards = wildcards
        self.audit = audit
        self.settings = settings

    @staticmethod
    def _name_of(subject: Subject, item: Union[str, Permission, Capability]) -> Optional[str]:
        if isinstance(item, str):
            return item
        return item.name if item.guard == subject.guard else None

    async def has_permission(
        self,
        subject: Subject,
        permission: PermissionArg,
        context: Any = None,
        bypass_feature: bool = False,
    ) -> bool:
        context_ref = self.context_resolver.resolve(context)
        name = self._name_of(subject, permission)
        path: Optional[GrantPath] = None

        if name is not None and await self.feature_gate.check_access(subject, context_ref, bypass_feature):
            path = await self._resolve(subject, name, self.context_resolver.build_filter(context))
            if path is not None:
                definition = await self.registry.find_permission(name, subject.guard)
                if definition is not None and not await self.feature_gate.check_binding(subject, definition.feature):
                    path = None

        result = path is not None
        logger.debug(
            f"has_permission {subject.subject_type}#{subject.subject_id} {name} "
            f"context={context_ref} -> {result}{f' via {path.value}' if path else ''}"
        )
        await self.audit.record_check(
            AuditAction.PERMISSION_CHECK,
            subject_owner(subject),
            str(name),
            context_ref,
            result,
            path.value if path else None,
        )
        return result

    async def resolve_permission_path(
        self,
        subject: Subject,
        permission: PermissionArg,
        context: Any = None,
    ) -> Optional[GrantPath]:
        """First grant path that gives the subject ``permission``, ignoring the feature gate."""
        name = self._name_of(subject, permission)
        if name is None:
            return None
        return await self._resolve(subject, name, self.context_resolver.build_filter(context))

    async def _resolve(self, subject: Subject, name: str, context_filter: ContextFilter) -> Optional[GrantPath]:
        role_ids: Optional[Set[int]] = None

        if self.wildcards.enabled:
            role_ids = await self.roles.effective_role_ids(subject, context_filter)
            held = await self.capabilities.all_permissions(subject, role_ids, context_filter)
            patterns = [permission.name for permission in held if self.wildcards.is_pattern(permission.name)]
            if self.wildcards.matches_any(patterns, name) is not None:
                return GrantPath.WILDCARD

        permission = await self.registry.find_permission(name, subject.guard)
        if permission is None:
            return None

        if SubjectTraits.PERMISSIONS in subject.traits and await self.relations.exists(
            Relation.SUBJECT_PERMISSION, [subject_owner(subject)], permission.id, context_filter
        ):
            return GrantPath.DIRECT

        if SubjectTraits.ROLES in subject.traits:
            if role_ids is None:
                role_ids = await self.roles.effective_role_ids(subject, context_filter)
            if role_ids:
                if permission.id in await self.capabilities.permissions_of_roles(role_ids):
                    return GrantPath.ROLE
                role_capabilities = await self.capabilities.capabilities_of_roles(role_ids)
                if permission.id in await self.capabilities.permissions_of(role_capabilities):
                    return GrantPath.ROLE_CAPABILITY

        direct_capabilities = await self.capabilities.direct_capabilities(subject, context_filter)
        if permission.id in await self.capabilities.permissions_of(direct_capabilities):
            return GrantPath.DIRECT_CAPABILITY

        return None

    async def has_direct_permission(self, subject: Subject, permission: PermissionArg, context: Any = None) -> bool:
        """Direct subject grant only; roles and capabilities are ignored."""
        name = self._name_of(subject, permission)
        if name is None or SubjectTraits.PERMISSIONS not in subject.traits:
            return False
        definition = await self.registry.find_permission(name, subject.guard)
        if definition is None:
            return False
        return await self.relations.exists(
            Relation.SUBJECT_PERMISSION,
            [subject_owner(subject)],
            definition.id,
            self.context_resolver.build_filter(context),
        )

    async def has_any_permission(
        self,
        subject: Subject,
        permissions: Iterable[PermissionArg],
        context: Any = None,
    ) -> bool:
        """False for an empty list."""
        for permission in permissions:
            if await self.has_permission(subject, permission, context):
                return True
        return False

    async def has_all_permissions(
        self,
        subject: Subject,
        permissions: Iterable[PermissionArg],
        context: Any = None,
    ) -> bool:
        """False for an empty list. Every item is checked so each one is audited."""
        permissions = list(permissions)
        if not permissions:
            return False
        results = [await self.has_permission(subject, permission, context) for permission in permissions]
        return all(results)

    async def get_all_permissions(self, subject: Subject, context: Any = None) -> List[Permission]:
        """Every permission the subject holds in the context, each once."""
        context_filter = self.context_resolver.build_filter(context)
        role_ids = await self.roles.effective_role_ids(subject, context_filter)
        return await self.capabilities.all_permissions(subject, role_ids, context_filter)

    async def get_permission_names(self, subject: Subject, context: Any = None) -> List[str]:
        return [permission.name for permission in await self.get_all_permissions(subject, context)]

    async def get_permission_contexts(self, subject: Subject, permission: PermissionArg) -> List[ContextRef]:
        """Every non-global context in which ``permission`` is granted directly."""
        name = self._name_of(subject, permission)
        if name is None or SubjectTraits.PERMISSIONS not in subject.traits:
            return []
        definition = await self.registry.find_permission(name, subject.guard)
        if definition is None:
            return []
        return await self.relations.contexts_for(
            Relation.SUBJECT_PERMISSION, subject_owner(subject), definition.id
        )

    # Capabilities

    async def get_all_capabilities(self, subject: Subject, context: Any = None) -> List[Capability]:
        if not self.settings.capabilities.enabled:
            return []
        context_filter = self.context_resolver.build_filter(context)
        role_ids = await self.roles.effective_role_ids(subject, context_filter)
        ids = await self.capabilities.all_capability_ids(subject, role_ids, context_filter)
        capabilities = await self.registry.all_capabilities(subject.guard)
        return sorted(
            (capability for capability in capabilities if capability.id in ids),
            key=lambda capability: capability.name,
        )

    async def has_capability(self, subject: Subject, capability: CapabilityArg, context: Any = None) -> bool:
        name = self._name_of(subject, capability)
        if name is None or not self.settings.capabilities.enabled:
            return False
        return name in {item.name for item in await self.get_all_capabilities(subject, context)}

    async def has_any_capability(
        self,
        subject: Subject,
        capabilities: Iterable[CapabilityArg],
        context: Any = None,
    ) -> bool:
        for capability in capabilities:
            if await self.has_capability(subject, capability, context):
                return True
        return False

    async def has_all_capabilities(
        self,
        subject: Subject,
        capabilities: Iterable[CapabilityArg],
        context: Any = None,
    ) -> bool:
        capabilities = list(capabilities)
        if not capabilities:
            return False
        results = [await self.has_capability(subject, capability, context) for capability in capabilities]
        return all(results)
