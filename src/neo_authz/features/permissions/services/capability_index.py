"""Capability indirection.

Capabilities group permissions one level above roles and subjects. Nothing
chains through capabilities recursively.
"""

from typing import Iterable, List, Set

from ....config.constants import DefinitionKind
from ....config.settings import AuthzSettings
from ..entities import (
    ContextFilter,
    Permission,
    Relation,
    RelationStore,
    Subject,
    SubjectTraits,
    subject_owner,
)
from .definition_service import DefinitionRegistry


class CapabilityIndex:
    """Resolves capabilities to permission ids and merges every grant path."""

    def __init__(self, registry: DefinitionRegistry, relations: RelationStore, settings: AuthzSettings):
        self.registry = registry
        self.relations = relations
        self.settings = settings

    async def _collect(self, relation: Relation, owner_ids: Iterable[int]) -> Set[int]:
        grantees = await self.registry.grantee_map(relation)
        collected: Set[int] = set()
        for owner_id in owner_ids:
            collected |= grantees.get(str(owner_id), set())
        return collected

    async def permissions_of(self, capability_ids: Iterable[int]) -> Set[int]:
        if not self.settings.capabilities.enabled:
            return set()
        return await self._collect(Relation.CAPABILITY_PERMISSION, capability_ids)

    async def capabilities_of_roles(self, role_ids: Iterable[int]) -> Set[int]:
        if not self.settings.capabilities.enabled:
            return set()
        return await self._collect(Relation.ROLE_CAPABILITY, role_ids)

    async def permissions_of_roles(self, role_ids: Iterable[int]) -> Set[int]:
        return await self._collect(Relation.ROLE_PERMISSION, role_ids)

    async def direct_capabilities(self, subject: Subject, context_filter: ContextFilter) -> Set[int]:
        if not self.settings.direct_capabilities_enabled or SubjectTraits.CAPABILITIES not in subject.traits:
            return set()
        return await self.relations.grantee_ids(
            Relation.SUBJECT_CAPABILITY, [subject_owner(subject)], context_filter
        )

    async def direct_permissions(self, subject: Subject, context_filter: ContextFilter) -> Set[int]:
        if SubjectTraits.PERMISSIONS not in subject.traits:
            return set()
        return await self.relations.grantee_ids(
            Relation.SUBJECT_PERMISSION, [subject_owner(subject)], context_filter
        )

    async def all_capability_ids(
        self,
        subject: Subject,
        role_ids: Iterable[int],
        context_filter: ContextFilter,
    ) -> Set[int]:
        """Capabilities reachable through roles plus directly assigned ones."""
        return await self.capabilities_of_roles(role_ids) | await self.direct_capabilities(subject, context_filter)

    async def all_permission_ids(
        self,
        subject: Subject,
        role_ids: Iterable[int],
        context_filter: ContextFilter,
    ) -> Set[int]:
        """Union of direct, role, role-capability and direct-capability permissions."""
        role_ids = list(role_ids)
        permission_ids = await self.direct_permissions(subject, context_filter)
        permission_ids |= await self.permissions_of_roles(role_ids)
        permission_ids |= await self.permissions_of(await self.capabilities_of_roles(role_ids))
        permission_ids |= await self.permissions_of(await self.direct_capabilities(subject, context_filter))
        return permission_ids

    async def all_permissions(self, subject: Subject, role_ids: Iterable[int], context_filter: ContextFilter) -> List[Permission]:
        """Permission definitions for ``all_permission_ids``, each once, ordered by name."""
        ids = await self.all_permission_ids(subject, role_ids, context_filter)
        permissions = await self.registry.by_ids(DefinitionKind.PERMISSION, ids)
        return sorted(permissions, key=lambda permission: permission.name)
