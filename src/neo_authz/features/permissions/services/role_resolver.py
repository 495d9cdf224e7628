"""Role checks with inheritance and context scoping."""

import logging
from typing import Any, Iterable, List, Optional, Set, Union

from ....config.settings import AuthzSettings
from ...audit.entities import AuditAction
from ...audit.services import AuditTrail
from ..entities import (
    ContextFilter,
    ContextRef,
    Relation,
    RelationStore,
    Role,
    Subject,
    SubjectTraits,
    subject_owner,
)
from .context_resolver import ContextResolver
from .definition_service import DefinitionRegistry
from .feature_gate import FeatureGate
from .role_hierarchy import RoleHierarchy

logger = logging.getLogger(__name__)

RoleArg = Union[str, Role]


class RoleResolver:
    """Answers has_role style questions for a subject.

    Holding a role implies holding every role it inherits from.
    """

    def __init__(
        self,
        registry: DefinitionRegistry,
        relations: RelationStore,
        context_resolver: ContextResolver,
        feature_gate: FeatureGate,
        audit: AuditTrail,
        settings: AuthzSettings,
        hierarchy: Optional[RoleHierarchy] = None,
    ):
        self.registry = registry
        self.relations = relations
        self.context_resolver = context_resolver
        self.feature_gate = feature_gate
        self.audit = audit
        self.settings = settings
        self.hierarchy = hierarchy or registry.hierarchy

    async def assigned_role_ids(self, subject: Subject, context_filter: ContextFilter) -> Set[int]:
        """Ids of roles assigned to the subject, without inheritance."""
        if SubjectTraits.ROLES not in subject.traits:
            return set()
        return await self.relations.grantee_ids(
            Relation.SUBJECT_ROLE, [subject_owner(subject)], context_filter
        )

    async def effective_roles(self, subject: Subject, context_filter: ContextFilter) -> List[Role]:
        """Assigned roles plus their ancestors, ordered by name."""
        assigned = await self.assigned_role_ids(subject, context_filter)
        if not assigned:
            return []
        roles_by_name = await self.registry.roles_by_name(subject.guard)
        assigned_names = [role.name for role in roles_by_name.values() if role.id in assigned]
        names = self.hierarchy.ancestors(assigned_names, roles_by_name)
        return sorted((roles_by_name[name] for name in names), key=lambda role: role.name)

    async def effective_role_ids(self, subject: Subject, context_filter: ContextFilter) -> Set[int]:
        return {role.id for role in await self.effective_roles(subject, context_filter)}

    def _name_of(self, subject: Subject, role: RoleArg) -> Optional[str]:
        if isinstance(role, Role):
            return role.name if role.guard == subject.guard else None
        return role

    async def has_role(
        self,
        subject: Subject,
        role: RoleArg,
        context: Any = None,
        bypass_feature: bool = False,
    ) -> bool:
        context_ref = self.context_resolver.resolve(context)
        name = self._name_of(subject, role)
        result = await self._check(subject, name, context, context_ref, bypass_feature)
        await self.audit.record_check(
            AuditAction.ROLE_CHECK, subject_owner(subject), str(name), context_ref, result
        )
        return result

    async def _check(
        self,
        subject: Subject,
        name: Optional[str],
        context: Any,
        context_ref: ContextRef,
        bypass_feature: bool,
    ) -> bool:
        if name is None or SubjectTraits.ROLES not in subject.traits:
            return False
        if not await self.feature_gate.check_access(subject, context_ref, bypass_feature):
            return False
        definition = await self.registry.find_role(name, subject.guard)
        if definition is None:
            return False
        held = await self.effective_roles(subject, self.context_resolver.build_filter(context))
        if definition.name not in {role.name for role in held}:
            return False
        return await self.feature_gate.check_binding(subject, definition.feature)

    async def has_any_role(self, subject: Subject, roles: Iterable[RoleArg], context: Any = None) -> bool:
        """False for an empty list."""
        for role in roles:
            if await self.has_role(subject, role, context):
                return True
        return False

    async def has_all_roles(self, subject: Subject, roles: Iterable[RoleArg], context: Any = None) -> bool:
        """False for an empty list."""
        roles = list(roles)
        if not roles:
            return False
        results = [await self.has_role(subject, role, context) for role in roles]
        return all(results)

    async def has_exact_roles(self, subject: Subject, roles: Iterable[RoleArg], context: Any = None) -> bool:
        """True when the directly assigned roles are exactly ``roles``."""
        wanted = {self._name_of(subject, role) for role in roles}
        if None in wanted:
            return False
        assigned = await self.assigned_role_ids(subject, self.context_resolver.build_filter(context))
        roles_by_name = await self.registry.roles_by_name(subject.guard)
        assigned_names = {role.name for role in roles_by_name.values() if role.id in assigned}
        return assigned_names == wanted

    async def get_roles(self, subject: Subject, context: Any = None) -> List[Role]:
        """Roles the subject holds in the context, inherited ones included."""
        return await self.effective_roles(subject, self.context_resolver.build_filter(context))

    async def get_role_names(self, subject: Subject, context: Any = None) -> List[str]:
        return [role.name for role in await self.get_roles(subject, context)]

    async def get_role_contexts(self, subject: Subject, role: RoleArg) -> List[ContextRef]:
        """Every non-global context in which the subject is assigned ``role``."""
        name = self._name_of(subject, role)
        if name is None or SubjectTraits.ROLES not in subject.traits:
            return []
        definition = await self.registry.find_role(name, subject.guard)
        if definition is None:
            return []
        return await self.relations.contexts_for(Relation.SUBJECT_ROLE, subject_owner(subject), definition.id)
