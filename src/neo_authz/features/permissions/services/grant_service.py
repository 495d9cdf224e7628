"""Grant, revoke and sync operations for every kind of grant edge.

Each mutation writes the relation store, invalidates the registry cache,
records an audit entry and dispatches a domain event, in that order, before
returning.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from ....config.constants import DefinitionKind
from ....config.settings import AuthzSettings
from ....core.exceptions import (
    CapabilitiesDisabledError,
    ConfigurationError,
    GuardMismatchError,
    ValidationError,
)
from ...audit.entities import AuditAction
from ...audit.services import AuditTrail
from ...events.entities import Granted, Revoked, Synced
from ...events.services import EventDispatcher
from ..entities import (
    GLOBAL_CONTEXT,
    Capability,
    ContextRef,
    Definition,
    EntityRef,
    Relation,
    RelationStore,
    Role,
    Subject,
    SubjectTraits,
    subject_owner,
)
from .context_resolver import ContextResolver
from .definition_service import DefinitionRegistry

logger = logging.getLogger(__name__)

GranteeArg = Union[str, Definition]
GranteesArg = Union[GranteeArg, Iterable[GranteeArg]]


class _Operation(str, Enum):
    GRANT = "grant"
    REVOKE = "revoke"
    SYNC = "sync"


_AUDIT_ACTIONS = {
    (DefinitionKind.PERMISSION, _Operation.GRANT): AuditAction.PERMISSION_GRANTED,
    (DefinitionKind.PERMISSION, _Operation.REVOKE): AuditAction.PERMISSION_REVOKED,
    (DefinitionKind.ROLE, _Operation.GRANT): AuditAction.ROLE_ASSIGNED,
    (DefinitionKind.ROLE, _Operation.REVOKE): AuditAction.ROLE_REMOVED,
    (DefinitionKind.CAPABILITY, _Operation.GRANT): AuditAction.CAPABILITY_ASSIGNED,
    (DefinitionKind.CAPABILITY, _Operation.REVOKE): AuditAction.CAPABILITY_REMOVED,
}

_GUARD_MISMATCH = {
    DefinitionKind.PERMISSION: GuardMismatchError.for_permission,
    DefinitionKind.ROLE: GuardMismatchError.for_role,
    DefinitionKind.CAPABILITY: GuardMismatchError.for_capability,
}


def _as_list(items: Optional[GranteesArg]) -> Optional[List[GranteeArg]]:
    if items is None:
        return None
    if isinstance(items, (str, Definition)):
        return [items]
    return list(items)


class GrantService:
    """Mutations over grant edges."""

    def __init__(
        self,
        registry: DefinitionRegistry,
        relations: RelationStore,
        context_resolver: ContextResolver,
        audit: AuditTrail,
        settings: AuthzSettings,
        events: Optional[EventDispatcher] = None,
    ):
        self.registry = registry
        self.relations = relations
        self.context_resolver = context_resolver
        self.audit = audit
        self.settings = settings
        self.events = events

    # Grantee resolution

    async def resolve_grantees(
        self,
        kind: DefinitionKind,
        guard: str,
        items: Sequence[GranteeArg],
    ) -> List[Definition]:
        """Resolve names in ``guard``; typed grantees must already belong to it."""
        resolved: List[Definition] = []
        for item in items:
            if isinstance(item, str):
                resolved.append(await self.registry.get(kind, item, guard))
                continue
            if item.kind is not kind:
                raise ValidationError(f"Expected a {kind.value}, got {item.kind.value} '{item.name}'")
            if item.guard != guard:
                raise _GUARD_MISMATCH[kind](item.name, guard, item.guard)
            if item.id is None:
                item = await self.registry.get(kind, item.name, guard)
            resolved.append(item)
        return resolved

    async def _owner_definition(self, kind: DefinitionKind, owner: Union[str, Role, Capability], guard: Optional[str]):
        if isinstance(owner, str):
            return await self.registry.get(kind, owner, guard)
        if owner.kind is not kind:
            raise ValidationError(f"Expected a {kind.value}, got {owner.kind.value} '{owner.name}'")
        if owner.id is None:
            return await self.registry.get(kind, owner.name, owner.guard)
        return owner

    # Core mutation

    async def _apply(
        self,
        operation: _Operation,
        relation: Relation,
        owner: EntityRef,
        guard: str,
        items: Optional[GranteesArg],
        context: ContextRef,
        detaching: bool = True,
    ) -> Dict[str, List[str]]:
        kind = relation.grantee_kind
        item_list = _as_list(items)
        if item_list is None and operation is not _Operation.REVOKE:
            raise ValidationError(f"{operation.value} needs at least an empty list of {kind.plural}")

        grantees = await self.resolve_grantees(kind, guard, item_list) if item_list is not None else None
        names_by_id = {grantee.id: grantee.name for grantee in grantees or []}
        ids = list(names_by_id)

        if operation is _Operation.GRANT:
            attached = await self.relations.attach(relation, owner, ids, context)
            changes = {"attached": attached, "detached": []}
        elif operation is _Operation.REVOKE:
            detached = await self.relations.detach(relation, owner, ids if grantees is not None else None, context)
            changes = {"attached": [], "detached": detached}
        else:
            changes = await self.relations.sync(relation, owner, ids, context, detaching)

        await self.registry.invalidate_relation(relation)

        if changes["detached"] and not names_by_id.keys() >= set(changes["detached"]):
            for definition in await self.registry.by_ids(kind, changes["detached"]):
                names_by_id[definition.id] = definition.name
        named = {
            key: [names_by_id.get(grantee_id, str(grantee_id)) for grantee_id in value]
            for key, value in changes.items()
        }
        requested = tuple(grantee.name for grantee in grantees) if grantees is not None else tuple(named["detached"])

        logger.info(
            f"{operation.value} {relation.value} owner={owner} context={context} "
            f"attached={named['attached']} detached={named['detached']}"
        )

        audit_action = _AUDIT_ACTIONS.get((kind, operation), AuditAction.GRANTS_SYNCED)
        await self.audit.record_change(
            audit_action, owner, requested, context,
            relation=relation.value, attached=named["attached"], detached=named["detached"],
        )

        if self.events is not None and self.settings.events_enabled:
            if operation is _Operation.GRANT:
                event = Granted(relation, owner, requested, context)
            elif operation is _Operation.REVOKE:
                event = Revoked(relation, owner, requested, context)
            else:
                event = Synced(
                    relation, owner, requested,
                    attached=tuple(named["attached"]),
                    detached=tuple(named["detached"]),
                    context=context,
                )
            await self.events.dispatch(event)

        return named

    def _require_trait(self, subject: Subject, trait: SubjectTraits, what: str) -> None:
        if trait not in subject.traits:
            raise ConfigurationError(f"Subject type '{subject.subject_type}' cannot hold {what}")

    def _require_direct_capabilities(self, operation: str) -> None:
        if not self.settings.direct_capabilities_enabled:
            raise CapabilitiesDisabledError(operation)

    def _require_capabilities(self, operation: str) -> None:
        if not self.settings.capabilities.enabled:
            raise CapabilitiesDisabledError(operation)

    # Subject permissions

    async def grant_permissions(self, subject: Subject, permissions: GranteesArg, context: Any = None):
        self._require_trait(subject, SubjectTraits.PERMISSIONS, "permissions")
        return await self._apply(
            _Operation.GRANT, Relation.SUBJECT_PERMISSION, subject_owner(subject),
            subject.guard, permissions, self.context_resolver.exact(context),
        )

    async def revoke_permissions(self, subject: Subject, permissions: Optional[GranteesArg] = None, context: Any = None):
        """Revoke the given permissions, or every permission in the context when ``None``."""
        self._require_trait(subject, SubjectTraits.PERMISSIONS, "permissions")
        return await self._apply(
            _Operation.REVOKE, Relation.SUBJECT_PERMISSION, subject_owner(subject),
            subject.guard, permissions, self.context_resolver.exact(context),
        )

    async def sync_permissions(
        self,
        subject: Subject,
        permissions: GranteesArg,
        context: Any = None,
        detaching: bool = True,
    ):
        self._require_trait(subject, SubjectTraits.PERMISSIONS, "permissions")
        return await self._apply(
            _Operation.SYNC, Relation.SUBJECT_PERMISSION, subject_owner(subject),
            subject.guard, permissions, self.context_resolver.exact(context), detaching,
        )

    # Subject roles

    async def assign_roles(self, subject: Subject, roles: GranteesArg, context: Any = None):
        self._require_trait(subject, SubjectTraits.ROLES, "roles")
        return await self._apply(
            _Operation.GRANT, Relation.SUBJECT_ROLE, subject_owner(subject),
            subject.guard, roles, self.context_resolver.exact(context),
        )

    async def remove_roles(self, subject: Subject, roles: Optional[GranteesArg] = None, context: Any = None):
        self._require_trait(subject, SubjectTraits.ROLES, "roles")
        return await self._apply(
            _Operation.REVOKE, Relation.SUBJECT_ROLE, subject_owner(subject),
            subject.guard, roles, self.context_resolver.exact(context),
        )

    async def sync_roles(self, subject: Subject, roles: GranteesArg, context: Any = None, detaching: bool = True):
        self._require_trait(subject, SubjectTraits.ROLES, "roles")
        return await self._apply(
            _Operation.SYNC, Relation.SUBJECT_ROLE, subject_owner(subject),
            subject.guard, roles, self.context_resolver.exact(context), detaching,
        )

    # Subject capabilities

    async def assign_capabilities(self, subject: Subject, capabilities: GranteesArg, context: Any = None):
        self._require_direct_capabilities("assign capabilities to a subject")
        self._require_trait(subject, SubjectTraits.CAPABILITIES, "capabilities")
        return await self._apply(
            _Operation.GRANT, Relation.SUBJECT_CAPABILITY, subject_owner(subject),
            subject.guard, capabilities, self.context_resolver.exact(context),
        )

    async def remove_capabilities(
        self,
        subject: Subject,
        capabilities: Optional[GranteesArg] = None,
        context: Any = None,
    ):
        self._require_direct_capabilities("remove capabilities from a subject")
        self._require_trait(subject, SubjectTraits.CAPABILITIES, "capabilities")
        return await self._apply(
            _Operation.REVOKE, Relation.SUBJECT_CAPABILITY, subject_owner(subject),
            subject.guard, capabilities, self.context_resolver.exact(context),
        )

    async def sync_capabilities(
        self,
        subject: Subject,
        capabilities: GranteesArg,
        context: Any = None,
        detaching: bool = True,
    ):
        self._require_direct_capabilities("sync subject capabilities")
        self._require_trait(subject, SubjectTraits.CAPABILITIES, "capabilities")
        return await self._apply(
            _Operation.SYNC, Relation.SUBJECT_CAPABILITY, subject_owner(subject),
            subject.guard, capabilities, self.context_resolver.exact(context), detaching,
        )

    # Role owned edges, always global

    async def _role_apply(self, operation, relation, role, items, guard, detaching=True):
        role = await self._owner_definition(DefinitionKind.ROLE, role, guard)
        return await self._apply(operation, relation, EntityRef.of(role), role.guard, items, GLOBAL_CONTEXT, detaching)

    async def grant_permissions_to_role(self, role: Union[str, Role], permissions: GranteesArg, guard: Optional[str] = None):
        return await self._role_apply(_Operation.GRANT, Relation.ROLE_PERMISSION, role, permissions, guard)

    async def revoke_permissions_from_role(
        self,
        role: Union[str, Role],
        permissions: Optional[GranteesArg] = None,
        guard: Optional[str] = None,
    ):
        return await self._role_apply(_Operation.REVOKE, Relation.ROLE_PERMISSION, role, permissions, guard)

    async def sync_role_permissions(
        self,
        role: Union[str, Role],
        permissions: GranteesArg,
        guard: Optional[str] = None,
        detaching: bool = True,
    ):
        return await self._role_apply(_Operation.SYNC, Relation.ROLE_PERMISSION, role, permissions, guard, detaching)

    async def grant_capabilities_to_role(
        self,
        role: Union[str, Role],
        capabilities: GranteesArg,
        guard: Optional[str] = None,
    ):
        self._require_capabilities("assign capabilities to a role")
        return await self._role_apply(_Operation.GRANT, Relation.ROLE_CAPABILITY, role, capabilities, guard)

    async def revoke_capabilities_from_role(
        self,
        role: Union[str, Role],
        capabilities: Optional[GranteesArg] = None,
        guard: Optional[str] = None,
    ):
        self._require_capabilities("remove capabilities from a role")
        return await self._role_apply(_Operation.REVOKE, Relation.ROLE_CAPABILITY, role, capabilities, guard)

    async def sync_role_capabilities(
        self,
        role: Union[str, Role],
        capabilities: GranteesArg,
        guard: Optional[str] = None,
        detaching: bool = True,
    ):
        self._require_capabilities("sync role capabilities")
        return await self._role_apply(_Operation.SYNC, Relation.ROLE_CAPABILITY, role, capabilities, guard, detaching)

    # Capability owned edges, always global

    async def _capability_apply(self, operation, capability, items, guard, detaching=True):
        self._require_capabilities(f"{operation.value} capability permissions")
        capability = await self._owner_definition(DefinitionKind.CAPABILITY, capability, guard)
        return await self._apply(
            operation, Relation.CAPABILITY_PERMISSION, EntityRef.of(capability),
            capability.guard, items, GLOBAL_CONTEXT, detaching,
        )

    async def grant_permissions_to_capability(
        self,
        capability: Union[str, Capability],
        permissions: GranteesArg,
        guard: Optional[str] = None,
    ):
        return await self._capability_apply(_Operation.GRANT, capability, permissions, guard)

    async def revoke_permissions_from_capability(
        self,
        capability: Union[str, Capability],
        permissions: Optional[GranteesArg] = None,
        guard: Optional[str] = None,
    ):
        return await self._capability_apply(_Operation.REVOKE, capability, permissions, guard)

    async def sync_capability_permissions(
        self,
        capability: Union[str, Capability],
        permissions: GranteesArg,
        guard: Optional[str] = None,
        detaching: bool = True,
    ):
        return await self._capability_apply(_Operation.SYNC, capability, permissions, guard, detaching)

    # Subject lifecycle

    async def purge_subject(self, subject: Subject) -> int:
        """Delete every grant edge owned by a subject that is being deleted."""
        removed = await self.relations.purge_owner(subject_owner(subject))
        for relation in (Relation.SUBJECT_PERMISSION, Relation.SUBJECT_ROLE, Relation.SUBJECT_CAPABILITY):
            await self.registry.invalidate_relation(relation)
        logger.info(f"Purged {removed} grant edges of {subject.subject_type}#{subject.subject_id}")
        return removed
