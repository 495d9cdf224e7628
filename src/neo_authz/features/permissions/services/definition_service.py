"""Definition registry.

Creates, finds and syncs permission, role and capability definitions, and
serves the cached enumerations the resolvers read on every check.
"""

import json
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ....config.constants import DefinitionKind
from ....config.settings import AuthzSettings
from ....core.exceptions import (
    CapabilitiesDisabledError,
    CapabilityAlreadyExistsError,
    CapabilityNotFoundError,
    PermissionAlreadyExistsError,
    PermissionNotFoundError,
    RoleAlreadyExistsError,
    RoleNotFoundError,
)
from ...cache.services import RegistryCache
from ...events.entities import DefinitionsSynced
from ...events.services import EventDispatcher
from ..entities import (
    DEFINITION_TYPES,
    GLOBAL_CONTEXT,
    Capability,
    Definition,
    DefinitionStore,
    DefinitionTable,
    EntityRef,
    Permission,
    Relation,
    RelationStore,
    Role,
    SyncResult,
    definition_from_dict,
)
from .role_hierarchy import RoleHierarchy, index_by_name

logger = logging.getLogger(__name__)

_ALREADY_EXISTS = {
    DefinitionKind.PERMISSION: PermissionAlreadyExistsError,
    DefinitionKind.ROLE: RoleAlreadyExistsError,
    DefinitionKind.CAPABILITY: CapabilityAlreadyExistsError,
}

_NOT_FOUND = {
    DefinitionKind.PERMISSION: PermissionNotFoundError,
    DefinitionKind.ROLE: RoleNotFoundError,
    DefinitionKind.CAPABILITY: CapabilityNotFoundError,
}

# Global edge maps served from the registry cache
CACHED_RELATIONS = (
    Relation.ROLE_PERMISSION,
    Relation.ROLE_CAPABILITY,
    Relation.CAPABILITY_PERMISSION,
)


def _encode_definitions(definitions: List[Definition]) -> str:
    return json.dumps([definition.to_dict() for definition in definitions])


def _encode_grantee_map(grantees: Dict[str, Set[int]]) -> str:
    return json.dumps({owner: sorted(ids) for owner, ids in grantees.items()})


def _decode_grantee_map(raw: str) -> Dict[str, Set[int]]:
    return {owner: set(ids) for owner, ids in json.loads(raw).items()}


class DefinitionRegistry:
    """Registry of definitions backed by a DefinitionStore and the RegistryCache."""

    def __init__(
        self,
        store: DefinitionStore,
        relations: RelationStore,
        cache: RegistryCache,
        settings: AuthzSettings,
        events: Optional[EventDispatcher] = None,
        hierarchy: Optional[RoleHierarchy] = None,
    ):
        self.store = store
        self.relations = relations
        self.cache = cache
        self.settings = settings
        self.events = events
        self.hierarchy = hierarchy or RoleHierarchy()

    def _guard(self, guard: Optional[str]) -> str:
        return guard or self.settings.default_guard

    def _require_capabilities(self, operation: str) -> None:
        if not self.settings.capabilities.enabled:
            raise CapabilitiesDisabledError(operation)

    # Enumeration

    async def _all(self, kind: DefinitionKind) -> List[Definition]:
        async def load() -> List[Definition]:
            return await self.store.list_all(kind)

        return await self.cache.get_or_load(
            kind.plural,
            load,
            encode=_encode_definitions,
            decode=lambda raw: [definition_from_dict(kind, item) for item in json.loads(raw)],
        )

    async def all_of(self, kind: DefinitionKind, guard: Optional[str] = None) -> List[Definition]:
        definitions = await self._all(kind)
        if guard is None:
            return list(definitions)
        return [definition for definition in definitions if definition.guard == guard]

    async def all_permissions(self, guard: Optional[str] = None) -> List[Permission]:
        return await self.all_of(DefinitionKind.PERMISSION, guard)

    async def all_roles(self, guard: Optional[str] = None) -> List[Role]:
        return await self.all_of(DefinitionKind.ROLE, guard)

    async def all_capabilities(self, guard: Optional[str] = None) -> List[Capability]:
        if not self.settings.capabilities.enabled:
            return []
        return await self.all_of(DefinitionKind.CAPABILITY, guard)

    async def by_ids(self, kind: DefinitionKind, ids: Iterable[int]) -> List[Definition]:
        wanted = set(ids)
        if not wanted:
            return []
        return [definition for definition in await self._all(kind) if definition.id in wanted]

    async def roles_by_name(self, guard: str) -> Dict[str, Role]:
        return index_by_name(await self.all_roles(guard))

    async def grantee_map(self, relation: Relation) -> Dict[str, Set[int]]:
        """Owner id to grantee ids for a role or capability owned relation."""
        async def load() -> Dict[str, Set[int]]:
            return await self.relations.grantee_map(relation)

        return await self.cache.get_or_load(
            relation.value,
            load,
            encode=_encode_grantee_map,
            decode=_decode_grantee_map,
        )

    # Lookup

    async def find(self, kind: DefinitionKind, name: str, guard: Optional[str] = None) -> Optional[Definition]:
        guard = self._guard(guard)
        for definition in await self._all(kind):
            if definition.name == name and definition.guard == guard:
                return definition
        return None

    async def get(self, kind: DefinitionKind, name: str, guard: Optional[str] = None) -> Definition:
        definition = await self.find(kind, name, guard)
        if definition is None:
            raise _NOT_FOUND[kind](name, self._guard(guard))
        return definition

    async def find_permission(self, name: str, guard: Optional[str] = None) -> Optional[Permission]:
        return await self.find(DefinitionKind.PERMISSION, name, guard)

    async def find_role(self, name: str, guard: Optional[str] = None) -> Optional[Role]:
        return await self.find(DefinitionKind.ROLE, name, guard)

    async def find_capability(self, name: str, guard: Optional[str] = None) -> Optional[Capability]:
        if not self.settings.capabilities.enabled:
            return None
        return await self.find(DefinitionKind.CAPABILITY, name, guard)

    async def get_permission(self, name: str, guard: Optional[str] = None) -> Permission:
        return await self.get(DefinitionKind.PERMISSION, name, guard)

    async def get_role(self, name: str, guard: Optional[str] = None) -> Role:
        return await self.get(DefinitionKind.ROLE, name, guard)

    async def get_capability(self, name: str, guard: Optional[str] = None) -> Capability:
        self._require_capabilities("look up a capability")
        return await self.get(DefinitionKind.CAPABILITY, name, guard)

    # Creation

    async def _create(self, definition: Definition) -> Definition:
        if await self.find(definition.kind, definition.name, definition.guard) is not None:
            raise _ALREADY_EXISTS[definition.kind](definition.name, definition.guard)
        created = await self.store.create(definition)
        await self.invalidate(definition.kind)
        logger.info(f"Created {definition.kind.value}: {definition.name} in guard {definition.guard}")
        return created

    async def create_permission(
        self,
        name: str,
        guard: Optional[str] = None,
        label: Optional[str] = None,
        description: Optional[str] = None,
        feature: Optional[str] = None,
    ) -> Permission:
        return await self._create(Permission(
            id=None,
            name=name,
            guard=self._guard(guard),
            label=label,
            description=description,
            feature=feature,
        ))

    async def create_role(
        self,
        name: str,
        guard: Optional[str] = None,
        label: Optional[str] = None,
        description: Optional[str] = None,
        feature: Optional[str] = None,
        inherits_from: Iterable[str] = (),
    ) -> Role:
        role = Role(
            id=None,
            name=name,
            guard=self._guard(guard),
            label=label,
            description=description,
            feature=feature,
            inherits_from=tuple(inherits_from),
        )
        if role.inherits_from:
            roles = await self.roles_by_name(role.guard)
            roles[role.name] = role
            self.hierarchy.validate(roles)
        return await self._create(role)

    async def create_capability(
        self,
        name: str,
        guard: Optional[str] = None,
        label: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Capability:
        self._require_capabilities("create a capability")
        return await self._create(Capability(
            id=None,
            name=name,
            guard=self._guard(guard),
            label=label,
            description=description,
        ))

    async def find_or_create_permission(self, name: str, guard: Optional[str] = None, **attributes) -> Permission:
        return await self.find_permission(name, guard) or await self.create_permission(name, guard, **attributes)

    async def find_or_create_role(self, name: str, guard: Optional[str] = None, **attributes) -> Role:
        return await self.find_role(name, guard) or await self.create_role(name, guard, **attributes)

    async def find_or_create_capability(self, name: str, guard: Optional[str] = None, **attributes) -> Capability:
        self._require_capabilities("create a capability")
        return await self.find_capability(name, guard) or await self.create_capability(name, guard, **attributes)

    # Deletion

    async def delete(self, kind: DefinitionKind, name: str, guard: Optional[str] = None) -> bool:
        """Delete a definition together with every grant edge that references it."""
        definition = await self.find(kind, name, guard)
        if definition is None:
            return False
        for relation in Relation:
            if relation.grantee_kind is kind:
                await self.relations.purge_grantee(relation, definition.id)
        if kind is not DefinitionKind.PERMISSION:
            await self.relations.purge_owner(EntityRef.of(definition))
        deleted = await self.store.delete(kind, definition.id)
        await self.invalidate(kind)
        logger.info(f"Deleted {kind.value}: {name} in guard {definition.guard}")
        return deleted

    # Invalidation

    async def invalidate(self, kind: Optional[DefinitionKind] = None) -> None:
        """Invalidate one definition kind, plus the cached edge maps."""
        kinds = [kind] if kind is not None else list(DefinitionKind)
        for item in kinds:
            await self.cache.invalidate(item.plural)
        for relation in CACHED_RELATIONS:
            await self.cache.invalidate(relation.value)

    async def invalidate_relation(self, relation: Relation) -> None:
        await self.cache.invalidate(relation.value)

    # Sync

    async def sync(self, table: DefinitionTable, guard: Optional[str] = None, seed: bool = False) -> SyncResult:
        """Bring the registry in line with ``table``.

        Missing definitions are created; existing ones get label, description,
        feature and inheritance updated when the table provides a differing
        value. Nothing is deleted. With ``seed`` the table's role assignments
        are attached as well.
        """
        if table.capabilities and not self.settings.capabilities.enabled:
            raise CapabilitiesDisabledError("sync capabilities")

        result = SyncResult()
        guards: Set[str] = set()

        await self._validate_role_table(table, guard)

        for entry in table.permissions:
            entry_guard = self._guard(entry.guard or guard)
            guards.add(entry_guard)
            created, updated = await self._upsert(
                DefinitionKind.PERMISSION, entry.name, entry_guard,
                {"label": entry.label, "description": entry.description, "feature": entry.feature},
            )
            result.permissions_created += created
            result.permissions_updated += updated

        for entry in table.roles:
            entry_guard = self._guard(entry.guard or guard)
            guards.add(entry_guard)
            created, updated = await self._upsert(
                DefinitionKind.ROLE, entry.name, entry_guard,
                {
                    "label": entry.label,
                    "description": entry.description,
                    "feature": entry.feature,
                    "inherits_from": tuple(entry.inherits_from) or None,
                },
            )
            result.roles_created += created
            result.roles_updated += updated

        for entry in table.capabilities:
            entry_guard = self._guard(entry.guard or guard)
            guards.add(entry_guard)
            created, updated = await self._upsert(
                DefinitionKind.CAPABILITY, entry.name, entry_guard,
                {"label": entry.label, "description": entry.description},
            )
            result.capabilities_created += created
            result.capabilities_updated += updated

        await self._link_capabilities(table, guard, result)

        if seed:
            await self._seed_assignments(table, guard, result)

        await self.invalidate()
        result.guards = sorted(guards)
        logger.info(
            f"Synced definitions: {result.total_created} created, {result.total_updated} updated, "
            f"{result.assignments_seeded} assignments seeded"
        )

        if self.events is not None and self.settings.events_enabled:
            await self.events.dispatch(DefinitionsSynced(guard=self._guard(guard), result=result))
        return result

    async def _validate_role_table(self, table: DefinitionTable, guard: Optional[str]) -> None:
        by_guard: Dict[str, Dict[str, Role]] = {}
        for entry in table.roles:
            entry_guard = self._guard(entry.guard or guard)
            if entry_guard not in by_guard:
                by_guard[entry_guard] = await self.roles_by_name(entry_guard)
            existing = by_guard[entry_guard].get(entry.name)
            inherits = tuple(entry.inherits_from) or (existing.inherits_from if existing else ())
            by_guard[entry_guard][entry.name] = Role(
                id=existing.id if existing else None,
                name=entry.name,
                guard=entry_guard,
                inherits_from=inherits,
            )
        for roles in by_guard.values():
            self.hierarchy.validate(roles)

    async def _upsert(self, kind: DefinitionKind, name: str, guard: str, values: Dict) -> Tuple[int, int]:
        existing = await self.find(kind, name, guard)
        values = {key: value for key, value in values.items() if value is not None}
        if existing is None:
            await self._create(DEFINITION_TYPES[kind](id=None, name=name, guard=guard, **values))
            return 1, 0

        changed = {key: value for key, value in values.items() if getattr(existing, key) != value}
        if not changed:
            return 0, 0
        await self.store.update(replace(existing, **changed))
        await self.invalidate(kind)
        logger.debug(f"Updated {kind.value} {name} in guard {guard}: {sorted(changed)}")
        return 0, 1

    async def _link_capabilities(self, table: DefinitionTable, guard: Optional[str], result: SyncResult) -> None:
        links: List[Tuple[str, str, str]] = []
        for entry in table.capabilities:
            for permission_name in entry.permissions:
                links.append((self._guard(entry.guard or guard), entry.name, permission_name))
        for entry in table.permissions:
            for capability_name in entry.capabilities:
                links.append((self._guard(entry.guard or guard), capability_name, entry.name))
        if links and not self.settings.capabilities.enabled:
            raise CapabilitiesDisabledError("link permissions to capabilities")

        for link_guard, capability_name, permission_name in links:
            capability = await self.find_capability(capability_name, link_guard)
            if capability is None:
                capability = await self.create_capability(capability_name, link_guard)
                result.capabilities_created += 1
            permission = await self.find_permission(permission_name, link_guard)
            if permission is None:
                permission = await self.create_permission(permission_name, link_guard)
                result.permissions_created += 1
            await self.relations.attach(
                Relation.CAPABILITY_PERMISSION, EntityRef.of(capability), [permission.id], GLOBAL_CONTEXT
            )

    async def _seed_assignments(self, table: DefinitionTable, guard: Optional[str], result: SyncResult) -> None:
        seed_guard = self._guard(guard)
        for role_name, assignment in table.assignments.items():
            role = await self.find_role(role_name, seed_guard)
            if role is None:
                role = await self.create_role(role_name, seed_guard)
                result.roles_created += 1
            owner = EntityRef.of(role)

            permission_ids = []
            for permission_name in assignment.permissions:
                permission = await self.find_permission(permission_name, seed_guard)
                if permission is None:
                    permission = await self.create_permission(permission_name, seed_guard)
                    result.permissions_created += 1
                permission_ids.append(permission.id)
            if permission_ids:
                attached = await self.relations.attach(
                    Relation.ROLE_PERMISSION, owner, permission_ids, GLOBAL_CONTEXT
                )
                result.assignments_seeded += len(attached)

            if assignment.capabilities:
                self._require_capabilities("seed role capabilities")
            capability_ids = []
            for capability_name in assignment.capabilities:
                capability = await self.find_capability(capability_name, seed_guard)
                if capability is None:
                    capability = await self.create_capability(capability_name, seed_guard)
                    result.capabilities_created += 1
                capability_ids.append(capability.id)
            if capability_ids:
                attached = await self.relations.attach(
                    Relation.ROLE_CAPABILITY, owner, capability_ids, GLOBAL_CONTEXT
                )
                result.assignments_seeded += len(attached)
