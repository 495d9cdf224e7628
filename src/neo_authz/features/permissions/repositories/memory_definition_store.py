"""In-memory definition store for tests and embedded use."""

import itertools
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ....config.constants import DefinitionKind
from ....core.exceptions import (
    CapabilityAlreadyExistsError,
    PermissionAlreadyExistsError,
    RoleAlreadyExistsError,
    StoreError,
)
from ..entities import Definition

_ALREADY_EXISTS = {
    DefinitionKind.PERMISSION: PermissionAlreadyExistsError,
    DefinitionKind.ROLE: RoleAlreadyExistsError,
    DefinitionKind.CAPABILITY: CapabilityAlreadyExistsError,
}


class InMemoryDefinitionStore:
    """DefinitionStore keeping definitions in per-kind dictionaries."""

    def __init__(self):
        self._definitions: Dict[DefinitionKind, Dict[int, Definition]] = {kind: {} for kind in DefinitionKind}
        self._ids = {kind: itertools.count(1) for kind in DefinitionKind}

    async def list_all(self, kind: DefinitionKind) -> List[Definition]:
        return sorted(self._definitions[kind].values(), key=lambda definition: (definition.guard, definition.name))

    async def find_by_name(self, kind: DefinitionKind, name: str, guard: str) -> Optional[Definition]:
        for definition in self._definitions[kind].values():
            if definition.name == name and definition.guard == guard:
                return definition
        return None

    async def create(self, definition: Definition) -> Definition:
        if await self.find_by_name(definition.kind, definition.name, definition.guard) is not None:
            raise _ALREADY_EXISTS[definition.kind](definition.name, definition.guard)
        now = datetime.now(timezone.utc)
        created = replace(definition, id=next(self._ids[definition.kind]), created_at=now, updated_at=now)
        self._definitions[definition.kind][created.id] = created
        return created

    async def update(self, definition: Definition) -> Definition:
        if definition.id not in self._definitions[definition.kind]:
            raise StoreError(f"Cannot update unknown {definition.kind.value} {definition.id}")
        updated = replace(definition, updated_at=datetime.now(timezone.utc))
        self._definitions[definition.kind][definition.id] = updated
        return updated

    async def delete(self, kind: DefinitionKind, definition_id: int) -> bool:
        return self._definitions[kind].pop(definition_id, None) is not None
