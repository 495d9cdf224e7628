"""AsyncPG-based definition store."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import asyncpg

from ....config.constants import DefinitionKind
from ....core.exceptions import (
    CapabilityAlreadyExistsError,
    PermissionAlreadyExistsError,
    RoleAlreadyExistsError,
    StoreError,
)
from ..entities import DEFINITION_TYPES, Definition
from . import queries
from .asyncpg_relation_store import STORE_ERRORS

logger = logging.getLogger(__name__)

_ALREADY_EXISTS = {
    DefinitionKind.PERMISSION: PermissionAlreadyExistsError,
    DefinitionKind.ROLE: RoleAlreadyExistsError,
    DefinitionKind.CAPABILITY: CapabilityAlreadyExistsError,
}


class AsyncPGDefinitionStore:
    """AsyncPG implementation of the DefinitionStore protocol."""

    def __init__(self, pool: asyncpg.Pool, schema: str = "public"):
        self.pool = pool
        self.schema = schema

    def _sql(self, template: str) -> str:
        return template.format(schema=self.schema)

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[asyncpg.Connection]:
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except asyncpg.UniqueViolationError:
            raise
        except STORE_ERRORS as e:
            logger.error(f"Definition store failed to {operation}: {e}")
            raise StoreError(f"Failed to {operation}: {e}") from e

    def _build_definition_from_row(self, row: asyncpg.Record) -> Definition:
        kind = DefinitionKind(row["kind"])
        kwargs = {
            "id": row["id"],
            "name": row["name"],
            "guard": row["guard"],
            "label": row["label"],
            "description": row["description"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }
        if kind is not DefinitionKind.CAPABILITY:
            kwargs["feature"] = row["feature"]
        if kind is DefinitionKind.ROLE:
            kwargs["inherits_from"] = tuple(row["inherits_from"] or ())
        return DEFINITION_TYPES[kind](**kwargs)

    @staticmethod
    def _columns(definition: Definition) -> list:
        return [
            definition.label,
            definition.description,
            getattr(definition, "feature", None),
            list(getattr(definition, "inherits_from", ())),
        ]

    async def ensure_schema(self) -> None:
        """Create the definitions table if missing."""
        async with self._connection("create definitions table") as conn:
            await conn.execute(self._sql(queries.CREATE_DEFINITIONS_TABLE))

    async def list_all(self, kind: DefinitionKind) -> List[Definition]:
        async with self._connection(f"list {kind.plural}") as conn:
            rows = await conn.fetch(self._sql(queries.LIST_DEFINITIONS), kind.value)
        return [self._build_definition_from_row(row) for row in rows]

    async def find_by_name(self, kind: DefinitionKind, name: str, guard: str) -> Optional[Definition]:
        async with self._connection(f"find {kind.value} {name}") as conn:
            row = await conn.fetchrow(self._sql(queries.FIND_DEFINITION), kind.value, name, guard)
        return self._build_definition_from_row(row) if row else None

    async def create(self, definition: Definition) -> Definition:
        try:
            async with self._connection(f"create {definition.kind.value} {definition.name}") as conn:
                row = await conn.fetchrow(
                    self._sql(queries.INSERT_DEFINITION),
                    definition.kind.value,
                    definition.name,
                    definition.guard,
                    *self._columns(definition),
                )
        except asyncpg.UniqueViolationError as e:
            raise _ALREADY_EXISTS[definition.kind](definition.name, definition.guard) from e
        return self._build_definition_from_row(row)

    async def update(self, definition: Definition) -> Definition:
        async with self._connection(f"update {definition.kind.value} {definition.name}") as conn:
            row = await conn.fetchrow(
                self._sql(queries.UPDATE_DEFINITION),
                definition.kind.value,
                definition.id,
                *self._columns(definition),
            )
        if row is None:
            raise StoreError(f"Cannot update unknown {definition.kind.value} {definition.id}")
        return self._build_definition_from_row(row)

    async def delete(self, kind: DefinitionKind, definition_id: int) -> bool:
        async with self._connection(f"delete {kind.value} {definition_id}") as conn:
            status = await conn.execute(self._sql(queries.DELETE_DEFINITION), kind.value, definition_id)
        return queries.rows_affected(status) > 0
