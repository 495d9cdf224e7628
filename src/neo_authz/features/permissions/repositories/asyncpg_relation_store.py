"""AsyncPG-based relation store.

All grant edges live in one ``authz_grants`` table keyed by relation, owner,
grantee and context. Multi-row mutations run as single statements inside a
transaction so concurrent readers never observe an intermediate edge set.
"""

import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Sequence, Set

import asyncpg

from ....core.exceptions import StoreError
from ..entities import ContextFilter, ContextRef, EntityRef, Relation
from . import queries

logger = logging.getLogger(__name__)

STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class AsyncPGRelationStore:
    """AsyncPG implementation of the RelationStore protocol."""

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
        except STORE_ERRORS as e:
            logger.error(f"Relation store failed to {operation}: {e}")
            raise StoreError(f"Failed to {operation}: {e}") from e

    async def ensure_schema(self) -> None:
        """Create the grants table and its indexes if missing."""
        async with self._connection("create grants table") as conn:
            async with conn.transaction():
                await conn.execute(self._sql(queries.CREATE_GRANTS_TABLE))
                for statement in queries.CREATE_GRANTS_INDEXES:
                    await conn.execute(self._sql(statement))

    async def _insert(self, conn, relation, owner, grantee_ids, context) -> List[int]:
        if not grantee_ids:
            return []
        rows = await conn.fetch(
            self._sql(queries.INSERT_GRANTS),
            relation.value, owner.type, owner.id, list(dict.fromkeys(grantee_ids)), context.type, context.id,
        )
        return [row["grantee_id"] for row in rows]

    async def attach(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_ids: Sequence[int],
        context: ContextRef,
    ) -> List[int]:
        async with self._connection(f"attach {relation.value}") as conn:
            return await self._insert(conn, relation, owner, grantee_ids, context)

    async def detach(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_ids: Optional[Sequence[int]],
        context: ContextRef,
    ) -> List[int]:
        params = [relation.value, owner.type, owner.id, context.type, context.id]
        async with self._connection(f"detach {relation.value}") as conn:
            if grantee_ids is None:
                rows = await conn.fetch(self._sql(queries.DELETE_GRANTS_ALL), *params)
            elif not grantee_ids:
                return []
            else:
                rows = await conn.fetch(self._sql(queries.DELETE_GRANTS_IN), *params, list(grantee_ids))
        return sorted(row["grantee_id"] for row in rows)

    async def sync(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_ids: Sequence[int],
        context: ContextRef,
        detaching: bool = True,
    ) -> Dict[str, List[int]]:
        params = [relation.value, owner.type, owner.id, context.type, context.id]
        async with self._connection(f"sync {relation.value}") as conn:
            async with conn.transaction():
                detached: List[int] = []
                if detaching:
                    rows = await conn.fetch(self._sql(queries.DELETE_GRANTS_NOT_IN), *params, list(grantee_ids))
                    detached = sorted(row["grantee_id"] for row in rows)
                attached = await self._insert(conn, relation, owner, grantee_ids, context)
        return {"attached": attached, "detached": detached}

    async def exists(
        self,
        relation: Relation,
        owners: Sequence[EntityRef],
        grantee_id: int,
        context_filter: ContextFilter,
    ) -> bool:
        if not owners:
            return False
        owner_sql = queries.owners_clause(len(owners), 3)
        context_sql, context_params = queries.context_clause(context_filter, 3 + 2 * len(owners))
        query = f"""
            SELECT EXISTS (
                SELECT 1 FROM {self.schema}.authz_grants
                WHERE relation = $1 AND grantee_id = $2 AND {owner_sql} AND {context_sql}
            )
        """
        params = [relation.value, grantee_id]
        for owner in owners:
            params.extend([owner.type, owner.id])
        async with self._connection(f"check {relation.value}") as conn:
            return bool(await conn.fetchval(query, *params, *context_params))

    async def grantee_ids(
        self,
        relation: Relation,
        owners: Sequence[EntityRef],
        context_filter: ContextFilter,
    ) -> Set[int]:
        if not owners:
            return set()
        owner_sql = queries.owners_clause(len(owners), 2)
        context_sql, context_params = queries.context_clause(context_filter, 2 + 2 * len(owners))
        query = f"""
            SELECT DISTINCT grantee_id FROM {self.schema}.authz_grants
            WHERE relation = $1 AND {owner_sql} AND {context_sql}
        """
        params = [relation.value]
        for owner in owners:
            params.extend([owner.type, owner.id])
        async with self._connection(f"read {relation.value}") as conn:
            rows = await conn.fetch(query, *params, *context_params)
        return {row["grantee_id"] for row in rows}

    async def grantee_map(self, relation: Relation) -> Dict[str, Set[int]]:
        async with self._connection(f"read {relation.value} map") as conn:
            rows = await conn.fetch(self._sql(queries.GRANTEE_MAP), relation.value)
        grantees: Dict[str, Set[int]] = defaultdict(set)
        for row in rows:
            grantees[row["owner_id"]].add(row["grantee_id"])
        return dict(grantees)

    async def contexts_for(self, relation: Relation, owner: EntityRef, grantee_id: int) -> List[ContextRef]:
        async with self._connection(f"read {relation.value} contexts") as conn:
            rows = await conn.fetch(
                self._sql(queries.CONTEXTS_FOR), relation.value, owner.type, owner.id, grantee_id
            )
        return [ContextRef(row["context_type"], row["context_id"]) for row in rows]

    async def purge_owner(self, owner: EntityRef) -> int:
        async with self._connection(f"purge grants of {owner}") as conn:
            status = await conn.execute(self._sql(queries.PURGE_OWNER), owner.type, owner.id)
        return queries.rows_affected(status)

    async def purge_grantee(self, relation: Relation, grantee_id: int) -> int:
        async with self._connection(f"purge {relation.value} grants of {grantee_id}") as conn:
            status = await conn.execute(self._sql(queries.PURGE_GRANTEE), relation.value, grantee_id)
        return queries.rows_affected(status)
