"""In-memory relation store for tests and embedded use."""

import asyncio
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Set

from ..entities import ContextFilter, ContextRef, EntityRef, GrantEdge, Relation


class InMemoryRelationStore:
    """RelationStore keeping edges in a set.

    Mutations hold a lock and never await between their detach and attach
    steps, so a concurrent reader never sees a half-synced edge set.
    """

    def __init__(self):
        self._edges: Set[GrantEdge] = set()
        self._lock = asyncio.Lock()

    @property
    def edges(self) -> Set[GrantEdge]:
        return set(self._edges)

    def _owned(self, relation: Relation, owner: EntityRef) -> List[GrantEdge]:
        return [edge for edge in self._edges if edge.relation is relation and edge.owner == owner]

    async def attach(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_ids: Sequence[int],
        context: ContextRef,
    ) -> List[int]:
        async with self._lock:
            return self._attach(relation, owner, grantee_ids, context)

    def _attach(self, relation, owner, grantee_ids, context) -> List[int]:
        attached = []
        for grantee_id in dict.fromkeys(grantee_ids):
            edge = GrantEdge(relation, owner, grantee_id, context)
            if edge not in self._edges:
                self._edges.add(edge)
                attached.append(grantee_id)
        return attached

    async def detach(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_ids: Optional[Sequence[int]],
        context: ContextRef,
    ) -> List[int]:
        async with self._lock:
            return self._detach(relation, owner, grantee_ids, context)

    def _detach(self, relation, owner, grantee_ids, context) -> List[int]:
        wanted = None if grantee_ids is None else set(grantee_ids)
        removed = [
            edge for edge in self._owned(relation, owner)
            if edge.context == context and (wanted is None or edge.grantee_id in wanted)
        ]
        self._edges.difference_update(removed)
        return sorted(edge.grantee_id for edge in removed)

    async def sync(
        self,
        relation: Relation,
        owner: EntityRef,
        grantee_ids: Sequence[int],
        context: ContextRef,
        detaching: bool = True,
    ) -> Dict[str, List[int]]:
        async with self._lock:
            detached: List[int] = []
            if detaching:
                current = {
                    edge.grantee_id for edge in self._owned(relation, owner) if edge.context == context
                }
                stale = sorted(current - set(grantee_ids))
                if stale:
                    detached = self._detach(relation, owner, stale, context)
            attached = self._attach(relation, owner, grantee_ids, context)
            return {"attached": attached, "detached": detached}

    async def exists(
        self,
        relation: Relation,
        owners: Sequence[EntityRef],
        grantee_id: int,
        context_filter: ContextFilter,
    ) -> bool:
        return any(
            GrantEdge(relation, owner, grantee_id, target) in self._edges
            for owner in owners
            for target in context_filter.targets
        )

    async def grantee_ids(
        self,
        relation: Relation,
        owners: Sequence[EntityRef],
        context_filter: ContextFilter,
    ) -> Set[int]:
        owners = set(owners)
        return {
            edge.grantee_id
            for edge in self._edges
            if edge.relation is relation and edge.owner in owners and context_filter.matches(edge.context)
        }

    async def grantee_map(self, relation: Relation) -> Dict[str, Set[int]]:
        grantees: Dict[str, Set[int]] = defaultdict(set)
        for edge in self._edges:
            if edge.relation is relation and edge.context.is_global:
                grantees[edge.owner.id].add(edge.grantee_id)
        return dict(grantees)

    async def contexts_for(self, relation: Relation, owner: EntityRef, grantee_id: int) -> List[ContextRef]:
        contexts = {
            edge.context
            for edge in self._owned(relation, owner)
            if edge.grantee_id == grantee_id and not edge.context.is_global
        }
        return sorted(contexts, key=lambda context: (context.type, context.id))

    async def purge_owner(self, owner: EntityRef) -> int:
        async with self._lock:
            removed = {edge for edge in self._edges if edge.owner == owner}
            self._edges -= removed
            return len(removed)

    async def purge_grantee(self, relation: Relation, grantee_id: int) -> int:
        async with self._lock:
            removed = {
                edge for edge in self._edges if edge.relation is relation and edge.grantee_id == grantee_id
            }
            self._edges -= removed
            return len(removed)
