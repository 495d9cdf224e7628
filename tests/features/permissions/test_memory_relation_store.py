"""Tests for the in-memory relation store."""

import pytest

from neo_authz.features.permissions.entities import (
    GLOBAL_CONTEXT,
    ContextFilter,
    ContextRef,
    EntityRef,
    Relation,
)
from neo_authz.features.permissions.repositories import InMemoryRelationStore

OWNER = EntityRef("user", "1")
T1 = ContextRef("team", "T1")
T2 = ContextRef("team", "T2")


@pytest.fixture
def store():
    return InMemoryRelationStore()


class TestAttachDetach:
    """Edge creation and removal."""

    @pytest.mark.asyncio
    async def test_attach_is_idempotent(self, store):
        assert await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1, 2], GLOBAL_CONTEXT) == [1, 2]
        assert await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1, 2], GLOBAL_CONTEXT) == []
        assert len(store.edges) == 2

    @pytest.mark.asyncio
    async def test_same_grantee_in_two_contexts_is_two_edges(self, store):
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1], T1)
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1], GLOBAL_CONTEXT)
        assert len(store.edges) == 2

    @pytest.mark.asyncio
    async def test_detach_only_touches_the_given_context(self, store):
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1], T1)
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1], T2)
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1], GLOBAL_CONTEXT)

        assert await store.detach(Relation.SUBJECT_PERMISSION, OWNER, [1], T1) == [1]

        assert await store.exists(Relation.SUBJECT_PERMISSION, [OWNER], 1, ContextFilter.exact(T2))
        assert await store.exists(Relation.SUBJECT_PERMISSION, [OWNER], 1, ContextFilter.global_only())
        assert not await store.exists(Relation.SUBJECT_PERMISSION, [OWNER], 1, ContextFilter.exact(T1))

    @pytest.mark.asyncio
    async def test_detach_none_removes_every_grantee_in_context(self, store):
        await store.attach(Relation.SUBJECT_ROLE, OWNER, [1, 2, 3], T1)
        await store.attach(Relation.SUBJECT_ROLE, OWNER, [4], T2)

        assert await store.detach(Relation.SUBJECT_ROLE, OWNER, None, T1) == [1, 2, 3]
        assert await store.grantee_ids(Relation.SUBJECT_ROLE, [OWNER], ContextFilter.exact(T2)) == {4}


class TestSync:
    """Replacing an edge set."""

    @pytest.mark.asyncio
    async def test_sync_replaces_edges_of_the_context(self, store):
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1, 2], T1)
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1], T2)

        changes = await store.sync(Relation.SUBJECT_PERMISSION, OWNER, [2, 3], T1)

        assert changes == {"attached": [3], "detached": [1]}
        assert await store.grantee_ids(Relation.SUBJECT_PERMISSION, [OWNER], ContextFilter.exact(T1)) == {2, 3}
        assert await store.grantee_ids(Relation.SUBJECT_PERMISSION, [OWNER], ContextFilter.exact(T2)) == {1}

    @pytest.mark.asyncio
    async def test_sync_without_detaching_behaves_like_attach(self, store):
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1], GLOBAL_CONTEXT)

        changes = await store.sync(Relation.SUBJECT_PERMISSION, OWNER, [2], GLOBAL_CONTEXT, detaching=False)

        assert changes == {"attached": [2], "detached": []}
        assert await store.grantee_ids(
            Relation.SUBJECT_PERMISSION, [OWNER], ContextFilter.global_only()
        ) == {1, 2}


class TestReads:
    """Queries used by the resolvers."""

    @pytest.mark.asyncio
    async def test_exists_with_fallback_filter(self, store):
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [1], GLOBAL_CONTEXT)
        assert await store.exists(Relation.SUBJECT_PERMISSION, [OWNER], 1, ContextFilter((T1, GLOBAL_CONTEXT)))
        assert not await store.exists(Relation.SUBJECT_PERMISSION, [OWNER], 1, ContextFilter.exact(T1))

    @pytest.mark.asyncio
    async def test_grantee_map_only_contains_global_edges(self, store):
        role = EntityRef("role", "5")
        await store.attach(Relation.ROLE_PERMISSION, role, [1, 2], GLOBAL_CONTEXT)
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [9], GLOBAL_CONTEXT)
        assert await store.grantee_map(Relation.ROLE_PERMISSION) == {"5": {1, 2}}

    @pytest.mark.asyncio
    async def test_contexts_for_lists_distinct_non_global_contexts(self, store):
        await store.attach(Relation.SUBJECT_ROLE, OWNER, [1], T2)
        await store.attach(Relation.SUBJECT_ROLE, OWNER, [1], T1)
        await store.attach(Relation.SUBJECT_ROLE, OWNER, [1], GLOBAL_CONTEXT)
        assert await store.contexts_for(Relation.SUBJECT_ROLE, OWNER, 1) == [T1, T2]

    @pytest.mark.asyncio
    async def test_purge_owner_removes_every_relation(self, store):
        await store.attach(Relation.SUBJECT_ROLE, OWNER, [1], T1)
        await store.attach(Relation.SUBJECT_PERMISSION, OWNER, [2], GLOBAL_CONTEXT)
        await store.attach(Relation.SUBJECT_PERMISSION, EntityRef("user", "2"), [2], GLOBAL_CONTEXT)

        assert await store.purge_owner(OWNER) == 2
        assert len(store.edges) == 1
