"""Tests for role checks and role inheritance."""

import pytest

from neo_authz.core.exceptions import CircularRoleInheritanceError
from neo_authz.features.permissions.entities import Role
from neo_authz.features.permissions.services import RoleHierarchy


def _role(name, *parents, role_id=None):
    return Role(id=role_id, name=name, guard="web", inherits_from=tuple(parents))


class TestRoleHierarchy:
    """Ancestor expansion over plain role mappings."""

    def test_ancestors_include_every_level(self):
        roles = {
            "admin": _role("admin", "editor"),
            "editor": _role("editor", "viewer"),
            "viewer": _role("viewer"),
        }

        assert RoleHierarchy().ancestors(["admin"], roles) == {"admin", "editor", "viewer"}

    def test_unknown_parent_is_skipped(self):
        roles = {"editor": _role("editor", "ghost")}

        assert RoleHierarchy().ancestors(["editor"], roles) == {"editor"}

    def test_cycle_is_rejected(self):
        roles = {
            "a": _role("a", "b"),
            "b": _role("b", "c"),
            "c": _role("c", "a"),
        }

        with pytest.raises(CircularRoleInheritanceError) as exc_info:
            RoleHierarchy().validate(roles)
        chain = exc_info.value.details["chain"]
        assert chain[0] == chain[-1]

    def test_inheritance_chain_lists_ancestors_first(self):
        roles = {
            "admin": _role("admin", "editor", "billing"),
            "editor": _role("editor", "viewer"),
            "billing": _role("billing"),
            "viewer": _role("viewer"),
        }

        chain = RoleHierarchy().inheritance_chain(roles["admin"], roles)

        assert chain == ["viewer", "editor", "billing", "admin"]

    def test_inheritance_chain_skips_unknown_and_shared_parents(self):
        roles = {
            "admin": _role("admin", "editor", "auditor", "ghost"),
            "editor": _role("editor", "viewer"),
            "auditor": _role("auditor", "viewer"),
            "viewer": _role("viewer"),
        }

        chain = RoleHierarchy().inheritance_chain(roles["admin"], roles)

        assert chain == ["viewer", "editor", "auditor", "admin"]

    def test_inheritance_chain_of_root_role(self):
        roles = {"viewer": _role("viewer")}

        assert RoleHierarchy().inheritance_chain(roles["viewer"], roles) == ["viewer"]


class TestHasRole:
    """Role checks through the Authorizer."""

    @pytest.mark.asyncio
    async def test_assigned_role(self, authorizer, user):
        await authorizer.registry.create_role("editor")
        await authorizer.grants.assign_roles(user, "editor")

        assert await authorizer.has_role(user, "editor")
        assert not await authorizer.has_role(user, "admin")

    @pytest.mark.asyncio
    async def test_inherited_role_and_permission(self, authorizer, user):
        await authorizer.registry.create_permission("articles.view")
        await authorizer.registry.create_role("viewer")
        await authorizer.registry.create_role("editor", inherits_from=["viewer"])
        await authorizer.grants.grant_permissions_to_role("viewer", ["articles.view"])
        await authorizer.grants.assign_roles(user, "editor")

        assert await authorizer.has_role(user, "viewer")
        assert await authorizer.has_permission(user, "articles.view")
        assert await authorizer.roles.get_role_names(user) == ["editor", "viewer"]

    @pytest.mark.asyncio
    async def test_creating_a_cycle_is_rejected(self, authorizer):
        await authorizer.registry.create_role("a", inherits_from=["b"])

        with pytest.raises(CircularRoleInheritanceError):
            await authorizer.registry.create_role("b", inherits_from=["a"])

    @pytest.mark.asyncio
    async def test_exact_roles_ignore_inheritance(self, authorizer, user):
        await authorizer.registry.create_role("viewer")
        await authorizer.registry.create_role("editor", inherits_from=["viewer"])
        await authorizer.grants.assign_roles(user, "editor")

        assert await authorizer.has_exact_roles(user, ["editor"])
        assert not await authorizer.has_exact_roles(user, ["editor", "viewer"])

    @pytest.mark.asyncio
    async def test_any_and_all_roles(self, authorizer, user):
        await authorizer.registry.create_role("editor")
        await authorizer.registry.create_role("admin")
        await authorizer.grants.assign_roles(user, ["editor"])

        assert await authorizer.has_any_role(user, ["admin", "editor"])
        assert not await authorizer.has_all_roles(user, ["admin", "editor"])
        assert not await authorizer.has_any_role(user, [])
        assert not await authorizer.has_all_roles(user, [])

    @pytest.mark.asyncio
    async def test_role_contexts(self, authorizer, user, team_one, team_two):
        await authorizer.registry.create_role("editor")
        await authorizer.grants.assign_roles(user, "editor", team_one)

        assert await authorizer.has_role(user, "editor", team_one)
        assert not await authorizer.has_role(user, "editor", team_two)
        assert not await authorizer.has_role(user, "editor")
        assert await authorizer.get_role_contexts(user, "editor") == [team_one]

    @pytest.mark.asyncio
    async def test_role_of_another_guard_is_not_held(self, authorizer, user):
        await authorizer.registry.create_role("editor")
        other = await authorizer.registry.create_role("editor", guard="api")
        await authorizer.grants.assign_roles(user, "editor")

        assert not await authorizer.has_role(user, other)

    @pytest.mark.asyncio
    async def test_subject_without_roles_trait(self, authorizer, api_client):
        await authorizer.registry.create_role("editor")

        assert not await authorizer.has_role(api_client, "editor")
        assert await authorizer.get_all_roles(api_client) == []
