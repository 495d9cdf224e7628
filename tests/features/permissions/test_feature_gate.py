"""Tests for the feature gate decision table and feature flags."""

import pytest
from unittest.mock import AsyncMock

from neo_authz.config.constants import OnMissingHandler
from neo_authz.core.exceptions import FeatureHandlerUnavailableError
from neo_authz.features.permissions.entities import ContextRef

FEATURE = ContextRef("feature", "beta")


class FeatureModel:
    context_type = "feature"

    def __init__(self, key):
        self.context_id = key


GATED = {
    "context": {"enabled": True, "global_fallback": True},
    "features": {"enabled": True, "context_types": ["feature"]},
}


def _handler(allowed: bool):
    handler = AsyncMock()
    handler.can_access.return_value = allowed
    handler.has_access.return_value = allowed
    handler.is_active.return_value = allowed
    return handler


async def _grant_edit(authorizer, user, feature=None):
    await authorizer.registry.create_permission("articles.edit", feature=feature)
    await authorizer.grants.grant_permissions(user, "articles.edit")


class TestDecisionTable:
    """Gate outcome per integration state, context type, bypass and handler."""

    @pytest.mark.asyncio
    async def test_integration_disabled_never_gates(self, make_authorizer, user):
        authorizer = make_authorizer(context={"enabled": True}, feature_handler=_handler(False))
        await _grant_edit(authorizer, user)

        assert await authorizer.has_permission(user, "articles.edit", FEATURE)

    @pytest.mark.asyncio
    async def test_non_feature_context_is_not_gated(self, make_authorizer, user, team_one):
        handler = _handler(False)
        authorizer = make_authorizer(feature_handler=handler, **GATED)
        await _grant_edit(authorizer, user)

        assert await authorizer.has_permission(user, "articles.edit", team_one)
        handler.can_access.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bypass_skips_the_handler(self, make_authorizer, user):
        handler = _handler(False)
        authorizer = make_authorizer(feature_handler=handler, **GATED)
        await _grant_edit(authorizer, user)

        assert await authorizer.has_permission(user, "articles.edit", FEATURE, bypass_feature=True)
        handler.can_access.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_veto(self, make_authorizer, user):
        authorizer = make_authorizer(feature_handler=_handler(False), **GATED)
        await _grant_edit(authorizer, user)

        assert not await authorizer.has_permission(user, "articles.edit", FEATURE)

    @pytest.mark.asyncio
    async def test_handler_allows_then_grants_decide(self, make_authorizer, user, other_user):
        authorizer = make_authorizer(feature_handler=_handler(True), **GATED)
        await _grant_edit(authorizer, user)

        assert await authorizer.has_permission(user, "articles.edit", FEATURE)
        assert not await authorizer.has_permission(other_user, "articles.edit", FEATURE)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "policy,expected",
        [(OnMissingHandler.ALLOW, True), (OnMissingHandler.DENY, False)],
    )
    async def test_missing_handler_policy(self, make_authorizer, user, policy, expected):
        settings = dict(GATED)
        settings["features"] = {**GATED["features"], "on_missing_handler": policy}
        authorizer = make_authorizer(**settings)
        await _grant_edit(authorizer, user)

        assert await authorizer.has_permission(user, "articles.edit", FEATURE) is expected

    @pytest.mark.asyncio
    async def test_missing_handler_throw(self, make_authorizer, user):
        settings = dict(GATED)
        settings["features"] = {**GATED["features"], "on_missing_handler": "throw"}
        authorizer = make_authorizer(**settings)
        await _grant_edit(authorizer, user)

        with pytest.raises(FeatureHandlerUnavailableError):
            await authorizer.has_permission(user, "articles.edit", FEATURE)

    @pytest.mark.asyncio
    async def test_handler_bound_after_construction(self, make_authorizer, user):
        authorizer = make_authorizer(**GATED)
        await _grant_edit(authorizer, user)
        assert not await authorizer.has_permission(user, "articles.edit", FEATURE)

        authorizer.bind_feature_handler(_handler(True))

        assert await authorizer.has_permission(user, "articles.edit", FEATURE)

    @pytest.mark.asyncio
    async def test_role_checks_are_gated_too(self, make_authorizer, user):
        authorizer = make_authorizer(feature_handler=_handler(False), **GATED)
        await authorizer.registry.create_role("editor")
        await authorizer.grants.assign_roles(user, "editor")

        assert await authorizer.has_role(user, "editor")
        assert not await authorizer.has_role(user, "editor", FEATURE)


class TestFeatureQueries:
    """Direct feature queries."""

    @pytest.mark.asyncio
    async def test_queries_delegate_to_handler(self, make_authorizer, user):
        handler = _handler(True)
        authorizer = make_authorizer(feature_handler=handler, **GATED)

        assert await authorizer.is_feature_active(FEATURE)
        assert await authorizer.has_feature_access(FEATURE, user)
        assert await authorizer.can_access_feature(FEATURE, user)
        handler.is_active.assert_awaited_once_with(FEATURE)

    @pytest.mark.asyncio
    async def test_handler_receives_the_caller_model(self, make_authorizer, user):
        handler = _handler(True)
        authorizer = make_authorizer(feature_handler=handler, **GATED)
        await _grant_edit(authorizer, user)
        beta = FeatureModel("beta")

        assert await authorizer.has_permission(user, "articles.edit", beta)

        feature, subject = handler.can_access.await_args.args
        assert feature == FEATURE
        assert feature.source is beta
        assert subject is user

    @pytest.mark.asyncio
    async def test_queries_pass_when_not_a_feature(self, make_authorizer, user, team_one):
        handler = _handler(False)
        authorizer = make_authorizer(feature_handler=handler, **GATED)

        assert await authorizer.is_feature_active(team_one)
        handler.is_active.assert_not_awaited()


class TestFeatureFlags:
    """Feature flags bound to permission and role definitions."""

    @pytest.mark.asyncio
    async def test_flag_disabled_denies_bound_permission(self, make_authorizer, user):
        flags = AsyncMock()
        flags.is_enabled.return_value = False
        authorizer = make_authorizer(feature_flags=flags, feature_handler=_handler(True), **GATED)
        await _grant_edit(authorizer, user, feature="new-editor")

        assert not await authorizer.has_permission(user, "articles.edit")
        flags.is_enabled.assert_awaited_with("new-editor", user)

    @pytest.mark.asyncio
    async def test_flag_enabled_allows(self, make_authorizer, user):
        flags = AsyncMock()
        flags.is_enabled.return_value = True
        authorizer = make_authorizer(feature_flags=flags, **GATED)
        await _grant_edit(authorizer, user, feature="new-editor")

        assert await authorizer.has_permission(user, "articles.edit")

    @pytest.mark.asyncio
    async def test_flags_ignored_without_integration(self, make_authorizer, user):
        flags = AsyncMock()
        flags.is_enabled.return_value = False
        authorizer = make_authorizer(feature_flags=flags)
        await _grant_edit(authorizer, user, feature="new-editor")

        assert await authorizer.has_permission(user, "articles.edit")
        flags.is_enabled.assert_not_awaited()
