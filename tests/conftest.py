"""Pytest configuration and fixtures for neo-authz tests."""

from typing import List

import pytest
from unittest.mock import AsyncMock

from neo_authz.config.settings import AuthzSettings
from neo_authz.features.audit.entities import AuditEntry
from neo_authz.features.permissions.entities import ContextRef, SubjectRef, SubjectTraits
from neo_authz.features.permissions.repositories import InMemoryDefinitionStore, InMemoryRelationStore
from neo_authz.features.permissions.services import Authorizer


class RecordingAuditSink:
    """Audit sink keeping entries in memory."""

    def __init__(self):
        self.entries: List[AuditEntry] = []

    async def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)


def build_settings(**overrides) -> AuthzSettings:
    """Settings isolated from the environment and any .env file."""
    return AuthzSettings(_env_file=None, **overrides)


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def make_authorizer(audit_sink):
    """Factory building an Authorizer over fresh in-memory stores."""

    def factory(
        relations=None,
        definitions=None,
        feature_handler=None,
        feature_flags=None,
        **overrides,
    ) -> Authorizer:
        return Authorizer(
            relations if relations is not None else InMemoryRelationStore(),
            definitions if definitions is not None else InMemoryDefinitionStore(),
            settings=build_settings(**overrides),
            audit_sink=audit_sink,
            feature_handler=feature_handler,
            feature_flags=feature_flags,
        )

    return factory


@pytest.fixture
def authorizer(make_authorizer):
    """Authorizer with contexts, capabilities and direct capabilities enabled."""
    return make_authorizer(
        context={"enabled": True, "global_fallback": True},
        capabilities={"enabled": True, "direct_assignment": True},
    )


@pytest.fixture
def user():
    return SubjectRef("user", 1)


@pytest.fixture
def other_user():
    return SubjectRef("user", 2)


@pytest.fixture
def api_client():
    """Subject without role support."""
    return SubjectRef("api_client", "svc-1", traits=SubjectTraits.PERMISSIONS)


@pytest.fixture
def team_one():
    return ContextRef("team", "T1")


@pytest.fixture
def team_two():
    return ContextRef("team", "T2")


@pytest.fixture
def mock_relation_store():
    """Relation store whose every method is an AsyncMock."""
    store = AsyncMock(spec=InMemoryRelationStore)
    store.grantee_ids.return_value = set()
    store.grantee_map.return_value = {}
    store.exists.return_value = False
    return store


@pytest.fixture
def make_settings():
    return build_settings
