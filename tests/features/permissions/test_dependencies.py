"""Tests for the FastAPI authorization dependencies."""

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI, Header, Request

from neo_authz.core.exceptions import StoreError
from neo_authz.features.permissions.dependencies import AuthorizationDependencies
from neo_authz.features.permissions.entities import ContextRef, SubjectRef


async def current_subject(x_user_id: str = Header(...)) -> SubjectRef:
    return SubjectRef("user", x_user_id)


def team_from_path(request: Request):
    team_id = request.path_params.get("team_id")
    return ContextRef("team", team_id) if team_id else None


def build_app(authorizer) -> FastAPI:
    guards = AuthorizationDependencies(authorizer, current_subject, team_from_path)
    app = FastAPI()

    @app.get("/articles")
    async def list_articles(subject=Depends(guards.require_permission("articles.view"))):
        return {"subject": subject.subject_id}

    @app.get("/teams/{team_id}/articles")
    async def team_articles(team_id: str, subject=Depends(guards.require_any_permission(["articles.view", "articles.edit"]))):
        return {"team": team_id}

    @app.post("/articles")
    async def create_article(subject=Depends(guards.require_all_permissions(["articles.view", "articles.edit"]))):
        return {"created": True}

    @app.get("/admin")
    async def admin(subject=Depends(guards.require_role("admin"))):
        return {"ok": True}

    @app.get("/staff")
    async def staff(subject=Depends(guards.require_any_role(["admin", "editor"]))):
        return {"ok": True}

    return app


@pytest_asyncio.fixture
async def seeded(authorizer):
    for name in ("articles.view", "articles.edit"):
        await authorizer.registry.create_permission(name)
    for name in ("admin", "editor"):
        await authorizer.registry.create_role(name)
    await authorizer.grants.grant_permissions(SubjectRef("user", "1"), "articles.view")
    await authorizer.grants.grant_permissions(SubjectRef("user", "2"), "articles.edit", ContextRef("team", "T1"))
    await authorizer.grants.assign_roles(SubjectRef("user", "2"), "editor")
    return authorizer


@pytest_asyncio.fixture
async def client(seeded):
    transport = httpx.ASGITransport(app=build_app(seeded))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestAuthorizationDependencies:

    @pytest.mark.asyncio
    async def test_allowed(self, client):
        response = await client.get("/articles", headers={"x-user-id": "1"})

        assert response.status_code == 200
        assert response.json() == {"subject": "1"}

    @pytest.mark.asyncio
    async def test_denied(self, client):
        response = await client.get("/articles", headers={"x-user-id": "2"})

        assert response.status_code == 403
        assert response.json()["detail"] == "Permission required: articles.view"

    @pytest.mark.asyncio
    async def test_context_from_path(self, client):
        in_team = await client.get("/teams/T1/articles", headers={"x-user-id": "2"})
        other_team = await client.get("/teams/T2/articles", headers={"x-user-id": "2"})

        assert in_team.status_code == 200
        assert other_team.status_code == 403

    @pytest.mark.asyncio
    async def test_all_permissions(self, client):
        response = await client.post("/articles", headers={"x-user-id": "1"})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_roles(self, client):
        assert (await client.get("/admin", headers={"x-user-id": "2"})).status_code == 403
        assert (await client.get("/staff", headers={"x-user-id": "2"})).status_code == 200
        assert (await client.get("/staff", headers={"x-user-id": "1"})).status_code == 403

    @pytest.mark.asyncio
    async def test_store_failure_is_503(self, make_authorizer, mock_relation_store):
        authorizer = make_authorizer(relations=mock_relation_store)
        await authorizer.registry.create_permission("articles.view")
        mock_relation_store.exists.side_effect = StoreError("database unreachable")
        transport = httpx.ASGITransport(app=build_app(authorizer))

        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/articles", headers={"x-user-id": "1"})

        assert response.status_code == 503
        assert response.json()["detail"] == "Authorization service unavailable"
