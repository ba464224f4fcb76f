"""
Shared pytest fixtures for the AlignAI test suite.

Provides:
    - engine / session: in-memory SQLite (aiosqlite) with the full schema
    - embedder / completion: deterministic fakes from tests.fakes
    - workspace: a team (owner, member, viewer) with one seeded project
    - client: httpx AsyncClient against the FastAPI app, providers and
      database overridden
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from alignai.api.auth import get_async_session
from alignai.api.deps import completion_provider, embedding_provider
from alignai.db.models import SectionCategory, TeamRole
from alignai.db.queries import list_sections, upsert_profile
from alignai.db.session import init_db
from alignai.server.main import app as fastapi_app
from alignai.teams.service import add_member, create_project, create_team
from tests.fakes import MEMBER, OWNER, VIEWER, FakeCompletion, FakeEmbedder


# ── Database ─────────────────────────────────────────────────────────────────


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


# ── Providers ────────────────────────────────────────────────────────────────


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def completion():
    return FakeCompletion()


# ── Seed data ────────────────────────────────────────────────────────────────


@dataclass
class Workspace:
    team_id: object
    project_id: object
    sections: dict


@pytest.fixture
async def workspace(session) -> Workspace:
    """Team with an owner, a member and a viewer, plus one seeded project."""
    await upsert_profile(session, OWNER, "owner@example.com", "Ada")
    await upsert_profile(session, MEMBER, "member@example.com", "Grace")
    await upsert_profile(session, VIEWER, "viewer@example.com", "")
    await session.commit()

    team = await create_team(session, "Launch team", OWNER)
    await add_member(session, team.id, MEMBER, TeamRole.member)
    await add_member(session, team.id, VIEWER, TeamRole.viewer)
    project = await create_project(session, team.id, "Invoicing", OWNER, "Invoices for freelancers")
    sections = {s.category: s.id for s in await list_sections(session, project.id)}
    await session.commit()
    return Workspace(team_id=team.id, project_id=project.id, sections=sections)


@pytest.fixture
def problem_section(workspace):
    return workspace.sections[SectionCategory.problem]


# ── API ──────────────────────────────────────────────────────────────────────


@pytest.fixture
async def client(session_factory, embedder, completion):
    async def _session():
        async with session_factory() as s:
            yield s

    fastapi_app.dependency_overrides[get_async_session] = _session
    fastapi_app.dependency_overrides[embedding_provider] = lambda: embedder
    fastapi_app.dependency_overrides[completion_provider] = lambda: completion

    # ASGITransport does not run the lifespan, so no real provider is built
    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    fastapi_app.dependency_overrides.clear()
