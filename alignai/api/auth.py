"""Bearer-token authentication and team-scoped access checks for the REST API.

Tokens are issued by the hosted auth provider and signed HS256 with its JWT
secret (ALIGNAI_JWT_SECRET).  The ``sub`` claim is the user id; ``email`` and
``user_metadata.name`` feed the display-name profile.

Access model (mirrors the provider's row-level policies):
- Team members of any role can read a team's projects, sections, responses.
- Owners and members can write (submit responses, synthesize, approve).
- Only owners can add members.
- Non-members get 404, never 403, so resource existence is not leaked.

The dependencies here are trivially substituted in tests through
``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from alignai.config import settings
from alignai.db import queries
from alignai.db.models import Project, Section, TeamRole
from alignai.db.session import AsyncSessionFactory

logger = logging.getLogger(__name__)

BEARER = HTTPBearer(auto_error=False)

_WRITE_ROLES = frozenset({TeamRole.owner, TeamRole.member})


@dataclass
class AuthContext:
    """Authenticated caller.

    Attributes:
        user_id: Auth-provider user id (JWT ``sub``).
        email:   Email claim, empty if absent.
        name:    Display name from ``user_metadata.name``, empty if absent.
    """

    user_id: str
    email: str = field(default="")
    name: str = field(default="")


def decode_token(token: str) -> AuthContext:
    """Verify a HS256 JWT and return the caller's AuthContext.

    Raises:
        ValueError: If the token is invalid, expired, or has no ``sub`` claim.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
        )
    except JWTError as exc:
        raise ValueError(f"Invalid token: {exc}") from exc

    user_id = payload.get("sub")
    if not user_id:
        raise ValueError("Token missing required claim: sub")

    metadata = payload.get("user_metadata") or {}
    return AuthContext(
        user_id=str(user_id),
        email=str(payload.get("email") or ""),
        name=str(metadata.get("name") or ""),
    )


def create_token(user_id: str, email: str = "", name: str = "") -> str:
    """Sign a token the way the auth provider does.  For tests and local CLI use only."""
    claims = {"sub": user_id, "aud": settings.jwt_audience, "email": email, "user_metadata": {"name": name}}
    return jwt.encode(claims, settings.jwt_secret, algorithm="HS256")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


async def get_async_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields a fresh AsyncSession for each request."""
    async with AsyncSessionFactory() as session:
        yield session


async def require_user(
    credentials: HTTPAuthorizationCredentials | None = Security(BEARER),
) -> AuthContext:
    """FastAPI dependency returning the authenticated caller.

    Raises:
        HTTPException(401): Missing, malformed, or invalid bearer token.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        return decode_token(credentials.credentials)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unauthorized") from None


# ---------------------------------------------------------------------------
# Access helpers
# ---------------------------------------------------------------------------


async def require_team_role(
    session: AsyncSession,
    team_id: uuid.UUID,
    user: AuthContext,
    write: bool = False,
    owner: bool = False,
) -> TeamRole:
    """Return the caller's role in *team_id* or raise 404/403."""
    role = await queries.get_team_role(session, team_id, user.user_id)
    if role is None:
        raise HTTPException(status_code=404, detail=f"Team '{team_id}' not found.")
    if owner and role is not TeamRole.owner:
        raise HTTPException(status_code=403, detail="Only team owners can do this.")
    if write and role not in _WRITE_ROLES:
        raise HTTPException(status_code=403, detail="Viewers have read-only access.")
    return role


async def require_project_access(
    session: AsyncSession, project_id: uuid.UUID, user: AuthContext, write: bool = False
) -> Project:
    project = await queries.get_project(session, project_id)
    if project is None or await queries.get_team_role(session, project.team_id, user.user_id) is None:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found.")
    await require_team_role(session, project.team_id, user, write=write)
    return project


async def require_section_access(
    session: AsyncSession, section_id: uuid.UUID, user: AuthContext, write: bool = False
) -> Section:
    section = await queries.get_section(session, section_id)
    if section is None:
        raise HTTPException(status_code=404, detail=f"Section '{section_id}' not found.")
    project = await queries.get_project(session, section.project_id)
    if project is None or await queries.get_team_role(session, project.team_id, user.user_id) is None:
        raise HTTPException(status_code=404, detail=f"Section '{section_id}' not found.")
    await require_team_role(session, project.team_id, user, write=write)
    return section


async def current_profile(
    user: AuthContext = Depends(require_user),
    session: AsyncSession = Depends(get_async_session),
) -> AuthContext:
    """Like require_user, but also refreshes the caller's display-name profile."""
    await queries.upsert_profile(session, user.user_id, user.email, user.name)
    try:
        await session.commit()
    except IntegrityError:
        # A concurrent first request created the profile; refresh it instead
        await session.rollback()
        logger.info("Profile for %s created concurrently: retrying as update", user.user_id)
        await queries.upsert_profile(session, user.user_id, user.email, user.name)
        await session.commit()
    return user
