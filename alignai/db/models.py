"""SQLAlchemy ORM models for AlignAI.

Tables:
- profiles        : display name/email per auth-provider user id
- teams           : collaboration unit
- team_members    : (team, user, role) — unique per (team_id, user_id)
- projects        : product idea owned by a team
- sections        : one per SectionCategory per project, ordered by position
- responses       : one per (section_id, user_id), embedding on submitted rows only
- conflicts       : last-write-wins conflict snapshot, one per section
- consensus       : synthesized statement + approval state, one per section

Vectors use pgvector's VECTOR type on PostgreSQL and fall back to JSON on
SQLite so the test suite runs against an in-memory database.
"""

from __future__ import annotations

import datetime
import enum
import uuid

import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from alignai.config import settings


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SectionCategory(str, enum.Enum):
    """Fixed set of product-definition sections, in project order."""

    problem = "problem"
    target_users = "target_users"
    vision = "vision"
    features = "features"
    competitors = "competitors"
    differentiation = "differentiation"
    tech_stack = "tech_stack"


class TeamRole(str, enum.Enum):
    owner = "owner"
    member = "member"
    viewer = "viewer"


class ConsensusStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ConflictResolutionStatus(str, enum.Enum):
    open = "open"
    resolved = "resolved"
    dismissed = "dismissed"


EmbeddingType = Vector(settings.embedding_dimensions).with_variant(sa.JSON(), "sqlite")


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(sa.String(64), primary_key=True)
    email: Mapped[str] = mapped_column(sa.String(320), default="")
    name: Mapped[str] = mapped_column(sa.String(200), default="")
    created_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(sa.String(200))
    created_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (sa.UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),)

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    team_id: Mapped[uuid.UUID] = mapped_column(sa.ForeignKey("teams.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(sa.String(64), index=True)
    role: Mapped[TeamRole] = mapped_column(sa.Enum(TeamRole, name="teamrole"), default=TeamRole.member)
    joined_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    team_id: Mapped[uuid.UUID] = mapped_column(sa.ForeignKey("teams.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(sa.String(200))
    description: Mapped[str] = mapped_column(sa.Text, default="")
    created_by: Mapped[str] = mapped_column(sa.String(64))
    created_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)


class Section(Base):
    __tablename__ = "sections"
    __table_args__ = (sa.UniqueConstraint("project_id", "category", name="uq_sections_project_category"),)

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(sa.ForeignKey("projects.id", ondelete="CASCADE"), index=True)
    category: Mapped[SectionCategory] = mapped_column(sa.Enum(SectionCategory, name="sectioncategory"))
    title: Mapped[str] = mapped_column(sa.String(200))
    position: Mapped[int] = mapped_column(sa.Integer, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)


class Response(Base):
    __tablename__ = "responses"
    # One response per member per section: resubmission updates in place
    __table_args__ = (sa.UniqueConstraint("section_id", "user_id", name="uq_responses_section_user"),)

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    section_id: Mapped[uuid.UUID] = mapped_column(sa.ForeignKey("sections.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(sa.String(64), index=True)
    content: Mapped[str] = mapped_column(sa.Text)
    embedding: Mapped[list[float] | None] = mapped_column(EmbeddingType, nullable=True)
    is_draft: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)


class Conflict(Base):
    __tablename__ = "conflicts"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    section_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("sections.id", ondelete="CASCADE"), unique=True
    )
    response_ids: Mapped[list] = mapped_column(sa.JSON, default=list)
    similarity_score: Mapped[float] = mapped_column(sa.Float)
    severity: Mapped[str] = mapped_column(sa.String(16))
    analysis: Mapped[dict] = mapped_column(sa.JSON, default=dict)
    resolution_status: Mapped[ConflictResolutionStatus] = mapped_column(
        sa.Enum(ConflictResolutionStatus, name="conflictresolutionstatus"),
        default=ConflictResolutionStatus.open,
    )
    created_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)


class Consensus(Base):
    __tablename__ = "consensus"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    section_id: Mapped[uuid.UUID] = mapped_column(
        sa.ForeignKey("sections.id", ondelete="CASCADE"), unique=True
    )
    merged_content: Mapped[str] = mapped_column(sa.Text)
    reasoning: Mapped[str] = mapped_column(sa.Text, default="")
    confidence: Mapped[float] = mapped_column(sa.Float, default=0.0)
    status: Mapped[ConsensusStatus] = mapped_column(
        sa.Enum(ConsensusStatus, name="consensusstatus"), default=ConsensusStatus.pending
    )
    # Reassign (never mutate in place): plain JSON columns do not track list mutation
    approved_by: Mapped[list] = mapped_column(sa.JSON, default=list)
    created_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(sa.DateTime(timezone=True), default=_utcnow)
