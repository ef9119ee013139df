"""Tables read by the permission engine and written by the services."""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from gatekeep.models.base import BaseModel, TimestampMixin


class Workshop(TimestampMixin, BaseModel):
    """A tenant. Its owner and managers always have full access."""

    __tablename__ = "workshops"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default="private")


class WorkshopManager(BaseModel):
    """A manager seat in a workshop."""

    __tablename__ = "workshop_managers"
    __table_args__ = (UniqueConstraint("workshop_id", "user_id"),)

    workshop_id: Mapped[str] = mapped_column(
        ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    added_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class Project(TimestampMixin, BaseModel):
    """A project inside a workshop."""

    __tablename__ = "projects"

    workshop_id: Mapped[str] = mapped_column(
        ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    project_manager_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class ProjectMaintainer(BaseModel):
    """A maintainer seat on a project."""

    __tablename__ = "project_maintainers"
    __table_args__ = (UniqueConstraint("project_id", "user_id"),)

    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    added_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class Team(TimestampMixin, BaseModel):
    """A team inside a workshop."""

    __tablename__ = "teams"

    workshop_id: Mapped[str] = mapped_column(
        ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class TeamMember(BaseModel):
    """A user's seat on a team."""

    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id"),)

    team_id: Mapped[str] = mapped_column(
        ForeignKey("teams.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    added_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)


class Membership(TimestampMixin, BaseModel):
    """A user's membership in a workshop. One row per (workshop, user)."""

    __tablename__ = "memberships"
    __table_args__ = (UniqueConstraint("workshop_id", "user_id"),)

    workshop_id: Mapped[str] = mapped_column(
        ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    state: Mapped[str] = mapped_column(String(20), nullable=False)  # pending, active, removed
    source: Mapped[str] = mapped_column(String(20), nullable=False)
    joined_at: Mapped[datetime | None] = mapped_column(nullable=True)
    removed_at: Mapped[datetime | None] = mapped_column(nullable=True)


class Role(TimestampMixin, BaseModel):
    """A named bundle of permission rules."""

    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("workshop_id", "name"),)

    workshop_id: Mapped[str] = mapped_column(
        ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    scope: Mapped[str] = mapped_column(String(20), nullable=False, default="workshop")
    scope_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # [{"action": ..., "resource": ..., "effect": "grant" | "deny"}]
    permissions: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class RoleAssignment(BaseModel):
    """A role bound to a user at one scope instance. Never updated."""

    __tablename__ = "role_assignments"
    __table_args__ = (
        Index("ix_role_assignments_lookup", "workshop_id", "user_id", "scope", "scope_id"),
    )

    workshop_id: Mapped[str] = mapped_column(
        ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False
    )
    # No FK on role_id: an assignment may outlive its role and is then ignored.
    role_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    scope: Mapped[str] = mapped_column(String(20), nullable=False)
    scope_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    assigned_by: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

