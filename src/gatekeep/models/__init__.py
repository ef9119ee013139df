"""SQLAlchemy models describing the database schema."""

from gatekeep.models.audit_log import AuditLog
from gatekeep.models.base import BaseModel, metadata
from gatekeep.models.rbac import (
    Membership,
    Project,
    ProjectMaintainer,
    Role,
    RoleAssignment,
    Team,
    TeamMember,
    Workshop,
    WorkshopManager,
)

__all__ = [
    "AuditLog",
    "BaseModel",
    "Membership",
    "Project",
    "ProjectMaintainer",
    "Role",
    "RoleAssignment",
    "Team",
    "TeamMember",
    "Workshop",
    "WorkshopManager",
    "metadata",
]
