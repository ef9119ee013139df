"""Audit log types."""

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditAction(str, Enum):
    """Closed set of audited events."""

    # Workshop lifecycle
    WORKSHOP_CREATED = "workshop_created"
    WORKSHOP_UPDATED = "workshop_updated"
    WORKSHOP_DELETED = "workshop_deleted"
    MANAGER_ASSIGNED = "manager_assigned"
    MANAGER_REMOVED = "manager_removed"

    # Membership
    MEMBER_INVITED = "member_invited"
    MEMBER_JOINED = "member_joined"
    MEMBER_LEFT = "member_left"
    MEMBER_REMOVED = "member_removed"
    JOIN_REQUEST_APPROVED = "join_request_approved"
    JOIN_REQUEST_REJECTED = "join_request_rejected"

    # Teams
    TEAM_CREATED = "team_created"
    TEAM_UPDATED = "team_updated"
    TEAM_DELETED = "team_deleted"
    TEAM_MEMBER_ADDED = "team_member_added"
    TEAM_MEMBER_REMOVED = "team_member_removed"

    # Projects
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_DELETED = "project_deleted"
    PROJECT_TEAM_ASSIGNED = "project_team_assigned"
    PROJECT_TEAM_REMOVED = "project_team_removed"
    PROJECT_INDIVIDUAL_ASSIGNED = "project_individual_assigned"
    PROJECT_INDIVIDUAL_REMOVED = "project_individual_removed"
    PROJECT_MANAGER_ASSIGNED = "project_manager_assigned"
    PROJECT_MAINTAINER_ASSIGNED = "project_maintainer_assigned"

    # Roles
    ROLE_CREATED = "role_created"
    ROLE_UPDATED = "role_updated"
    ROLE_DELETED = "role_deleted"
    ROLE_ASSIGNED = "role_assigned"
    ROLE_REVOKED = "role_revoked"

    # Permissions
    PERMISSION_CHANGED = "permission_changed"
    PERMISSION_DENIED = "permission_denied"
    UNAUTHORIZED_ACCESS = "unauthorized_access"

    # Tasks
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"
    TASK_ASSIGNED = "task_assigned"
    TASK_STATUS_CHANGED = "task_status_changed"


class TargetType(str, Enum):
    """Kinds of entity an audit entry can point at."""

    USER = "User"
    WORKSHOP = "Workshop"
    TEAM = "Team"
    PROJECT = "Project"
    TASK = "Task"
    ROLE = "Role"
    MEMBERSHIP = "Membership"


class AuditLogCreate(BaseModel):
    """Request to create an audit log entry."""

    model_config = ConfigDict(frozen=True)

    workshop_id: str
    action: AuditAction
    actor_id: str
    target_id: str | None = None
    target_type: TargetType | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class AuditLogEntry(BaseModel):
    """Audit log entry from database."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    workshop_id: str
    action: AuditAction
    actor_id: str
    target_id: str | None = None
    target_type: TargetType | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class AuditLogFilters(BaseModel):
    """Optional filters for audit queries."""

    model_config = ConfigDict(frozen=True)

    action: AuditAction | None = None
    actor_id: str | None = None
    target_id: str | None = None
    target_type: TargetType | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class Pagination(BaseModel):
    """1-based page request."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=500)

    @property
    def offset(self) -> int:
        """Number of entries to skip."""
        return (self.page - 1) * self.limit


class AuditLogPage(BaseModel):
    """One page of audit entries."""

    model_config = ConfigDict(frozen=True)

    entries: list[AuditLogEntry]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        """Number of pages needed for ``total`` entries."""
        return math.ceil(self.total / self.limit) if self.limit else 0


class ActionCount(BaseModel):
    """Number of entries recorded for one action."""

    model_config = ConfigDict(frozen=True)

    action: AuditAction
    count: int
