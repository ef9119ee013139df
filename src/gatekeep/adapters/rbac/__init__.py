"""RBAC adapters."""

from gatekeep.adapters.rbac.memberships_repository import MembershipsRepository
from gatekeep.adapters.rbac.memory import (
    InMemoryMembershipStore,
    InMemoryProjectStore,
    InMemoryRoleAssignmentStore,
    InMemoryRoleStore,
    InMemoryTeamStore,
    InMemoryWorkshopStore,
)
from gatekeep.adapters.rbac.projects_repository import ProjectsRepository
from gatekeep.adapters.rbac.role_assignments_repository import RoleAssignmentsRepository
from gatekeep.adapters.rbac.roles_repository import RolesRepository
from gatekeep.adapters.rbac.teams_repository import TeamsRepository
from gatekeep.adapters.rbac.workshops_repository import WorkshopsRepository

__all__ = [
    "InMemoryMembershipStore",
    "InMemoryProjectStore",
    "InMemoryRoleAssignmentStore",
    "InMemoryRoleStore",
    "InMemoryTeamStore",
    "InMemoryWorkshopStore",
    "MembershipsRepository",
    "ProjectsRepository",
    "RoleAssignmentsRepository",
    "RolesRepository",
    "TeamsRepository",
    "WorkshopsRepository",
]
