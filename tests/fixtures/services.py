"""Service fixtures wired to the in-memory stores."""

from __future__ import annotations

import pytest

from gatekeep.adapters.rbac import (
    InMemoryMembershipStore,
    InMemoryProjectStore,
    InMemoryRoleAssignmentStore,
    InMemoryRoleStore,
    InMemoryTeamStore,
    InMemoryWorkshopStore,
)
from gatekeep.core.rbac import PermissionEngine
from gatekeep.services import AuditService, Authorizer, OrganizationService, RoleService


@pytest.fixture
def authorizer(
    engine: PermissionEngine, workshops: InMemoryWorkshopStore, audit: AuditService
) -> Authorizer:
    """Return an authorizer over the test engine."""
    return Authorizer(engine, workshops, audit)


@pytest.fixture
def role_service(
    engine: PermissionEngine,
    authorizer: Authorizer,
    roles: InMemoryRoleStore,
    assignments: InMemoryRoleAssignmentStore,
    teams: InMemoryTeamStore,
    projects: InMemoryProjectStore,
    audit: AuditService,
) -> RoleService:
    """Return a role service over the in-memory stores."""
    return RoleService(engine, authorizer, roles, assignments, teams, projects, audit)


@pytest.fixture
def organization_service(
    engine: PermissionEngine,
    authorizer: Authorizer,
    workshops: InMemoryWorkshopStore,
    memberships: InMemoryMembershipStore,
    teams: InMemoryTeamStore,
    projects: InMemoryProjectStore,
    assignments: InMemoryRoleAssignmentStore,
    audit: AuditService,
) -> OrganizationService:
    """Return an organization service over the in-memory stores."""
    return OrganizationService(
        engine, authorizer, workshops, memberships, teams, projects, assignments, audit
    )
