"""Tests for the role service."""

from __future__ import annotations

import pytest

from gatekeep.adapters.audit import AuditAction, InMemoryAuditRepository
from gatekeep.adapters.rbac import (
    InMemoryProjectStore,
    InMemoryRoleAssignmentStore,
    InMemoryRoleStore,
    InMemoryTeamStore,
)
from gatekeep.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from gatekeep.core.rbac import (
    Effect,
    PermissionContext,
    PermissionEngine,
    PermissionRule,
    Project,
    Scope,
    Team,
)
from gatekeep.services import RoleService
from tests.fixtures.stores import MANAGER_ID, OWNER_ID, WORKSHOP_ID, bind_role

EDIT_TASKS = [PermissionRule("update", "task")]


class TestCreateRole:
    """Tests for RoleService.create_role."""

    async def test_owner_creates_role(
        self, role_service: RoleService, audit_repository: InMemoryAuditRepository
    ) -> None:
        """Test that the owner can define a role and it is audited."""
        role = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "  Editor ", EDIT_TASKS)

        assert role.name == "Editor"
        assert role.scope == Scope.WORKSHOP
        entry = audit_repository.entries[-1]
        assert entry.action == AuditAction.ROLE_CREATED
        assert entry.target_id == role.id
        assert entry.details == {"role_name": "Editor"}

    async def test_manager_creates_role(self, role_service: RoleService) -> None:
        """Test that workshop managers can define roles too."""
        role = await role_service.create_role(MANAGER_ID, WORKSHOP_ID, "Viewer", [])

        assert role.workshop_id == WORKSHOP_ID

    async def test_member_cannot_create_role(
        self, role_service: RoleService, audit_repository: InMemoryAuditRepository
    ) -> None:
        """Test that a plain user is refused and the attempt is audited."""
        with pytest.raises(AuthorizationError):
            await role_service.create_role("u1", WORKSHOP_ID, "Editor", EDIT_TASKS)

        entry = audit_repository.entries[-1]
        assert entry.action == AuditAction.UNAUTHORIZED_ACCESS
        assert entry.actor_id == "u1"
        assert entry.details == {"attempted_action": "manage", "resource": "workshop"}

    async def test_duplicate_name_conflicts(self, role_service: RoleService) -> None:
        """Test that role names are unique within a workshop."""
        await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)

        with pytest.raises(ConflictError):
            await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor ", [])

    async def test_blank_name_rejected(self, role_service: RoleService) -> None:
        """Test that a whitespace name is rejected."""
        with pytest.raises(ValidationError):
            await role_service.create_role(OWNER_ID, WORKSHOP_ID, "   ", EDIT_TASKS)


class TestAssignRole:
    """Tests for RoleService.assign_role."""

    async def test_assignment_takes_effect_immediately(
        self, role_service: RoleService, engine: PermissionEngine
    ) -> None:
        """Test that a cached denial does not outlive a new assignment."""
        role = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)
        before = await engine.check_permission("u1", WORKSHOP_ID, "update", "task")

        await role_service.assign_role(OWNER_ID, role.id, "u1")
        after = await engine.check_permission("u1", WORKSHOP_ID, "update", "task")

        assert not before.granted
        assert after.granted
        assert after.source == Scope.WORKSHOP

    async def test_assignment_is_audited(
        self, role_service: RoleService, audit_repository: InMemoryAuditRepository
    ) -> None:
        """Test the audit entry written for an assignment."""
        role = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)

        await role_service.assign_role(OWNER_ID, role.id, "u1")

        entry = audit_repository.entries[-1]
        assert entry.action == AuditAction.ROLE_ASSIGNED
        assert entry.target_id == "u1"
        assert entry.details == {
            "role_id": role.id,
            "role_name": "Editor",
            "scope": "workshop",
            "scope_id": None,
        }

    async def test_duplicate_assignment_conflicts(self, role_service: RoleService) -> None:
        """Test that a user cannot hold the same role twice at one scope."""
        role = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)
        await role_service.assign_role(OWNER_ID, role.id, "u1")

        with pytest.raises(ConflictError):
            await role_service.assign_role(OWNER_ID, role.id, "u1")

    async def test_unknown_role(self, role_service: RoleService) -> None:
        """Test assigning a role that does not exist."""
        with pytest.raises(NotFoundError):
            await role_service.assign_role(OWNER_ID, "missing", "u1")

    async def test_team_assignment_needs_team_id(self, role_service: RoleService) -> None:
        """Test that a team-scoped binding without a team is rejected."""
        role = await role_service.create_role(
            OWNER_ID, WORKSHOP_ID, "Lead", EDIT_TASKS, scope=Scope.TEAM
        )

        with pytest.raises(ValidationError):
            await role_service.assign_role(OWNER_ID, role.id, "u1")

    async def test_team_from_other_workshop(
        self, role_service: RoleService, teams: InMemoryTeamStore
    ) -> None:
        """Test that a team outside the role's workshop is not found."""
        teams.add(Team(id="t-other", workshop_id="ws-2", name="Elsewhere"))
        role = await role_service.create_role(
            OWNER_ID, WORKSHOP_ID, "Lead", EDIT_TASKS, scope=Scope.TEAM
        )

        with pytest.raises(NotFoundError):
            await role_service.assign_role(OWNER_ID, role.id, "u1", scope_id="t-other")

    async def test_user_without_rights_cannot_assign(self, role_service: RoleService) -> None:
        """Test that assignment requires manage rights on roles."""
        role = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)

        with pytest.raises(AuthorizationError):
            await role_service.assign_role("u2", role.id, "u1")

    async def test_team_lead_assigns_within_own_team_only(
        self,
        role_service: RoleService,
        roles: InMemoryRoleStore,
        assignments: InMemoryRoleAssignmentStore,
        teams: InMemoryTeamStore,
    ) -> None:
        """Test that rights held at a team scope apply to that team only."""
        teams.add(Team(id="t1", workshop_id=WORKSHOP_ID, name="Alpha"))
        teams.add(Team(id="t2", workshop_id=WORKSHOP_ID, name="Beta"))
        await bind_role(
            roles,
            assignments,
            "lead",
            [PermissionRule("manage", "role")],
            scope=Scope.TEAM,
            scope_id="t1",
        )
        role = await role_service.create_role(
            OWNER_ID, WORKSHOP_ID, "Contributor", EDIT_TASKS, scope=Scope.TEAM
        )

        assignment = await role_service.assign_role("lead", role.id, "u1", scope_id="t1")
        assert assignment.scope_id == "t1"

        with pytest.raises(AuthorizationError):
            await role_service.assign_role("lead", role.id, "u1", scope_id="t2")


class TestRevokeRole:
    """Tests for RoleService.revoke_role."""

    async def test_revoke_takes_effect_immediately(
        self, role_service: RoleService, engine: PermissionEngine
    ) -> None:
        """Test that a cached grant does not outlive a revocation."""
        role = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)
        await role_service.assign_role(OWNER_ID, role.id, "u1")
        assert (await engine.check_permission("u1", WORKSHOP_ID, "update", "task")).granted

        removed = await role_service.revoke_role(OWNER_ID, role.id, "u1")

        assert removed == 1
        assert not (await engine.check_permission("u1", WORKSHOP_ID, "update", "task")).granted

    async def test_team_lead_revokes_within_own_team(
        self,
        role_service: RoleService,
        roles: InMemoryRoleStore,
        assignments: InMemoryRoleAssignmentStore,
        teams: InMemoryTeamStore,
    ) -> None:
        """Test that team-scoped rights cover revoking what they can assign."""
        teams.add(Team(id="t1", workshop_id=WORKSHOP_ID, name="Alpha"))
        teams.add(Team(id="t2", workshop_id=WORKSHOP_ID, name="Beta"))
        await bind_role(
            roles,
            assignments,
            "lead",
            [PermissionRule("manage", "role")],
            scope=Scope.TEAM,
            scope_id="t1",
        )
        role = await role_service.create_role(
            OWNER_ID, WORKSHOP_ID, "Contributor", EDIT_TASKS, scope=Scope.TEAM
        )
        await role_service.assign_role("lead", role.id, "u1", scope_id="t1")
        await role_service.assign_role(OWNER_ID, role.id, "u2", scope_id="t2")

        assert await role_service.revoke_role("lead", role.id, "u1") == 1
        with pytest.raises(AuthorizationError):
            await role_service.revoke_role("lead", role.id, "u2")
        assert len(await role_service.list_user_roles(WORKSHOP_ID, "u2")) == 1

    async def test_revoke_missing_assignment(self, role_service: RoleService) -> None:
        """Test revoking a role the user does not hold."""
        role = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)

        with pytest.raises(NotFoundError):
            await role_service.revoke_role(OWNER_ID, role.id, "u1")


class TestUpdateAndDeleteRole:
    """Tests for editing and deleting role definitions."""

    async def test_update_invalidates_holders(
        self, role_service: RoleService, engine: PermissionEngine
    ) -> None:
        """Test that narrowing a role is seen by its holders at once."""
        role = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)
        await role_service.assign_role(OWNER_ID, role.id, "u1")
        assert (await engine.check_permission("u1", WORKSHOP_ID, "update", "task")).granted

        await role_service.update_role(
            OWNER_ID, role.id, permissions=[PermissionRule("update", "task", Effect.DENY)]
        )

        result = await engine.check_permission("u1", WORKSHOP_ID, "update", "task")
        assert not result.granted
        assert result.reason == "explicitly denied at workshop level"

    async def test_rename_conflict(self, role_service: RoleService) -> None:
        """Test renaming onto an existing name."""
        await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)
        viewer = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Viewer", [])

        with pytest.raises(ConflictError):
            await role_service.update_role(OWNER_ID, viewer.id, name="Editor")

    async def test_delete_removes_assignments(
        self,
        role_service: RoleService,
        engine: PermissionEngine,
        assignments: InMemoryRoleAssignmentStore,
    ) -> None:
        """Test that deleting a role drops its assignments and grants."""
        role = await role_service.create_role(OWNER_ID, WORKSHOP_ID, "Editor", EDIT_TASKS)
        await role_service.assign_role(OWNER_ID, role.id, "u1")
        await role_service.assign_role(OWNER_ID, role.id, "u2")
        assert (await engine.check_permission("u1", WORKSHOP_ID, "update", "task")).granted

        removed = await role_service.delete_role(OWNER_ID, role.id)

        assert removed == 2
        assert assignments.assignments == {}
        assert await role_service.list_roles(WORKSHOP_ID) == []
        assert not (await engine.check_permission("u1", WORKSHOP_ID, "update", "task")).granted


async def test_project_assignment_uses_project_context(
    role_service: RoleService,
    engine: PermissionEngine,
    projects: InMemoryProjectStore,
) -> None:
    """Test a project-scoped binding granting inside its project only."""
    projects.add(Project(id="p1", workshop_id=WORKSHOP_ID, name="Launch"))
    role = await role_service.create_role(
        OWNER_ID, WORKSHOP_ID, "Launcher", EDIT_TASKS, scope=Scope.PROJECT, scope_id="p1"
    )

    await role_service.assign_role(OWNER_ID, role.id, "u1")

    inside = await engine.check_permission(
        "u1", WORKSHOP_ID, "update", "task", PermissionContext(project_id="p1")
    )
    outside = await engine.check_permission("u1", WORKSHOP_ID, "update", "task")
    assert inside.granted
    assert inside.source == Scope.PROJECT
    assert not outside.granted
