"""Organization service.

Membership lifecycle, workshop managers, team membership, project managers
and maintainers. Each mutation feeds a permission shortcut or the RBAC
cascade, so each one invalidates the affected cache region and writes the
matching audit entry.
"""

from __future__ import annotations

import structlog

from gatekeep.adapters.audit.types import AuditAction, TargetType
from gatekeep.core.exceptions import NotFoundError, ValidationError
from gatekeep.core.interfaces import (
    MembershipRepository,
    ProjectRepository,
    RoleAssignmentRepository,
    TeamRepository,
    WorkshopRepository,
)
from gatekeep.core.rbac import (
    Membership,
    MembershipSource,
    MembershipState,
    PermissionContext,
    PermissionEngine,
    Project,
    Scope,
    Team,
    Visibility,
)
from gatekeep.services.audit import AuditService
from gatekeep.services.authorization import Authorizer

logger = structlog.get_logger()


class OrganizationService:
    """Service for the org structure the permission engine reads."""

    def __init__(
        self,
        engine: PermissionEngine,
        authorizer: Authorizer,
        workshops: WorkshopRepository,
        memberships: MembershipRepository,
        teams: TeamRepository,
        projects: ProjectRepository,
        assignments: RoleAssignmentRepository,
        audit: AuditService,
    ) -> None:
        self._engine = engine
        self._authorizer = authorizer
        self._workshops = workshops
        self._memberships = memberships
        self._teams = teams
        self._projects = projects
        self._assignments = assignments
        self._audit = audit

    # Workshop settings

    async def set_visibility(
        self, actor_id: str, workshop_id: str, visibility: Visibility
    ) -> None:
        """Change workshop visibility. Affects base access for everyone."""
        await self._authorizer.require_owner_or_manager(actor_id, workshop_id)
        if not await self._workshops.set_visibility(workshop_id, visibility):
            raise NotFoundError("Workshop")

        self._engine.invalidate_tenant_cache(workshop_id)
        await self._audit.log(
            workshop_id,
            AuditAction.WORKSHOP_UPDATED,
            actor_id,
            target_id=workshop_id,
            target_type=TargetType.WORKSHOP,
            details={"changes": {"visibility": visibility.value}},
        )

    async def assign_manager(self, actor_id: str, workshop_id: str, user_id: str) -> None:
        """Promote an active member to workshop manager. Owner only.

        Raises:
            AuthorizationError: If the actor is not the owner.
            ValidationError: If the owner promotes themself or the user
                is not an active member.
        """
        await self._authorizer.require_owner(actor_id, workshop_id)
        if actor_id == user_id:
            raise ValidationError("Cannot assign self as manager")
        membership = await self._memberships.find_by_workshop_and_user(workshop_id, user_id)
        if membership is None or not membership.is_active:
            raise ValidationError("Only active members can become managers")

        await self._workshops.add_manager(workshop_id, user_id)
        self._engine.invalidate_user_cache(user_id, workshop_id)
        await self._audit.log_user_event(
            workshop_id, AuditAction.MANAGER_ASSIGNED, actor_id, user_id
        )

    async def remove_manager(self, actor_id: str, workshop_id: str, user_id: str) -> None:
        """Demote a workshop manager. Owner only."""
        await self._authorizer.require_owner(actor_id, workshop_id)
        if not await self._workshops.remove_manager(workshop_id, user_id):
            raise NotFoundError("Manager")

        self._engine.invalidate_user_cache(user_id, workshop_id)
        await self._audit.log_user_event(
            workshop_id, AuditAction.MANAGER_REMOVED, actor_id, user_id
        )

    # Membership lifecycle

    async def join_workshop(self, workshop_id: str, user_id: str) -> Membership:
        """Join a workshop.

        Public workshops admit the user immediately. Private workshops
        record a pending join request, unless the user was invited, in
        which case the invitation is accepted.
        """
        workshop = await self._workshops.find_by_id(workshop_id)
        if workshop is None:
            raise NotFoundError("Workshop")

        existing = await self._memberships.find_by_workshop_and_user(workshop_id, user_id)
        if existing is not None and existing.is_active:
            return existing

        invited = (
            existing is not None
            and existing.state == MembershipState.PENDING
            and existing.source == MembershipSource.INVITATION
        )
        if workshop.visibility == Visibility.PUBLIC:
            state, source = MembershipState.ACTIVE, MembershipSource.OPEN_ACCESS
        elif invited:
            state, source = MembershipState.ACTIVE, MembershipSource.INVITATION
        else:
            state, source = MembershipState.PENDING, MembershipSource.JOIN_REQUEST

        membership = await self._memberships.upsert(workshop_id, user_id, state, source)
        if membership.is_active:
            self._engine.invalidate_user_cache(user_id, workshop_id)
            await self._audit.log_user_event(
                workshop_id,
                AuditAction.MEMBER_JOINED,
                user_id,
                user_id,
                details={"source": source.value},
            )
        logger.info(
            "membership_changed",
            workshop_id=workshop_id,
            user_id=user_id,
            state=membership.state.value,
        )
        return membership

    async def invite_member(self, actor_id: str, workshop_id: str, user_id: str) -> Membership:
        """Record a pending invitation for a user."""
        await self._authorizer.require_owner_or_manager(actor_id, workshop_id)
        existing = await self._memberships.find_by_workshop_and_user(workshop_id, user_id)
        if existing is not None and existing.is_active:
            raise ValidationError("User is already a member")

        membership = await self._memberships.upsert(
            workshop_id, user_id, MembershipState.PENDING, MembershipSource.INVITATION
        )
        await self._audit.log_user_event(
            workshop_id, AuditAction.MEMBER_INVITED, actor_id, user_id
        )
        return membership

    async def approve_join_request(
        self, actor_id: str, workshop_id: str, user_id: str
    ) -> Membership:
        """Activate a pending membership."""
        await self._authorizer.require_owner_or_manager(actor_id, workshop_id)
        await self._require_pending(workshop_id, user_id)

        membership = await self._set_state(workshop_id, user_id, MembershipState.ACTIVE)
        self._engine.invalidate_user_cache(user_id, workshop_id)
        await self._audit.log_user_event(
            workshop_id, AuditAction.JOIN_REQUEST_APPROVED, actor_id, user_id
        )
        return membership

    async def reject_join_request(
        self, actor_id: str, workshop_id: str, user_id: str, reason: str | None = None
    ) -> Membership:
        """Close a pending membership without admitting the user."""
        await self._authorizer.require_owner_or_manager(actor_id, workshop_id)
        await self._require_pending(workshop_id, user_id)

        membership = await self._set_state(workshop_id, user_id, MembershipState.REMOVED)
        await self._audit.log_user_event(
            workshop_id,
            AuditAction.JOIN_REQUEST_REJECTED,
            actor_id,
            user_id,
            details={"reason": reason},
        )
        return membership

    async def remove_member(
        self, actor_id: str, workshop_id: str, user_id: str, reason: str | None = None
    ) -> Membership:
        """Remove an active member with every seat and role assignment they hold.

        Raises:
            ValidationError: If the target is the workshop owner.
            NotFoundError: If the user is not an active member.
        """
        await self._authorizer.require_owner_or_manager(actor_id, workshop_id)
        workshop = await self._workshops.find_by_id(workshop_id)
        if workshop is not None and workshop.owner_id == user_id:
            raise ValidationError("The workshop owner cannot be removed")

        membership = await self._end_membership(workshop_id, user_id)
        await self._audit.log_user_event(
            workshop_id,
            AuditAction.MEMBER_REMOVED,
            actor_id,
            user_id,
            details={"reason": reason},
        )
        return membership

    async def leave_workshop(self, workshop_id: str, user_id: str) -> Membership:
        """Leave a workshop voluntarily."""
        workshop = await self._workshops.find_by_id(workshop_id)
        if workshop is not None and workshop.owner_id == user_id:
            raise ValidationError("The workshop owner cannot leave")

        membership = await self._end_membership(workshop_id, user_id)
        await self._audit.log_user_event(workshop_id, AuditAction.MEMBER_LEFT, user_id, user_id)
        return membership

    # Teams

    async def add_team_member(self, actor_id: str, team_id: str, user_id: str) -> None:
        """Add a user to a team."""
        team = await self._get_team(team_id)
        await self._authorizer.authorize(
            actor_id, team.workshop_id, "manage", "team", PermissionContext(team_id=team_id)
        )
        if not await self._teams.add_member(team_id, user_id):
            raise ValidationError("User is already on this team")

        self._engine.invalidate_user_cache(user_id, team.workshop_id)
        await self._audit.log_user_event(
            team.workshop_id,
            AuditAction.TEAM_MEMBER_ADDED,
            actor_id,
            user_id,
            details={"team_id": team_id},
        )

    async def remove_team_member(self, actor_id: str, team_id: str, user_id: str) -> None:
        """Remove a user from a team."""
        team = await self._get_team(team_id)
        await self._authorizer.authorize(
            actor_id, team.workshop_id, "manage", "team", PermissionContext(team_id=team_id)
        )
        if not await self._teams.remove_member(team_id, user_id):
            raise NotFoundError("Team member")

        self._engine.invalidate_user_cache(user_id, team.workshop_id)
        await self._audit.log_user_event(
            team.workshop_id,
            AuditAction.TEAM_MEMBER_REMOVED,
            actor_id,
            user_id,
            details={"team_id": team_id},
        )

    async def delete_team(self, actor_id: str, team_id: str) -> None:
        """Delete a team together with the role assignments bound to it."""
        team = await self._get_team(team_id)
        await self._authorizer.require_owner_or_manager(actor_id, team.workshop_id)

        removed = await self._assignments.delete_by_scope(team.workshop_id, Scope.TEAM, team_id)
        await self._teams.delete(team_id)
        self._engine.invalidate_tenant_cache(team.workshop_id)
        await self._audit.log(
            team.workshop_id,
            AuditAction.TEAM_DELETED,
            actor_id,
            target_id=team_id,
            target_type=TargetType.TEAM,
            details={"team_name": team.name, "removed_assignments": removed},
        )

    # Projects

    async def set_project_manager(
        self, actor_id: str, project_id: str, user_id: str | None
    ) -> None:
        """Set or clear a project's manager."""
        project = await self._get_project(project_id)
        await self._authorizer.require_owner_or_manager(actor_id, project.workshop_id)

        previous = project.project_manager_id
        await self._projects.set_project_manager(project_id, user_id)
        for affected in {previous, user_id} - {None}:
            self._engine.invalidate_user_cache(affected, project.workshop_id)

        await self._audit.log(
            project.workshop_id,
            AuditAction.PROJECT_MANAGER_ASSIGNED,
            actor_id,
            target_id=project_id,
            target_type=TargetType.PROJECT,
            details={"manager_id": user_id, "previous_manager_id": previous},
        )

    async def add_project_maintainer(self, actor_id: str, project_id: str, user_id: str) -> None:
        """Grant a user maintainer rights on a project."""
        project = await self._get_project(project_id)
        await self._authorizer.authorize(
            actor_id,
            project.workshop_id,
            "manage",
            "project",
            PermissionContext(project_id=project_id),
        )
        if not await self._projects.add_maintainer(project_id, user_id):
            raise ValidationError("User is already a maintainer of this project")

        self._engine.invalidate_user_cache(user_id, project.workshop_id)
        await self._audit.log(
            project.workshop_id,
            AuditAction.PROJECT_MAINTAINER_ASSIGNED,
            actor_id,
            target_id=project_id,
            target_type=TargetType.PROJECT,
            details={"maintainer_id": user_id},
        )

    async def delete_project(self, actor_id: str, project_id: str) -> None:
        """Delete a project together with the role assignments bound to it."""
        project = await self._get_project(project_id)
        await self._authorizer.require_owner_or_manager(actor_id, project.workshop_id)

        removed = await self._assignments.delete_by_scope(
            project.workshop_id, Scope.PROJECT, project_id
        )
        await self._projects.delete(project_id)
        self._engine.invalidate_tenant_cache(project.workshop_id)
        await self._audit.log(
            project.workshop_id,
            AuditAction.PROJECT_DELETED,
            actor_id,
            target_id=project_id,
            target_type=TargetType.PROJECT,
            details={"project_name": project.name, "removed_assignments": removed},
        )

    async def remove_project_maintainer(
        self, actor_id: str, project_id: str, user_id: str
    ) -> None:
        """Take maintainer rights on a project away from a user."""
        project = await self._get_project(project_id)
        await self._authorizer.authorize(
            actor_id,
            project.workshop_id,
            "manage",
            "project",
            PermissionContext(project_id=project_id),
        )
        if not await self._projects.remove_maintainer(project_id, user_id):
            raise NotFoundError("Project maintainer")

        self._engine.invalidate_user_cache(user_id, project.workshop_id)
        await self._audit.log(
            project.workshop_id,
            AuditAction.PROJECT_UPDATED,
            actor_id,
            target_id=project_id,
            target_type=TargetType.PROJECT,
            details={"changes": {"removed_maintainer_id": user_id}},
        )

    # Helpers

    async def _end_membership(self, workshop_id: str, user_id: str) -> Membership:
        existing = await self._memberships.find_by_workshop_and_user(workshop_id, user_id)
        if existing is None or not existing.is_active:
            raise NotFoundError("Active membership")

        membership = await self._set_state(workshop_id, user_id, MembershipState.REMOVED)
        for team in await self._teams.find_teams_by_member(workshop_id, user_id):
            await self._teams.remove_member(team.id, user_id)
        for project in await self._projects.list_by_workshop(workshop_id):
            if project.project_manager_id == user_id:
                await self._projects.set_project_manager(project.id, None)
            if user_id in project.maintainer_ids:
                await self._projects.remove_maintainer(project.id, user_id)
        await self._workshops.remove_manager(workshop_id, user_id)
        revoked = await self._assignments.delete_by_user(workshop_id, user_id)

        self._engine.invalidate_user_cache(user_id, workshop_id)
        logger.info(
            "membership_ended",
            workshop_id=workshop_id,
            user_id=user_id,
            revoked_assignments=revoked,
        )
        return membership

    async def _require_pending(self, workshop_id: str, user_id: str) -> None:
        existing = await self._memberships.find_by_workshop_and_user(workshop_id, user_id)
        if existing is None:
            raise NotFoundError("Membership")
        if existing.state != MembershipState.PENDING:
            raise ValidationError("Membership is not pending")

    async def _set_state(
        self, workshop_id: str, user_id: str, state: MembershipState
    ) -> Membership:
        membership = await self._memberships.set_state(workshop_id, user_id, state)
        if membership is None:
            raise NotFoundError("Membership")
        return membership

    async def _get_team(self, team_id: str) -> Team:
        team = await self._teams.get_by_id(team_id)
        if team is None:
            raise NotFoundError("Team")
        return team

    async def _get_project(self, project_id: str) -> Project:
        project = await self._projects.find_by_id(project_id)
        if project is None:
            raise NotFoundError("Project")
        return project
