"""Role management service.

Creates, edits and deletes role definitions and binds them to users.
Every change that can alter a permission decision invalidates the
affected cache entries before returning.
"""

from __future__ import annotations

import structlog

from gatekeep.adapters.audit.types import AuditAction, TargetType
from gatekeep.core.exceptions import ConflictError, NotFoundError, ValidationError
from gatekeep.core.interfaces import (
    ProjectRepository,
    RoleAssignmentRepository,
    RoleRepository,
    TeamRepository,
)
from gatekeep.core.rbac import (
    PermissionContext,
    PermissionEngine,
    PermissionRule,
    Role,
    RoleAssignment,
    Scope,
)
from gatekeep.services.audit import AuditService
from gatekeep.services.authorization import Authorizer

logger = structlog.get_logger()

# Assigning or revoking roles needs this right on the "role" resource.
ASSIGN_ACTION = "manage"
ROLE_RESOURCE = "role"

_SCOPES_WITH_ID = frozenset({Scope.TEAM, Scope.PROJECT})


class RoleService:
    """Service for role definitions and role assignments."""

    def __init__(
        self,
        engine: PermissionEngine,
        authorizer: Authorizer,
        roles: RoleRepository,
        assignments: RoleAssignmentRepository,
        teams: TeamRepository,
        projects: ProjectRepository,
        audit: AuditService,
    ) -> None:
        self._engine = engine
        self._authorizer = authorizer
        self._roles = roles
        self._assignments = assignments
        self._teams = teams
        self._projects = projects
        self._audit = audit

    async def create_role(
        self,
        actor_id: str,
        workshop_id: str,
        name: str,
        permissions: list[PermissionRule],
        description: str | None = None,
        scope: Scope = Scope.WORKSHOP,
        scope_id: str | None = None,
    ) -> Role:
        """Create a role in a workshop.

        Only the workshop owner or a manager may define roles.

        Raises:
            AuthorizationError: If the actor is not owner or manager.
            ValidationError: If the name is blank.
            ConflictError: If the name is already used in the workshop.
        """
        await self._authorizer.require_owner_or_manager(actor_id, workshop_id)

        name = name.strip()
        if not name:
            raise ValidationError("Role name is required")
        if await self._roles.exists(workshop_id, name):
            raise ConflictError(f"Role '{name}' already exists in this workshop")

        role = await self._roles.create(
            workshop_id,
            name,
            permissions,
            scope=scope,
            description=description,
            scope_id=scope_id,
        )
        logger.info("role_created", workshop_id=workshop_id, role_id=role.id, name=name)
        await self._audit.log_role_created(workshop_id, actor_id, role.id, role.name)
        return role

    async def update_role(
        self,
        actor_id: str,
        role_id: str,
        name: str | None = None,
        description: str | None = None,
        permissions: list[PermissionRule] | None = None,
    ) -> Role:
        """Update a role and invalidate everyone who holds it.

        Raises:
            NotFoundError: If the role does not exist.
            AuthorizationError: If the actor is not owner or manager.
            ConflictError: If renaming onto a name already in use.
        """
        role = await self._get_role(role_id)
        await self._authorizer.require_owner_or_manager(actor_id, role.workshop_id)

        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError("Role name is required")
            if name != role.name and await self._roles.exists(role.workshop_id, name):
                raise ConflictError(f"Role '{name}' already exists in this workshop")

        updated = await self._roles.update(
            role_id, name=name, description=description, permissions=permissions
        )
        if updated is None:
            raise NotFoundError("Role")

        await self._invalidate_holders(role)

        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if permissions is not None:
            changes["permissions"] = len(permissions)
        await self._audit.log(
            role.workshop_id,
            AuditAction.ROLE_UPDATED,
            actor_id,
            target_id=role_id,
            target_type=TargetType.ROLE,
            details={"changes": changes},
        )
        return updated

    async def delete_role(self, actor_id: str, role_id: str) -> int:
        """Delete a role and every assignment of it.

        Returns:
            Number of assignments removed along with the role.
        """
        role = await self._get_role(role_id)
        await self._authorizer.require_owner_or_manager(actor_id, role.workshop_id)

        holders = await self._assignments.find_by_role(role_id)
        removed = await self._assignments.delete_by_role(role_id)
        await self._roles.delete(role_id)
        for user_id in {a.user_id for a in holders}:
            self._engine.invalidate_user_cache(user_id, role.workshop_id)

        logger.info("role_deleted", role_id=role_id, removed_assignments=removed)
        await self._audit.log(
            role.workshop_id,
            AuditAction.ROLE_DELETED,
            actor_id,
            target_id=role_id,
            target_type=TargetType.ROLE,
            details={"role_name": role.name, "removed_assignments": removed},
        )
        return removed

    async def assign_role(
        self,
        actor_id: str,
        role_id: str,
        user_id: str,
        scope: Scope | None = None,
        scope_id: str | None = None,
    ) -> RoleAssignment:
        """Bind a role to a user.

        The scope defaults to the role's own scope. Team and project
        bindings need a scope id, taken from the role when it pins one.

        Raises:
            NotFoundError: If the role or the scope target does not exist.
            ValidationError: If a team/project binding has no scope id.
            AuthorizationError: If the actor may not manage roles there.
            ConflictError: If the user already holds the role there.
        """
        role = await self._get_role(role_id)
        workshop_id = role.workshop_id
        scope = scope or role.scope

        if scope in _SCOPES_WITH_ID:
            scope_id = scope_id or role.scope_id
            if not scope_id:
                raise ValidationError(f"A {scope.value} id is required for this assignment")
            await self._check_scope_target(workshop_id, scope, scope_id)
        else:
            scope_id = None

        await self._authorizer.authorize(
            actor_id, workshop_id, ASSIGN_ACTION, ROLE_RESOURCE, _context_for(scope, scope_id)
        )

        if await self._assignments.exists(workshop_id, role_id, user_id, scope, scope_id):
            raise ConflictError("User already has this role at this scope")

        assignment = await self._assignments.create(
            workshop_id, role_id, user_id, scope, actor_id, scope_id=scope_id
        )
        self._engine.invalidate_user_cache(user_id, workshop_id)
        await self._audit.log_role_assigned(
            workshop_id, actor_id, user_id, role_id, role.name, scope.value, scope_id
        )
        return assignment

    async def revoke_role(self, actor_id: str, role_id: str, user_id: str) -> int:
        """Remove a role from a user at every scope.

        The actor needs manage rights on roles at each scope the user
        holds the role, the same check ``assign_role`` makes.

        Returns:
            Number of assignments removed.

        Raises:
            NotFoundError: If the role does not exist or the user does not hold it.
            AuthorizationError: If the actor may not manage roles at one of the scopes.
        """
        role = await self._get_role(role_id)
        workshop_id = role.workshop_id
        held = [
            a
            for a in await self._assignments.find_by_user(workshop_id, user_id)
            if a.role_id == role_id
        ]
        if not held:
            await self._authorizer.authorize(actor_id, workshop_id, ASSIGN_ACTION, ROLE_RESOURCE)
            raise NotFoundError("Role assignment")

        scopes = sorted({(a.scope.value, a.scope_id or "") for a in held})
        for scope, scope_id in scopes:
            await self._authorizer.authorize(
                actor_id,
                workshop_id,
                ASSIGN_ACTION,
                ROLE_RESOURCE,
                _context_for(Scope(scope), scope_id or None),
            )

        removed = await self._assignments.delete_by_user_and_role(workshop_id, user_id, role_id)

        self._engine.invalidate_user_cache(user_id, workshop_id)
        await self._audit.log_role_revoked(workshop_id, actor_id, user_id, role_id, role.name)
        return removed

    async def list_roles(self, workshop_id: str) -> list[Role]:
        return await self._roles.list_by_workshop(workshop_id)

    async def list_user_roles(self, workshop_id: str, user_id: str) -> list[RoleAssignment]:
        """List a user's assignments in a workshop, newest first."""
        return await self._assignments.find_by_user(workshop_id, user_id)

    async def _get_role(self, role_id: str) -> Role:
        role = await self._roles.get_by_id(role_id)
        if role is None:
            raise NotFoundError("Role")
        return role

    async def _check_scope_target(self, workshop_id: str, scope: Scope, scope_id: str) -> None:
        if scope == Scope.TEAM:
            team = await self._teams.get_by_id(scope_id)
            if team is None or team.workshop_id != workshop_id:
                raise NotFoundError("Team")
        elif scope == Scope.PROJECT:
            project = await self._projects.find_by_id(scope_id)
            if project is None or project.workshop_id != workshop_id:
                raise NotFoundError("Project")

    async def _invalidate_holders(self, role: Role) -> None:
        for assignment in await self._assignments.find_by_role(role.id):
            self._engine.invalidate_user_cache(assignment.user_id, role.workshop_id)


def _context_for(scope: Scope, scope_id: str | None) -> PermissionContext | None:
    if scope == Scope.TEAM:
        return PermissionContext(team_id=scope_id)
    if scope == Scope.PROJECT:
        return PermissionContext(project_id=scope_id)
    return None
