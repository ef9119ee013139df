"""In-memory stores for testing and embedding.

These stores implement the same methods as the asyncpg repositories, so
the permission engine and the services run against them unchanged.
They are useful for:
- Unit testing without a database
- Single-process deployments that keep authorization data in memory

Insertion order is preserved wherever the asyncpg repositories would
order by creation time.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from uuid import uuid4

from gatekeep.core.rbac.types import (
    Membership,
    MembershipSource,
    MembershipState,
    PermissionRule,
    Project,
    Role,
    RoleAssignment,
    Scope,
    Team,
    Visibility,
    Workshop,
)


def _new_id() -> str:
    return str(uuid4())


class InMemoryWorkshopStore:
    """Workshops and their managers."""

    def __init__(self) -> None:
        self.workshops: dict[str, Workshop] = {}

    def add(self, workshop: Workshop) -> Workshop:
        """Insert or replace a workshop."""
        self.workshops[workshop.id] = workshop
        return workshop

    async def create(
        self, name: str, owner_id: str, visibility: Visibility = Visibility.PRIVATE
    ) -> Workshop:
        return self.add(Workshop(id=_new_id(), name=name, owner_id=owner_id, visibility=visibility))

    async def find_by_id(self, workshop_id: str) -> Workshop | None:
        return self.workshops.get(workshop_id)

    async def is_owner_or_manager(self, workshop_id: str, user_id: str) -> bool:
        workshop = self.workshops.get(workshop_id)
        return workshop is not None and workshop.is_owner_or_manager(user_id)

    async def set_visibility(self, workshop_id: str, visibility: Visibility) -> bool:
        workshop = self.workshops.get(workshop_id)
        if workshop is None:
            return False
        workshop.visibility = visibility
        return True

    async def add_manager(self, workshop_id: str, user_id: str) -> bool:
        workshop = self.workshops.get(workshop_id)
        if workshop is None or user_id in workshop.manager_ids:
            return False
        workshop.manager_ids.append(user_id)
        return True

    async def remove_manager(self, workshop_id: str, user_id: str) -> bool:
        workshop = self.workshops.get(workshop_id)
        if workshop is None or user_id not in workshop.manager_ids:
            return False
        workshop.manager_ids.remove(user_id)
        return True


class InMemoryProjectStore:
    """Projects with managers and maintainers."""

    def __init__(self) -> None:
        self.projects: dict[str, Project] = {}

    def add(self, project: Project) -> Project:
        """Insert or replace a project."""
        self.projects[project.id] = project
        return project

    async def find_by_id(self, project_id: str) -> Project | None:
        return self.projects.get(project_id)

    async def list_by_workshop(self, workshop_id: str) -> list[Project]:
        return sorted(
            (p for p in self.projects.values() if p.workshop_id == workshop_id),
            key=lambda p: p.name,
        )

    async def delete(self, project_id: str) -> bool:
        return self.projects.pop(project_id, None) is not None

    async def set_project_manager(self, project_id: str, user_id: str | None) -> bool:
        project = self.projects.get(project_id)
        if project is None:
            return False
        project.project_manager_id = user_id
        return True

    async def add_maintainer(self, project_id: str, user_id: str) -> bool:
        project = self.projects.get(project_id)
        if project is None or user_id in project.maintainer_ids:
            return False
        project.maintainer_ids.append(user_id)
        return True

    async def remove_maintainer(self, project_id: str, user_id: str) -> bool:
        project = self.projects.get(project_id)
        if project is None or user_id not in project.maintainer_ids:
            return False
        project.maintainer_ids.remove(user_id)
        return True


class InMemoryTeamStore:
    """Teams and their members."""

    def __init__(self) -> None:
        self.teams: dict[str, Team] = {}

    def add(self, team: Team) -> Team:
        """Insert or replace a team."""
        self.teams[team.id] = team
        return team

    async def create(self, workshop_id: str, name: str) -> Team:
        return self.add(Team(id=_new_id(), workshop_id=workshop_id, name=name))

    async def get_by_id(self, team_id: str) -> Team | None:
        return self.teams.get(team_id)

    async def list_by_workshop(self, workshop_id: str) -> list[Team]:
        return sorted(
            (t for t in self.teams.values() if t.workshop_id == workshop_id),
            key=lambda t: t.name,
        )

    async def delete(self, team_id: str) -> bool:
        return self.teams.pop(team_id, None) is not None

    async def add_member(self, team_id: str, user_id: str) -> bool:
        team = self.teams.get(team_id)
        if team is None or user_id in team.member_ids:
            return False
        team.member_ids.append(user_id)
        return True

    async def remove_member(self, team_id: str, user_id: str) -> bool:
        team = self.teams.get(team_id)
        if team is None or user_id not in team.member_ids:
            return False
        team.member_ids.remove(user_id)
        return True

    async def find_teams_by_member(self, workshop_id: str, user_id: str) -> list[Team]:
        return [
            t for t in self.teams.values() if t.workshop_id == workshop_id and user_id in t.member_ids
        ]


class InMemoryMembershipStore:
    """Workshop memberships, unique per ``(workshop_id, user_id)``."""

    def __init__(self) -> None:
        self.memberships: dict[tuple[str, str], Membership] = {}

    def add(self, membership: Membership) -> Membership:
        """Insert or replace a membership."""
        self.memberships[(membership.workshop_id, membership.user_id)] = membership
        return membership

    async def find_by_workshop_and_user(
        self, workshop_id: str, user_id: str
    ) -> Membership | None:
        return self.memberships.get((workshop_id, user_id))

    async def list_by_workshop(
        self, workshop_id: str, state: MembershipState | None = None
    ) -> list[Membership]:
        return [
            m
            for (ws, _), m in self.memberships.items()
            if ws == workshop_id and (state is None or m.state == state)
        ]

    async def upsert(
        self,
        workshop_id: str,
        user_id: str,
        state: MembershipState,
        source: MembershipSource,
    ) -> Membership:
        previous = self.memberships.get((workshop_id, user_id))
        joined_at = datetime.now(UTC) if state == MembershipState.ACTIVE else None
        if joined_at is None and previous is not None:
            joined_at = previous.joined_at
        return self.add(
            Membership(
                workshop_id=workshop_id,
                user_id=user_id,
                state=state,
                source=source,
                joined_at=joined_at,
            )
        )

    async def set_state(
        self, workshop_id: str, user_id: str, state: MembershipState
    ) -> Membership | None:
        membership = self.memberships.get((workshop_id, user_id))
        if membership is None:
            return None
        now = datetime.now(UTC)
        membership.state = state
        if state == MembershipState.ACTIVE:
            membership.joined_at = now
        membership.removed_at = now if state == MembershipState.REMOVED else None
        return membership


class InMemoryRoleStore:
    """Role definitions, unique by name within a workshop."""

    def __init__(self) -> None:
        self.roles: dict[str, Role] = {}

    def add(self, role: Role) -> Role:
        """Insert or replace a role."""
        self.roles[role.id] = role
        return role

    async def create(
        self,
        workshop_id: str,
        name: str,
        permissions: list[PermissionRule],
        scope: Scope = Scope.WORKSHOP,
        description: str | None = None,
        scope_id: str | None = None,
        is_default: bool = False,
    ) -> Role:
        now = datetime.now(UTC)
        return self.add(
            Role(
                id=_new_id(),
                workshop_id=workshop_id,
                name=name,
                scope=scope,
                permissions=list(permissions),
                description=description,
                scope_id=scope_id,
                is_default=is_default,
                created_at=now,
                updated_at=now,
            )
        )

    async def get_by_id(self, role_id: str) -> Role | None:
        return self.roles.get(role_id)

    async def get_by_name(self, workshop_id: str, name: str) -> Role | None:
        for role in self.roles.values():
            if role.workshop_id == workshop_id and role.name == name:
                return role
        return None

    async def list_by_workshop(self, workshop_id: str) -> list[Role]:
        return sorted(
            (r for r in self.roles.values() if r.workshop_id == workshop_id),
            key=lambda r: r.name,
        )

    async def exists(self, workshop_id: str, name: str) -> bool:
        return await self.get_by_name(workshop_id, name) is not None

    async def update(
        self,
        role_id: str,
        name: str | None = None,
        description: str | None = None,
        permissions: list[PermissionRule] | None = None,
    ) -> Role | None:
        role = self.roles.get(role_id)
        if role is None:
            return None
        updated = replace(
            role,
            name=name if name is not None else role.name,
            description=description if description is not None else role.description,
            permissions=list(permissions) if permissions is not None else role.permissions,
            updated_at=datetime.now(UTC),
        )
        return self.add(updated)

    async def delete(self, role_id: str) -> bool:
        return self.roles.pop(role_id, None) is not None


class InMemoryRoleAssignmentStore:
    """Role assignments, hydrated from an ``InMemoryRoleStore`` on read."""

    def __init__(self, roles: InMemoryRoleStore) -> None:
        self._roles = roles
        self.assignments: dict[str, RoleAssignment] = {}

    def _hydrate(self, assignment: RoleAssignment) -> RoleAssignment:
        return replace(assignment, role=self._roles.roles.get(assignment.role_id))

    def _select(self, **criteria: object) -> list[RoleAssignment]:
        # Newest first, like the asyncpg repository.
        return [
            self._hydrate(a)
            for a in reversed(self.assignments.values())
            if all(getattr(a, name) == value for name, value in criteria.items())
        ]

    async def create(
        self,
        workshop_id: str,
        role_id: str,
        user_id: str,
        scope: Scope,
        assigned_by: str,
        scope_id: str | None = None,
    ) -> RoleAssignment:
        assignment = RoleAssignment(
            id=_new_id(),
            workshop_id=workshop_id,
            role_id=role_id,
            user_id=user_id,
            scope=scope,
            scope_id=scope_id,
            assigned_by=assigned_by,
            created_at=datetime.now(UTC),
        )
        self.assignments[assignment.id] = assignment
        return self._hydrate(assignment)

    async def get_by_id(self, assignment_id: str) -> RoleAssignment | None:
        assignment = self.assignments.get(assignment_id)
        return self._hydrate(assignment) if assignment else None

    async def find_by_user_and_scope(
        self,
        workshop_id: str,
        user_id: str,
        scope: Scope,
        scope_id: str | None = None,
    ) -> list[RoleAssignment]:
        return self._select(
            workshop_id=workshop_id, user_id=user_id, scope=scope, scope_id=scope_id
        )

    async def find_by_user(self, workshop_id: str, user_id: str) -> list[RoleAssignment]:
        return self._select(workshop_id=workshop_id, user_id=user_id)

    async def find_by_role(self, role_id: str) -> list[RoleAssignment]:
        return self._select(role_id=role_id)

    async def exists(
        self,
        workshop_id: str,
        role_id: str,
        user_id: str,
        scope: Scope,
        scope_id: str | None = None,
    ) -> bool:
        return bool(
            self._select(
                workshop_id=workshop_id,
                role_id=role_id,
                user_id=user_id,
                scope=scope,
                scope_id=scope_id,
            )
        )

    def _delete_where(self, **criteria: object) -> int:
        doomed = [a.id for a in self._select(**criteria)]
        for assignment_id in doomed:
            del self.assignments[assignment_id]
        return len(doomed)

    async def delete(self, assignment_id: str) -> bool:
        return self.assignments.pop(assignment_id, None) is not None

    async def delete_by_user_and_role(self, workshop_id: str, user_id: str, role_id: str) -> int:
        return self._delete_where(workshop_id=workshop_id, user_id=user_id, role_id=role_id)

    async def delete_by_user(self, workshop_id: str, user_id: str) -> int:
        return self._delete_where(workshop_id=workshop_id, user_id=user_id)

    async def delete_by_role(self, role_id: str) -> int:
        return self._delete_where(role_id=role_id)

    async def delete_by_scope(self, workshop_id: str, scope: Scope, scope_id: str) -> int:
        return self._delete_where(workshop_id=workshop_id, scope=scope, scope_id=scope_id)
