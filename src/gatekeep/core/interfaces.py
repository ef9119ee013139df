"""Protocol definitions for the stores.

The engine only depends on the read protocols, never on concrete
repositories. The services additionally need the write-side protocols
further down. Both the asyncpg repositories and the in-memory stores in
``gatekeep.adapters.rbac`` implement them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
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


@runtime_checkable
class WorkshopStore(Protocol):
    """Read access to workshops (tenants)."""

    async def find_by_id(self, workshop_id: str) -> Workshop | None:
        """Return the workshop, or None if it does not exist."""
        ...

    async def is_owner_or_manager(self, workshop_id: str, user_id: str) -> bool:
        """Check whether the user owns or manages the workshop."""
        ...


@runtime_checkable
class ProjectStore(Protocol):
    """Read access to projects."""

    async def find_by_id(self, project_id: str) -> Project | None:
        """Return the project with its manager and maintainers."""
        ...


@runtime_checkable
class MembershipStore(Protocol):
    """Read access to workshop memberships."""

    async def find_by_workshop_and_user(
        self, workshop_id: str, user_id: str
    ) -> Membership | None:
        """Return the user's membership in the workshop, if any."""
        ...


@runtime_checkable
class TeamStore(Protocol):
    """Read access to team membership."""

    async def find_teams_by_member(self, workshop_id: str, user_id: str) -> list[Team]:
        """Return the workshop teams the user belongs to."""
        ...


@runtime_checkable
class RoleAssignmentStore(Protocol):
    """Read access to role assignments.

    Implementations return assignments with ``role`` hydrated, so callers
    never join assignments to roles themselves.
    """

    async def find_by_user_and_scope(
        self,
        workshop_id: str,
        user_id: str,
        scope: Scope,
        scope_id: str | None = None,
    ) -> list[RoleAssignment]:
        """Return the user's assignments at exactly this scope instance.

        When ``scope_id`` is None only assignments without a scope id match.
        """
        ...


@runtime_checkable
class WorkshopRepository(WorkshopStore, Protocol):
    """Workshop reads plus the org-structure writes the services perform."""

    async def set_visibility(self, workshop_id: str, visibility: Visibility) -> bool: ...

    async def add_manager(self, workshop_id: str, user_id: str) -> bool: ...

    async def remove_manager(self, workshop_id: str, user_id: str) -> bool: ...


@runtime_checkable
class ProjectRepository(ProjectStore, Protocol):
    """Project reads plus deletion and manager and maintainer changes."""

    async def list_by_workshop(self, workshop_id: str) -> list[Project]: ...

    async def delete(self, project_id: str) -> bool: ...

    async def set_project_manager(self, project_id: str, user_id: str | None) -> bool: ...

    async def add_maintainer(self, project_id: str, user_id: str) -> bool: ...

    async def remove_maintainer(self, project_id: str, user_id: str) -> bool: ...


@runtime_checkable
class TeamRepository(TeamStore, Protocol):
    """Team reads plus membership changes."""

    async def get_by_id(self, team_id: str) -> Team | None: ...

    async def delete(self, team_id: str) -> bool: ...

    async def add_member(self, team_id: str, user_id: str) -> bool: ...

    async def remove_member(self, team_id: str, user_id: str) -> bool: ...


@runtime_checkable
class MembershipRepository(MembershipStore, Protocol):
    """Membership reads plus state transitions."""

    async def upsert(
        self,
        workshop_id: str,
        user_id: str,
        state: MembershipState,
        source: MembershipSource,
    ) -> Membership: ...

    async def set_state(
        self, workshop_id: str, user_id: str, state: MembershipState
    ) -> Membership | None: ...


@runtime_checkable
class RoleRepository(Protocol):
    """Role definitions."""

    async def create(
        self,
        workshop_id: str,
        name: str,
        permissions: list[PermissionRule],
        scope: Scope = ...,
        description: str | None = None,
        scope_id: str | None = None,
        is_default: bool = False,
    ) -> Role: ...

    async def get_by_id(self, role_id: str) -> Role | None: ...

    async def list_by_workshop(self, workshop_id: str) -> list[Role]: ...

    async def exists(self, workshop_id: str, name: str) -> bool: ...

    async def update(
        self,
        role_id: str,
        name: str | None = None,
        description: str | None = None,
        permissions: list[PermissionRule] | None = None,
    ) -> Role | None: ...

    async def delete(self, role_id: str) -> bool: ...


@runtime_checkable
class RoleAssignmentRepository(RoleAssignmentStore, Protocol):
    """Role assignment reads plus binding and revocation."""

    async def create(
        self,
        workshop_id: str,
        role_id: str,
        user_id: str,
        scope: Scope,
        assigned_by: str,
        scope_id: str | None = None,
    ) -> RoleAssignment: ...

    async def find_by_user(self, workshop_id: str, user_id: str) -> list[RoleAssignment]: ...

    async def find_by_role(self, role_id: str) -> list[RoleAssignment]: ...

    async def exists(
        self,
        workshop_id: str,
        role_id: str,
        user_id: str,
        scope: Scope,
        scope_id: str | None = None,
    ) -> bool: ...

    async def delete_by_user_and_role(self, workshop_id: str, user_id: str, role_id: str) -> int: ...

    async def delete_by_user(self, workshop_id: str, user_id: str) -> int: ...

    async def delete_by_role(self, role_id: str) -> int: ...

    async def delete_by_scope(self, workshop_id: str, scope: Scope, scope_id: str) -> int: ...
