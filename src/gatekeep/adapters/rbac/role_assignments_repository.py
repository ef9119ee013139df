"""Role assignments repository.

Every read returns assignments with their role hydrated through a LEFT
JOIN. An assignment whose role row is gone comes back with ``role=None``.
"""

import logging
from datetime import UTC
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from gatekeep.adapters.rbac.roles_repository import row_to_role
from gatekeep.core.rbac import RoleAssignment, Scope

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

_SELECT_HYDRATED = """
    SELECT ra.id, ra.workshop_id, ra.role_id, ra.user_id, ra.scope, ra.scope_id,
           ra.assigned_by, ra.created_at,
           r.workshop_id AS role_workshop_id, r.name AS role_name,
           r.description AS role_description, r.scope AS role_scope,
           r.scope_id AS role_scope_id, r.permissions AS role_permissions,
           r.is_default AS role_is_default, r.created_at AS role_created_at,
           r.updated_at AS role_updated_at
    FROM role_assignments ra
    LEFT JOIN roles r ON r.id = ra.role_id
"""


class RoleAssignmentsRepository:
    """Repository for role assignment operations."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

    async def create(
        self,
        workshop_id: str,
        role_id: str,
        user_id: str,
        scope: Scope,
        assigned_by: str,
        scope_id: str | None = None,
    ) -> RoleAssignment:
        """Bind a role to a user at a scope instance."""
        assignment_id = str(uuid4())
        await self._conn.execute(
            """
            INSERT INTO role_assignments
                (id, workshop_id, role_id, user_id, scope, scope_id, assigned_by)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            """,
            assignment_id,
            workshop_id,
            role_id,
            user_id,
            scope.value,
            scope_id,
            assigned_by,
        )
        assignment = await self.get_by_id(assignment_id)
        if assignment is None:
            raise RuntimeError(f"Role assignment {assignment_id} vanished after insert")
        return assignment

    async def get_by_id(self, assignment_id: str) -> RoleAssignment | None:
        """Get an assignment by ID."""
        row = await self._conn.fetchrow(f"{_SELECT_HYDRATED} WHERE ra.id = $1", assignment_id)
        if not row:
            return None
        return self._row_to_assignment(row)

    async def find_by_user_and_scope(
        self,
        workshop_id: str,
        user_id: str,
        scope: Scope,
        scope_id: str | None = None,
    ) -> list[RoleAssignment]:
        """Get a user's assignments at exactly one scope instance."""
        rows = await self._conn.fetch(
            f"""
            {_SELECT_HYDRATED}
            WHERE ra.workshop_id = $1 AND ra.user_id = $2 AND ra.scope = $3
              AND ra.scope_id IS NOT DISTINCT FROM $4
            ORDER BY ra.created_at DESC
            """,
            workshop_id,
            user_id,
            scope.value,
            scope_id,
        )
        return [self._row_to_assignment(row) for row in rows]

    async def find_by_user(self, workshop_id: str, user_id: str) -> list[RoleAssignment]:
        """Get every assignment a user holds in a workshop."""
        rows = await self._conn.fetch(
            f"""
            {_SELECT_HYDRATED}
            WHERE ra.workshop_id = $1 AND ra.user_id = $2
            ORDER BY ra.created_at DESC
            """,
            workshop_id,
            user_id,
        )
        return [self._row_to_assignment(row) for row in rows]

    async def find_by_role(self, role_id: str) -> list[RoleAssignment]:
        """Get every assignment of a role."""
        rows = await self._conn.fetch(
            f"{_SELECT_HYDRATED} WHERE ra.role_id = $1 ORDER BY ra.created_at DESC",
            role_id,
        )
        return [self._row_to_assignment(row) for row in rows]

    async def exists(
        self,
        workshop_id: str,
        role_id: str,
        user_id: str,
        scope: Scope,
        scope_id: str | None = None,
    ) -> bool:
        """Check whether the exact assignment already exists."""
        result = await self._conn.fetchval(
            """
            SELECT EXISTS (
                SELECT 1 FROM role_assignments
                WHERE workshop_id = $1 AND role_id = $2 AND user_id = $3
                  AND scope = $4 AND scope_id IS NOT DISTINCT FROM $5
            )
            """,
            workshop_id,
            role_id,
            user_id,
            scope.value,
            scope_id,
        )
        found: bool = result or False
        return found

    async def delete(self, assignment_id: str) -> bool:
        """Delete a single assignment."""
        result: str = await self._conn.execute(
            "DELETE FROM role_assignments WHERE id = $1",
            assignment_id,
        )
        return result == "DELETE 1"

    async def delete_by_user_and_role(self, workshop_id: str, user_id: str, role_id: str) -> int:
        """Revoke a role from a user at every scope instance."""
        result: str = await self._conn.execute(
            """
            DELETE FROM role_assignments
            WHERE workshop_id = $1 AND user_id = $2 AND role_id = $3
            """,
            workshop_id,
            user_id,
            role_id,
        )
        return _deleted_count(result)

    async def delete_by_user(self, workshop_id: str, user_id: str) -> int:
        """Delete every assignment a user holds in a workshop."""
        result: str = await self._conn.execute(
            "DELETE FROM role_assignments WHERE workshop_id = $1 AND user_id = $2",
            workshop_id,
            user_id,
        )
        return _deleted_count(result)

    async def delete_by_role(self, role_id: str) -> int:
        """Delete every assignment of a role."""
        result: str = await self._conn.execute(
            "DELETE FROM role_assignments WHERE role_id = $1",
            role_id,
        )
        return _deleted_count(result)

    async def delete_by_scope(self, workshop_id: str, scope: Scope, scope_id: str) -> int:
        """Delete every assignment bound to a scope instance (a removed team or project)."""
        result: str = await self._conn.execute(
            """
            DELETE FROM role_assignments
            WHERE workshop_id = $1 AND scope = $2 AND scope_id = $3
            """,
            workshop_id,
            scope.value,
            scope_id,
        )
        return _deleted_count(result)

    def _row_to_assignment(self, row: dict[str, Any]) -> RoleAssignment:
        """Convert database row to a hydrated RoleAssignment."""
        role = None
        # ra.role_id doubles as the joined role's id; role_name is NULL once the role is gone.
        if row["role_name"] is not None:
            role = row_to_role(row, prefix="role_")
        created_at = row["created_at"]
        return RoleAssignment(
            id=row["id"],
            workshop_id=row["workshop_id"],
            role_id=row["role_id"],
            user_id=row["user_id"],
            scope=Scope(row["scope"]),
            scope_id=row["scope_id"],
            assigned_by=row["assigned_by"],
            created_at=created_at.replace(tzinfo=UTC) if created_at else None,
            role=role,
        )


def _deleted_count(status: str) -> int:
    # Status is like "DELETE 3"
    return int(status.split()[-1])
