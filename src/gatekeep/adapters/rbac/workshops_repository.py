"""Workshops repository."""

import logging
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from gatekeep.core.rbac import Visibility, Workshop

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)


class WorkshopsRepository:
    """Repository for workshops and their managers."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

    async def create(
        self,
        name: str,
        owner_id: str,
        visibility: Visibility = Visibility.PRIVATE,
    ) -> Workshop:
        """Create a new workshop."""
        row = await self._conn.fetchrow(
            """
            INSERT INTO workshops (id, name, owner_id, visibility)
            VALUES ($1, $2, $3, $4)
            RETURNING id, name, owner_id, visibility
            """,
            str(uuid4()),
            name,
            owner_id,
            visibility.value,
        )
        return self._row_to_workshop(row, manager_ids=[])

    async def find_by_id(self, workshop_id: str) -> Workshop | None:
        """Get workshop by ID, with its managers."""
        row = await self._conn.fetchrow(
            """
            SELECT w.id, w.name, w.owner_id, w.visibility,
                   COALESCE(
                       ARRAY_AGG(wm.user_id ORDER BY wm.added_at)
                           FILTER (WHERE wm.user_id IS NOT NULL),
                       '{}'
                   ) AS manager_ids
            FROM workshops w
            LEFT JOIN workshop_managers wm ON wm.workshop_id = w.id
            WHERE w.id = $1
            GROUP BY w.id
            """,
            workshop_id,
        )
        if not row:
            return None
        return self._row_to_workshop(row, manager_ids=list(row["manager_ids"]))

    async def is_owner_or_manager(self, workshop_id: str, user_id: str) -> bool:
        """Check whether the user owns or manages the workshop."""
        result = await self._conn.fetchval(
            """
            SELECT EXISTS (
                SELECT 1 FROM workshops WHERE id = $1 AND owner_id = $2
                UNION ALL
                SELECT 1 FROM workshop_managers WHERE workshop_id = $1 AND user_id = $2
            )
            """,
            workshop_id,
            user_id,
        )
        is_privileged: bool = result or False
        return is_privileged

    async def set_visibility(self, workshop_id: str, visibility: Visibility) -> bool:
        """Change workshop visibility."""
        result: str = await self._conn.execute(
            "UPDATE workshops SET visibility = $2, updated_at = NOW() WHERE id = $1",
            workshop_id,
            visibility.value,
        )
        return result == "UPDATE 1"

    async def add_manager(self, workshop_id: str, user_id: str) -> bool:
        """Promote a user to workshop manager."""
        result: str = await self._conn.execute(
            """
            INSERT INTO workshop_managers (workshop_id, user_id)
            VALUES ($1, $2)
            ON CONFLICT (workshop_id, user_id) DO NOTHING
            """,
            workshop_id,
            user_id,
        )
        return result == "INSERT 0 1"

    async def remove_manager(self, workshop_id: str, user_id: str) -> bool:
        """Demote a workshop manager."""
        result: str = await self._conn.execute(
            "DELETE FROM workshop_managers WHERE workshop_id = $1 AND user_id = $2",
            workshop_id,
            user_id,
        )
        return result == "DELETE 1"

    def _row_to_workshop(self, row: dict[str, Any], manager_ids: list[str]) -> Workshop:
        """Convert database row to Workshop."""
        return Workshop(
            id=row["id"],
            name=row["name"],
            owner_id=row["owner_id"],
            manager_ids=manager_ids,
            visibility=Visibility(row["visibility"]),
        )
