"""Projects repository."""

import logging
from typing import TYPE_CHECKING, Any

from gatekeep.core.rbac import Project

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

_SELECT_PROJECT = """
    SELECT p.id, p.workshop_id, p.name, p.project_manager_id,
           COALESCE(
               ARRAY_AGG(pm.user_id ORDER BY pm.added_at)
                   FILTER (WHERE pm.user_id IS NOT NULL),
               '{}'
           ) AS maintainer_ids
    FROM projects p
    LEFT JOIN project_maintainers pm ON pm.project_id = p.id
"""


class ProjectsRepository:
    """Repository for project managers and maintainers."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

    async def find_by_id(self, project_id: str) -> Project | None:
        """Get project by ID, with manager and maintainers."""
        row = await self._conn.fetchrow(
            f"{_SELECT_PROJECT} WHERE p.id = $1 GROUP BY p.id",
            project_id,
        )
        if not row:
            return None
        return self._row_to_project(row)

    async def list_by_workshop(self, workshop_id: str) -> list[Project]:
        """List projects in a workshop."""
        rows = await self._conn.fetch(
            f"{_SELECT_PROJECT} WHERE p.workshop_id = $1 GROUP BY p.id ORDER BY p.name",
            workshop_id,
        )
        return [self._row_to_project(row) for row in rows]

    async def delete(self, project_id: str) -> bool:
        """Delete a project."""
        result: str = await self._conn.execute(
            "DELETE FROM projects WHERE id = $1",
            project_id,
        )
        return result == "DELETE 1"

    async def set_project_manager(self, project_id: str, user_id: str | None) -> bool:
        """Set or clear the project manager."""
        result: str = await self._conn.execute(
            "UPDATE projects SET project_manager_id = $2, updated_at = NOW() WHERE id = $1",
            project_id,
            user_id,
        )
        return result == "UPDATE 1"

    async def add_maintainer(self, project_id: str, user_id: str) -> bool:
        """Add a maintainer to a project."""
        result: str = await self._conn.execute(
            """
            INSERT INTO project_maintainers (project_id, user_id)
            VALUES ($1, $2)
            ON CONFLICT (project_id, user_id) DO NOTHING
            """,
            project_id,
            user_id,
        )
        return result == "INSERT 0 1"

    async def remove_maintainer(self, project_id: str, user_id: str) -> bool:
        """Remove a maintainer from a project."""
        result: str = await self._conn.execute(
            "DELETE FROM project_maintainers WHERE project_id = $1 AND user_id = $2",
            project_id,
            user_id,
        )
        return result == "DELETE 1"

    def _row_to_project(self, row: dict[str, Any]) -> Project:
        """Convert database row to Project."""
        return Project(
            id=row["id"],
            workshop_id=row["workshop_id"],
            name=row["name"],
            project_manager_id=row["project_manager_id"],
            maintainer_ids=list(row["maintainer_ids"]),
        )
