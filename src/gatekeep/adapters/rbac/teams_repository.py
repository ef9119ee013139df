"""Teams repository."""

import logging
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from gatekeep.core.rbac import Team

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

_TEAM_COLUMNS = """
    t.id, t.workshop_id, t.name,
    COALESCE(
        (SELECT ARRAY_AGG(m.user_id ORDER BY m.added_at)
         FROM team_members m WHERE m.team_id = t.id),
        '{}'
    ) AS member_ids
"""


class TeamsRepository:
    """Repository for team operations."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

    async def create(self, workshop_id: str, name: str) -> Team:
        """Create a new team."""
        row = await self._conn.fetchrow(
            """
            INSERT INTO teams (id, workshop_id, name)
            VALUES ($1, $2, $3)
            RETURNING id, workshop_id, name
            """,
            str(uuid4()),
            workshop_id,
            name,
        )
        return Team(id=row["id"], workshop_id=row["workshop_id"], name=row["name"])

    async def get_by_id(self, team_id: str) -> Team | None:
        """Get team by ID."""
        row = await self._conn.fetchrow(
            f"SELECT {_TEAM_COLUMNS} FROM teams t WHERE t.id = $1",
            team_id,
        )
        if not row:
            return None
        return self._row_to_team(row)

    async def list_by_workshop(self, workshop_id: str) -> list[Team]:
        """List all teams in a workshop."""
        rows = await self._conn.fetch(
            f"SELECT {_TEAM_COLUMNS} FROM teams t WHERE t.workshop_id = $1 ORDER BY t.name",
            workshop_id,
        )
        return [self._row_to_team(row) for row in rows]

    async def delete(self, team_id: str) -> bool:
        """Delete a team."""
        result: str = await self._conn.execute(
            "DELETE FROM teams WHERE id = $1",
            team_id,
        )
        return result == "DELETE 1"

    async def add_member(self, team_id: str, user_id: str) -> bool:
        """Add a user to a team."""
        result: str = await self._conn.execute(
            """
            INSERT INTO team_members (team_id, user_id)
            VALUES ($1, $2)
            ON CONFLICT (team_id, user_id) DO NOTHING
            """,
            team_id,
            user_id,
        )
        return result == "INSERT 0 1"

    async def remove_member(self, team_id: str, user_id: str) -> bool:
        """Remove a user from a team."""
        result: str = await self._conn.execute(
            "DELETE FROM team_members WHERE team_id = $1 AND user_id = $2",
            team_id,
            user_id,
        )
        return result == "DELETE 1"

    async def find_teams_by_member(self, workshop_id: str, user_id: str) -> list[Team]:
        """Get the workshop teams a user belongs to."""
        rows = await self._conn.fetch(
            f"""
            SELECT {_TEAM_COLUMNS}
            FROM teams t
            JOIN team_members tm ON t.id = tm.team_id
            WHERE t.workshop_id = $1 AND tm.user_id = $2
            ORDER BY t.id
            """,
            workshop_id,
            user_id,
        )
        return [self._row_to_team(row) for row in rows]

    def _row_to_team(self, row: dict[str, Any]) -> Team:
        """Convert database row to Team."""
        return Team(
            id=row["id"],
            workshop_id=row["workshop_id"],
            name=row["name"],
            member_ids=list(row["member_ids"]),
        )
