"""Memberships repository."""

import logging
from datetime import UTC
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from gatekeep.core.rbac import Membership, MembershipSource, MembershipState

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

_COLUMNS = "workshop_id, user_id, state, source, joined_at, removed_at"


class MembershipsRepository:
    """Repository for workshop memberships."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

    async def find_by_workshop_and_user(
        self, workshop_id: str, user_id: str
    ) -> Membership | None:
        """Get a user's membership in a workshop."""
        row = await self._conn.fetchrow(
            f"SELECT {_COLUMNS} FROM memberships WHERE workshop_id = $1 AND user_id = $2",
            workshop_id,
            user_id,
        )
        if not row:
            return None
        return self._row_to_membership(row)

    async def list_by_workshop(
        self, workshop_id: str, state: MembershipState | None = None
    ) -> list[Membership]:
        """List memberships in a workshop, optionally filtered by state."""
        if state is None:
            rows = await self._conn.fetch(
                f"SELECT {_COLUMNS} FROM memberships WHERE workshop_id = $1 ORDER BY created_at",
                workshop_id,
            )
        else:
            rows = await self._conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM memberships
                WHERE workshop_id = $1 AND state = $2
                ORDER BY created_at
                """,
                workshop_id,
                state.value,
            )
        return [self._row_to_membership(row) for row in rows]

    async def upsert(
        self,
        workshop_id: str,
        user_id: str,
        state: MembershipState,
        source: MembershipSource,
    ) -> Membership:
        """Create the membership or move an existing one to a new state.

        ``(workshop_id, user_id)`` is unique, so a returning member reuses
        their previous row.
        """
        row = await self._conn.fetchrow(
            f"""
            INSERT INTO memberships (id, workshop_id, user_id, state, source, joined_at)
            VALUES ($1, $2, $3, $4, $5, CASE WHEN $4 = 'active' THEN NOW() END)
            ON CONFLICT (workshop_id, user_id) DO UPDATE SET
                state = EXCLUDED.state,
                source = EXCLUDED.source,
                joined_at = CASE WHEN EXCLUDED.state = 'active' THEN NOW()
                                 ELSE memberships.joined_at END,
                removed_at = NULL,
                updated_at = NOW()
            RETURNING {_COLUMNS}
            """,
            str(uuid4()),
            workshop_id,
            user_id,
            state.value,
            source.value,
        )
        return self._row_to_membership(row)

    async def set_state(
        self, workshop_id: str, user_id: str, state: MembershipState
    ) -> Membership | None:
        """Move a membership to a new state."""
        row = await self._conn.fetchrow(
            f"""
            UPDATE memberships SET
                state = $3,
                joined_at = CASE WHEN $3 = 'active' THEN NOW() ELSE joined_at END,
                removed_at = CASE WHEN $3 = 'removed' THEN NOW() ELSE NULL END,
                updated_at = NOW()
            WHERE workshop_id = $1 AND user_id = $2
            RETURNING {_COLUMNS}
            """,
            workshop_id,
            user_id,
            state.value,
        )
        if not row:
            return None
        return self._row_to_membership(row)

    def _row_to_membership(self, row: dict[str, Any]) -> Membership:
        """Convert database row to Membership."""
        joined_at = row["joined_at"]
        removed_at = row["removed_at"]
        return Membership(
            workshop_id=row["workshop_id"],
            user_id=row["user_id"],
            state=MembershipState(row["state"]),
            source=MembershipSource(row["source"]),
            joined_at=joined_at.replace(tzinfo=UTC) if joined_at else None,
            removed_at=removed_at.replace(tzinfo=UTC) if removed_at else None,
        )
