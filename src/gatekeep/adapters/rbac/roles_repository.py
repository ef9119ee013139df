"""Roles repository."""

import json
import logging
from datetime import UTC
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from gatekeep.core.rbac import Effect, PermissionRule, Role, Scope

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, workshop_id, name, description, scope, scope_id, permissions, "
    "is_default, created_at, updated_at"
)


def encode_permissions(permissions: list[PermissionRule]) -> str:
    """Serialize permission rules for the JSONB ``permissions`` column."""
    return json.dumps(
        [
            {"action": p.action, "resource": p.resource, "effect": p.effect.value}
            for p in permissions
        ]
    )


def decode_permissions(raw: Any) -> list[PermissionRule]:
    """Parse the ``permissions`` column into rules.

    asyncpg returns JSONB as text unless a codec is registered, so both
    text and already-decoded lists are accepted.
    """
    if raw is None:
        return []
    items = json.loads(raw) if isinstance(raw, str) else raw
    return [
        PermissionRule(
            action=item["action"],
            resource=item["resource"],
            effect=Effect(item.get("effect", Effect.GRANT.value)),
        )
        for item in items
    ]


def row_to_role(row: dict[str, Any], prefix: str = "") -> Role:
    """Convert a database row to Role.

    Args:
        row: Row holding the role columns.
        prefix: Column name prefix, used when the role is joined into
            another query.
    """
    created_at = row[f"{prefix}created_at"]
    updated_at = row[f"{prefix}updated_at"]
    return Role(
        id=row[f"{prefix}id"],
        workshop_id=row[f"{prefix}workshop_id"],
        name=row[f"{prefix}name"],
        description=row[f"{prefix}description"],
        scope=Scope(row[f"{prefix}scope"]),
        scope_id=row[f"{prefix}scope_id"],
        permissions=decode_permissions(row[f"{prefix}permissions"]),
        is_default=row[f"{prefix}is_default"],
        created_at=created_at.replace(tzinfo=UTC) if created_at else None,
        updated_at=updated_at.replace(tzinfo=UTC) if updated_at else None,
    )


class RolesRepository:
    """Repository for role definitions."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

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
        """Create a new role."""
        row = await self._conn.fetchrow(
            f"""
            INSERT INTO roles
                (id, workshop_id, name, description, scope, scope_id, permissions, is_default)
            VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb, $8)
            RETURNING {_COLUMNS}
            """,
            str(uuid4()),
            workshop_id,
            name,
            description,
            scope.value,
            scope_id,
            encode_permissions(permissions),
            is_default,
        )
        return row_to_role(row)

    async def get_by_id(self, role_id: str) -> Role | None:
        """Get role by ID."""
        row = await self._conn.fetchrow(
            f"SELECT {_COLUMNS} FROM roles WHERE id = $1",
            role_id,
        )
        if not row:
            return None
        return row_to_role(row)

    async def get_by_name(self, workshop_id: str, name: str) -> Role | None:
        """Get role by its workshop-unique name."""
        row = await self._conn.fetchrow(
            f"SELECT {_COLUMNS} FROM roles WHERE workshop_id = $1 AND name = $2",
            workshop_id,
            name,
        )
        if not row:
            return None
        return row_to_role(row)

    async def list_by_workshop(self, workshop_id: str) -> list[Role]:
        """List all roles in a workshop."""
        rows = await self._conn.fetch(
            f"SELECT {_COLUMNS} FROM roles WHERE workshop_id = $1 ORDER BY name",
            workshop_id,
        )
        return [row_to_role(row) for row in rows]

    async def exists(self, workshop_id: str, name: str) -> bool:
        """Check whether a role name is taken in the workshop."""
        result = await self._conn.fetchval(
            "SELECT EXISTS (SELECT 1 FROM roles WHERE workshop_id = $1 AND name = $2)",
            workshop_id,
            name,
        )
        taken: bool = result or False
        return taken

    async def update(
        self,
        role_id: str,
        name: str | None = None,
        description: str | None = None,
        permissions: list[PermissionRule] | None = None,
    ) -> Role | None:
        """Update role fields. Fields left as None keep their value."""
        row = await self._conn.fetchrow(
            f"""
            UPDATE roles SET
                name = COALESCE($2, name),
                description = COALESCE($3, description),
                permissions = COALESCE($4::jsonb, permissions),
                updated_at = NOW()
            WHERE id = $1
            RETURNING {_COLUMNS}
            """,
            role_id,
            name,
            description,
            encode_permissions(permissions) if permissions is not None else None,
        )
        if not row:
            return None
        return row_to_role(row)

    async def delete(self, role_id: str) -> bool:
        """Delete a role."""
        result: str = await self._conn.execute(
            "DELETE FROM roles WHERE id = $1",
            role_id,
        )
        return result == "DELETE 1"
