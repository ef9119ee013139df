"""Audit log repository.

The audit log is append-only. ``record`` is the only write; every update
or delete entry point raises ``ImmutableAuditLogError`` unconditionally.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any, NoReturn

import structlog
from asyncpg import Pool

from gatekeep.adapters.audit.types import (
    ActionCount,
    AuditAction,
    AuditLogCreate,
    AuditLogEntry,
    AuditLogFilters,
    Pagination,
    TargetType,
)
from gatekeep.core.exceptions import ImmutableAuditLogError

logger = structlog.get_logger()

_COLUMNS = "id, timestamp, workshop_id, action, actor_id, target_id, target_type, details"


class AuditRepository:
    """Repository for audit log operations."""

    def __init__(self, pool: Pool) -> None:
        """Initialize the repository.

        Args:
            pool: Database connection pool.
        """
        self._pool = pool

    async def record(self, entry: AuditLogCreate) -> AuditLogEntry:
        """Record an audit log entry.

        Args:
            entry: Audit log entry to record.

        Returns:
            The stored entry with its id and timestamp.
        """
        query = f"""
            INSERT INTO audit_logs (
                workshop_id, action, actor_id, target_id, target_type, details
            ) VALUES ($1, $2, $3, $4, $5, $6::jsonb)
            RETURNING {_COLUMNS}
        """
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                query,
                entry.workshop_id,
                entry.action.value,
                entry.actor_id,
                entry.target_id,
                entry.target_type.value if entry.target_type else None,
                json.dumps(entry.details, default=str),
            )
        return self._row_to_entry(row)

    async def get(self, workshop_id: str, entry_id: str) -> AuditLogEntry | None:
        """Get a single audit log entry.

        Args:
            workshop_id: Workshop ID for access control.
            entry_id: Entry ID to fetch.

        Returns:
            Audit log entry or None if not found.
        """
        query = f"SELECT {_COLUMNS} FROM audit_logs WHERE workshop_id = $1 AND id = $2"
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query, workshop_id, entry_id)

        if not row:
            return None
        return self._row_to_entry(row)

    async def list(
        self,
        workshop_id: str,
        filters: AuditLogFilters | None = None,
        pagination: Pagination | None = None,
    ) -> tuple[list[AuditLogEntry], int]:
        """List audit log entries with filters, newest first.

        Args:
            workshop_id: Workshop to filter by.
            filters: Optional field and date-range filters.
            pagination: Page to return. All matching entries if not provided.

        Returns:
            Tuple of (entries, total_count).
        """
        filters = filters or AuditLogFilters()
        conditions = ["workshop_id = $1"]
        params: list[Any] = [workshop_id]
        param_idx = 2

        if filters.action:
            conditions.append(f"action = ${param_idx}")
            params.append(filters.action.value)
            param_idx += 1

        if filters.actor_id:
            conditions.append(f"actor_id = ${param_idx}")
            params.append(filters.actor_id)
            param_idx += 1

        if filters.target_id:
            conditions.append(f"target_id = ${param_idx}")
            params.append(filters.target_id)
            param_idx += 1

        if filters.target_type:
            conditions.append(f"target_type = ${param_idx}")
            params.append(filters.target_type.value)
            param_idx += 1

        if filters.start_date:
            conditions.append(f"timestamp >= ${param_idx}")
            params.append(filters.start_date)
            param_idx += 1

        if filters.end_date:
            conditions.append(f"timestamp <= ${param_idx}")
            params.append(filters.end_date)
            param_idx += 1

        where_clause = " AND ".join(conditions)
        count_query = f"SELECT COUNT(*) FROM audit_logs WHERE {where_clause}"
        list_query = f"SELECT {_COLUMNS} FROM audit_logs WHERE {where_clause} ORDER BY timestamp DESC"
        list_params = list(params)
        if pagination is not None:
            list_query += f" LIMIT ${param_idx} OFFSET ${param_idx + 1}"
            list_params.extend([pagination.limit, pagination.offset])

        async with self._pool.acquire() as conn:
            total = await conn.fetchval(count_query, *params)
            rows = await conn.fetch(list_query, *list_params)

        total_count: int = total or 0
        return [self._row_to_entry(row) for row in rows], total_count

    async def find_recent(self, workshop_id: str, limit: int = 50) -> list[AuditLogEntry]:
        """Get the most recent entries of a workshop."""
        query = f"""
            SELECT {_COLUMNS} FROM audit_logs
            WHERE workshop_id = $1
            ORDER BY timestamp DESC
            LIMIT $2
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, workshop_id, limit)
        return [self._row_to_entry(row) for row in rows]

    async def count_by_action(self, workshop_id: str) -> dict[AuditAction, int]:
        """Count entries per action in a workshop."""
        query = """
            SELECT action, COUNT(*) AS count FROM audit_logs
            WHERE workshop_id = $1
            GROUP BY action
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, workshop_id)
        return {AuditAction(row["action"]): row["count"] for row in rows}

    async def activity_summary(
        self, workshop_id: str, actor_id: str, since: datetime
    ) -> list[ActionCount]:
        """Count an actor's entries per action since a point in time, busiest first."""
        query = """
            SELECT action, COUNT(*) AS count FROM audit_logs
            WHERE workshop_id = $1 AND actor_id = $2 AND timestamp >= $3
            GROUP BY action
            ORDER BY count DESC
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, workshop_id, actor_id, since)
        return [ActionCount(action=AuditAction(row["action"]), count=row["count"]) for row in rows]

    async def update(self, *args: Any, **kwargs: Any) -> NoReturn:
        """Audit entries cannot be updated."""
        _refuse("update")

    async def delete(self, *args: Any, **kwargs: Any) -> NoReturn:
        """Audit entries cannot be deleted."""
        _refuse("delete")

    async def delete_by_workshop(self, *args: Any, **kwargs: Any) -> NoReturn:
        """Audit entries cannot be deleted."""
        _refuse("delete")

    def _row_to_entry(self, row: dict[str, Any]) -> AuditLogEntry:
        """Convert database row to AuditLogEntry."""
        details = row["details"]
        if isinstance(details, str):
            details = json.loads(details)
        timestamp: datetime = row["timestamp"]
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)
        return AuditLogEntry(
            id=str(row["id"]),
            timestamp=timestamp,
            workshop_id=row["workshop_id"],
            action=AuditAction(row["action"]),
            actor_id=row["actor_id"],
            target_id=row["target_id"],
            target_type=TargetType(row["target_type"]) if row["target_type"] else None,
            details=details or {},
        )


def _refuse(operation: str) -> NoReturn:
    logger.warning("audit_log_mutation_refused", operation=operation)
    raise ImmutableAuditLogError(f"Audit logs are immutable and cannot be {operation}d")
