"""In-memory audit log for testing and embedding.

Same methods as ``AuditRepository``, including the refusal to update or
delete anything.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, NoReturn
from uuid import uuid4

import structlog

from gatekeep.adapters.audit.types import (
    ActionCount,
    AuditAction,
    AuditLogCreate,
    AuditLogEntry,
    AuditLogFilters,
    Pagination,
)
from gatekeep.core.exceptions import ImmutableAuditLogError

logger = structlog.get_logger()


def _matches(entry: AuditLogEntry, filters: AuditLogFilters) -> bool:
    if filters.action and entry.action != filters.action:
        return False
    if filters.actor_id and entry.actor_id != filters.actor_id:
        return False
    if filters.target_id and entry.target_id != filters.target_id:
        return False
    if filters.target_type and entry.target_type != filters.target_type:
        return False
    if filters.start_date and entry.timestamp < filters.start_date:
        return False
    if filters.end_date and entry.timestamp > filters.end_date:
        return False
    return True


class InMemoryAuditRepository:
    """Append-only audit log kept in a list."""

    def __init__(self) -> None:
        self.entries: list[AuditLogEntry] = []

    async def record(self, entry: AuditLogCreate) -> AuditLogEntry:
        stored = AuditLogEntry(
            id=str(uuid4()),
            timestamp=datetime.now(UTC),
            **entry.model_dump(),
        )
        self.entries.append(stored)
        return stored

    async def get(self, workshop_id: str, entry_id: str) -> AuditLogEntry | None:
        for entry in self.entries:
            if entry.workshop_id == workshop_id and entry.id == entry_id:
                return entry
        return None

    async def list(
        self,
        workshop_id: str,
        filters: AuditLogFilters | None = None,
        pagination: Pagination | None = None,
    ) -> tuple[list[AuditLogEntry], int]:
        filters = filters or AuditLogFilters()
        # Newest first; ties keep the later append first.
        matched = [
            e
            for e in reversed(self.entries)
            if e.workshop_id == workshop_id and _matches(e, filters)
        ]
        matched.sort(key=lambda e: e.timestamp, reverse=True)
        if pagination is None:
            return matched, len(matched)
        page = matched[pagination.offset : pagination.offset + pagination.limit]
        return page, len(matched)

    async def find_recent(self, workshop_id: str, limit: int = 50) -> list[AuditLogEntry]:
        entries, _ = await self.list(workshop_id)
        return entries[:limit]

    async def count_by_action(self, workshop_id: str) -> dict[AuditAction, int]:
        counts: dict[AuditAction, int] = {}
        for entry in self.entries:
            if entry.workshop_id == workshop_id:
                counts[entry.action] = counts.get(entry.action, 0) + 1
        return counts

    async def activity_summary(
        self, workshop_id: str, actor_id: str, since: datetime
    ) -> list[ActionCount]:
        counts: dict[AuditAction, int] = {}
        for entry in self.entries:
            if (
                entry.workshop_id == workshop_id
                and entry.actor_id == actor_id
                and entry.timestamp >= since
            ):
                counts[entry.action] = counts.get(entry.action, 0) + 1
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [ActionCount(action=action, count=count) for action, count in ranked]

    async def update(self, *args: Any, **kwargs: Any) -> NoReturn:
        _refuse("update")

    async def delete(self, *args: Any, **kwargs: Any) -> NoReturn:
        _refuse("delete")

    async def delete_by_workshop(self, *args: Any, **kwargs: Any) -> NoReturn:
        _refuse("delete")


def _refuse(operation: str) -> NoReturn:
    logger.warning("audit_log_mutation_refused", operation=operation)
    raise ImmutableAuditLogError(f"Audit logs are immutable and cannot be {operation}d")
