"""Audit service.

Producers call ``log`` (or one of the ``log_*`` helpers) after a mutation
succeeds. Reads come back as ``AuditLogPage`` objects. The log is
append-only: ``update`` and ``delete`` always raise.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, NoReturn, Protocol

import structlog

from gatekeep.adapters.audit.types import (
    ActionCount,
    AuditAction,
    AuditLogCreate,
    AuditLogEntry,
    AuditLogFilters,
    AuditLogPage,
    Pagination,
    TargetType,
)
from gatekeep.core.exceptions import ImmutableAuditLogError

logger = structlog.get_logger()

DEFAULT_PAGE_LIMIT_MAX = 100


class AuditLogRepository(Protocol):
    """Storage used by the audit service."""

    async def record(self, entry: AuditLogCreate) -> AuditLogEntry: ...

    async def list(
        self,
        workshop_id: str,
        filters: AuditLogFilters | None = None,
        pagination: Pagination | None = None,
    ) -> tuple[list[AuditLogEntry], int]: ...

    async def find_recent(self, workshop_id: str, limit: int = 50) -> list[AuditLogEntry]: ...

    async def count_by_action(self, workshop_id: str) -> dict[AuditAction, int]: ...

    async def activity_summary(
        self, workshop_id: str, actor_id: str, since: datetime
    ) -> list[ActionCount]: ...


class AuditService:
    """Writes and queries the workshop audit trail."""

    def __init__(
        self,
        repository: AuditLogRepository,
        page_limit_max: int = DEFAULT_PAGE_LIMIT_MAX,
    ) -> None:
        """Initialize the service.

        Args:
            repository: Audit log storage.
            page_limit_max: Largest page size a query may request.
        """
        self._repository = repository
        self.page_limit_max = page_limit_max

    async def log(
        self,
        workshop_id: str,
        action: AuditAction,
        actor_id: str,
        target_id: str | None = None,
        target_type: TargetType | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        """Append an entry to the audit log."""
        entry = await self._repository.record(
            AuditLogCreate(
                workshop_id=workshop_id,
                action=action,
                actor_id=actor_id,
                target_id=target_id,
                target_type=target_type,
                details=details or {},
            )
        )
        logger.info(
            "audit_logged",
            workshop_id=workshop_id,
            action=action.value,
            actor_id=actor_id,
            target_id=target_id,
        )
        return entry

    async def log_role_created(
        self, workshop_id: str, actor_id: str, role_id: str, role_name: str
    ) -> AuditLogEntry:
        return await self.log(
            workshop_id,
            AuditAction.ROLE_CREATED,
            actor_id,
            target_id=role_id,
            target_type=TargetType.ROLE,
            details={"role_name": role_name},
        )

    async def log_role_assigned(
        self,
        workshop_id: str,
        actor_id: str,
        user_id: str,
        role_id: str,
        role_name: str,
        scope: str,
        scope_id: str | None,
    ) -> AuditLogEntry:
        return await self.log(
            workshop_id,
            AuditAction.ROLE_ASSIGNED,
            actor_id,
            target_id=user_id,
            target_type=TargetType.USER,
            details={
                "role_id": role_id,
                "role_name": role_name,
                "scope": scope,
                "scope_id": scope_id,
            },
        )

    async def log_role_revoked(
        self, workshop_id: str, actor_id: str, user_id: str, role_id: str, role_name: str
    ) -> AuditLogEntry:
        return await self.log(
            workshop_id,
            AuditAction.ROLE_REVOKED,
            actor_id,
            target_id=user_id,
            target_type=TargetType.USER,
            details={"role_id": role_id, "role_name": role_name},
        )

    async def log_user_event(
        self,
        workshop_id: str,
        action: AuditAction,
        actor_id: str,
        user_id: str,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        """Log an event whose target is a user (membership, manager, team member)."""
        return await self.log(
            workshop_id,
            action,
            actor_id,
            target_id=user_id,
            target_type=TargetType.USER,
            details=details,
        )

    async def log_unauthorized_access(
        self, workshop_id: str, actor_id: str, action: str, resource: str
    ) -> AuditLogEntry:
        return await self.log(
            workshop_id,
            AuditAction.UNAUTHORIZED_ACCESS,
            actor_id,
            details={"attempted_action": action, "resource": resource},
        )

    async def find_by_workshop(
        self,
        workshop_id: str,
        filters: AuditLogFilters | None = None,
        pagination: Pagination | None = None,
    ) -> AuditLogPage:
        """Query a workshop's audit trail, newest first.

        Args:
            workshop_id: Workshop to query.
            filters: Optional field and date-range filters.
            pagination: Page to return. The limit is capped at
                ``page_limit_max``.

        Returns:
            The requested page with the total match count.
        """
        pagination = self._cap(pagination or Pagination())
        entries, total = await self._repository.list(workshop_id, filters, pagination)
        return AuditLogPage(
            entries=entries, total=total, page=pagination.page, limit=pagination.limit
        )

    async def find_by_actor(
        self, workshop_id: str, actor_id: str, pagination: Pagination | None = None
    ) -> AuditLogPage:
        return await self.find_by_workshop(
            workshop_id, AuditLogFilters(actor_id=actor_id), pagination
        )

    async def find_by_target(
        self,
        workshop_id: str,
        target_id: str,
        target_type: TargetType | None = None,
        pagination: Pagination | None = None,
    ) -> AuditLogPage:
        return await self.find_by_workshop(
            workshop_id,
            AuditLogFilters(target_id=target_id, target_type=target_type),
            pagination,
        )

    async def find_by_action(
        self, workshop_id: str, action: AuditAction, pagination: Pagination | None = None
    ) -> AuditLogPage:
        return await self.find_by_workshop(workshop_id, AuditLogFilters(action=action), pagination)

    async def find_by_date_range(
        self,
        workshop_id: str,
        start_date: datetime,
        end_date: datetime,
        pagination: Pagination | None = None,
    ) -> AuditLogPage:
        return await self.find_by_workshop(
            workshop_id,
            AuditLogFilters(start_date=start_date, end_date=end_date),
            pagination,
        )

    async def find_recent(self, workshop_id: str, limit: int = 50) -> list[AuditLogEntry]:
        return await self._repository.find_recent(workshop_id, min(limit, self.page_limit_max))

    async def count_by_action(self, workshop_id: str) -> dict[AuditAction, int]:
        """Aggregate entry counts per action."""
        return await self._repository.count_by_action(workshop_id)

    async def user_activity_summary(
        self,
        workshop_id: str,
        user_id: str,
        days: int = 30,
        now: datetime | None = None,
    ) -> list[ActionCount]:
        """Count a user's actions over the last ``days`` days, busiest first."""
        since = (now or datetime.now(UTC)) - timedelta(days=days)
        return await self._repository.activity_summary(workshop_id, user_id, since)

    async def update(self, *args: Any, **kwargs: Any) -> NoReturn:
        """Always raises ImmutableAuditLogError."""
        _refuse("update")

    async def delete(self, *args: Any, **kwargs: Any) -> NoReturn:
        """Always raises ImmutableAuditLogError."""
        _refuse("delete")

    async def delete_by_workshop(self, *args: Any, **kwargs: Any) -> NoReturn:
        """Always raises ImmutableAuditLogError."""
        _refuse("delete")

    def _cap(self, pagination: Pagination) -> Pagination:
        if pagination.limit <= self.page_limit_max:
            return pagination
        return pagination.model_copy(update={"limit": self.page_limit_max})


def _refuse(operation: str) -> NoReturn:
    logger.warning("audit_log_mutation_refused", operation=operation)
    raise ImmutableAuditLogError(f"Audit logs are immutable and cannot be {operation}d")
