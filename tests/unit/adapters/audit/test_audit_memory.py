"""Tests for the in-memory audit log."""

import pytest

from gatekeep.adapters.audit import (
    AuditAction,
    AuditLogCreate,
    AuditLogFilters,
    InMemoryAuditRepository,
    Pagination,
)
from gatekeep.core.exceptions import ImmutableAuditLogError


def _create(action: AuditAction, actor: str = "u1", workshop: str = "ws-1") -> AuditLogCreate:
    return AuditLogCreate(workshop_id=workshop, action=action, actor_id=actor)


class TestInMemoryAuditRepository:
    """Tests for InMemoryAuditRepository."""

    async def test_list_newest_first_with_pages(self) -> None:
        """Lists newest first and reports the full total."""
        repo = InMemoryAuditRepository()
        for action in (AuditAction.MEMBER_JOINED, AuditAction.ROLE_ASSIGNED, AuditAction.MEMBER_LEFT):
            await repo.record(_create(action))
        await repo.record(_create(AuditAction.MEMBER_JOINED, workshop="ws-2"))

        entries, total = await repo.list("ws-1", pagination=Pagination(page=1, limit=2))

        assert total == 3
        assert [e.action for e in entries] == [AuditAction.MEMBER_LEFT, AuditAction.ROLE_ASSIGNED]

    async def test_filters(self) -> None:
        """Applies actor and action filters together."""
        repo = InMemoryAuditRepository()
        await repo.record(_create(AuditAction.MEMBER_JOINED, actor="u1"))
        await repo.record(_create(AuditAction.MEMBER_JOINED, actor="u2"))
        await repo.record(_create(AuditAction.MEMBER_LEFT, actor="u1"))

        entries, total = await repo.list(
            "ws-1", AuditLogFilters(actor_id="u1", action=AuditAction.MEMBER_JOINED)
        )

        assert total == 1
        assert entries[0].actor_id == "u1"

    async def test_entries_are_never_removed(self) -> None:
        """Deletes raise and leave the log intact."""
        repo = InMemoryAuditRepository()
        entry = await repo.record(_create(AuditAction.ROLE_CREATED))

        with pytest.raises(ImmutableAuditLogError):
            await repo.delete("ws-1", entry.id)
        with pytest.raises(ImmutableAuditLogError):
            await repo.update("ws-1", entry.id, details={})

        assert await repo.get("ws-1", entry.id) == entry
