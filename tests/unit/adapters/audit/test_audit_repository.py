"""Tests for audit repository."""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from gatekeep.adapters.audit import (
    AuditAction,
    AuditLogCreate,
    AuditLogFilters,
    AuditRepository,
    Pagination,
    TargetType,
)
from gatekeep.core.exceptions import ImmutableAuditLogError


def _entry_row(**overrides: Any) -> dict[str, Any]:
    row = {
        "id": "e1",
        "timestamp": datetime(2024, 1, 1, 12, 0),
        "workshop_id": "ws-1",
        "action": "role_assigned",
        "actor_id": "owner-1",
        "target_id": "u1",
        "target_type": "User",
        "details": '{"role_id": "r1"}',
    }
    row.update(overrides)
    return row


class TestAuditRepository:
    """Tests for AuditRepository."""

    @pytest.fixture
    def mock_conn(self) -> AsyncMock:
        """Create a mock connection."""
        return AsyncMock()

    @pytest.fixture
    def mock_pool(self, mock_conn: AsyncMock) -> MagicMock:
        """Create a mock database pool handing out ``mock_conn``."""
        pool = MagicMock()
        pool.acquire = MagicMock(return_value=AsyncMock())
        pool.acquire.return_value.__aenter__ = AsyncMock(return_value=mock_conn)
        pool.acquire.return_value.__aexit__ = AsyncMock(return_value=None)
        return pool

    @pytest.fixture
    def repository(self, mock_pool: MagicMock) -> AuditRepository:
        """Create repository with mock pool."""
        return AuditRepository(pool=mock_pool)

    async def test_record_creates_entry(
        self, repository: AuditRepository, mock_conn: AsyncMock
    ) -> None:
        """Test recording an audit log entry."""
        mock_conn.fetchrow = AsyncMock(return_value=_entry_row())

        entry = await repository.record(
            AuditLogCreate(
                workshop_id="ws-1",
                action=AuditAction.ROLE_ASSIGNED,
                actor_id="owner-1",
                target_id="u1",
                target_type=TargetType.USER,
                details={"role_id": "r1"},
            )
        )

        assert entry.id == "e1"
        assert entry.action == AuditAction.ROLE_ASSIGNED
        assert entry.details == {"role_id": "r1"}
        assert entry.timestamp.tzinfo == UTC
        args = mock_conn.fetchrow.call_args.args
        assert args[2] == "role_assigned"
        assert args[5] == "User"

    async def test_get_returns_none_when_not_found(
        self, repository: AuditRepository, mock_conn: AsyncMock
    ) -> None:
        """Test getting a non-existent audit log entry returns None."""
        mock_conn.fetchrow = AsyncMock(return_value=None)

        assert await repository.get("ws-1", "missing") is None

    async def test_list_returns_entries(
        self, repository: AuditRepository, mock_conn: AsyncMock
    ) -> None:
        """Test listing audit log entries."""
        mock_conn.fetch = AsyncMock(return_value=[_entry_row()])
        mock_conn.fetchval = AsyncMock(return_value=1)

        entries, total = await repository.list("ws-1")

        assert total == 1
        assert entries[0].target_type == TargetType.USER

    async def test_list_builds_filters(
        self, repository: AuditRepository, mock_conn: AsyncMock
    ) -> None:
        """Test that filters and pagination become numbered parameters."""
        mock_conn.fetch = AsyncMock(return_value=[])
        mock_conn.fetchval = AsyncMock(return_value=0)
        start = datetime(2024, 1, 1, tzinfo=UTC)

        await repository.list(
            "ws-1",
            AuditLogFilters(action=AuditAction.ROLE_REVOKED, actor_id="u1", start_date=start),
            Pagination(page=3, limit=10),
        )

        count_query, *count_params = mock_conn.fetchval.call_args.args
        list_query, *list_params = mock_conn.fetch.call_args.args
        assert "action = $2" in count_query
        assert "actor_id = $3" in count_query
        assert "timestamp >= $4" in count_query
        assert count_params == ["ws-1", "role_revoked", "u1", start]
        assert "LIMIT $5 OFFSET $6" in list_query
        assert list_params == ["ws-1", "role_revoked", "u1", start, 10, 20]

    async def test_count_by_action(
        self, repository: AuditRepository, mock_conn: AsyncMock
    ) -> None:
        """Test aggregating counts per action."""
        mock_conn.fetch = AsyncMock(
            return_value=[
                {"action": "member_joined", "count": 4},
                {"action": "role_created", "count": 1},
            ]
        )

        counts = await repository.count_by_action("ws-1")

        assert counts == {AuditAction.MEMBER_JOINED: 4, AuditAction.ROLE_CREATED: 1}

    @pytest.mark.parametrize("method", ["update", "delete", "delete_by_workshop"])
    async def test_mutations_always_raise(
        self, repository: AuditRepository, mock_conn: AsyncMock, method: str
    ) -> None:
        """Test that the log refuses every update and delete."""
        with pytest.raises(ImmutableAuditLogError):
            await getattr(repository, method)("ws-1", "e1")

        mock_conn.execute.assert_not_called()
