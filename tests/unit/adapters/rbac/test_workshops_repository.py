"""Tests for workshops repository."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from gatekeep.adapters.rbac import WorkshopsRepository
from gatekeep.core.rbac import Visibility


@pytest.fixture
def mock_conn() -> MagicMock:
    """Create mock database connection."""
    return MagicMock()


@pytest.fixture
def repository(mock_conn: MagicMock) -> WorkshopsRepository:
    """Create repository with mock connection."""
    return WorkshopsRepository(mock_conn)


class TestFindById:
    """Tests for find_by_id method."""

    async def test_returns_workshop_with_managers(
        self, repository: WorkshopsRepository, mock_conn: MagicMock
    ) -> None:
        """Maps the aggregated manager ids."""
        mock_conn.fetchrow = AsyncMock(
            return_value={
                "id": "ws-1",
                "name": "Workshop",
                "owner_id": "owner-1",
                "visibility": "public",
                "manager_ids": ["m1", "m2"],
            }
        )

        workshop = await repository.find_by_id("ws-1")

        assert workshop is not None
        assert workshop.visibility == Visibility.PUBLIC
        assert workshop.manager_ids == ["m1", "m2"]
        assert workshop.is_owner_or_manager("m2")

    async def test_returns_none_when_not_found(
        self, repository: WorkshopsRepository, mock_conn: MagicMock
    ) -> None:
        """Returns None when workshop not found."""
        mock_conn.fetchrow = AsyncMock(return_value=None)

        assert await repository.find_by_id("missing") is None


class TestIsOwnerOrManager:
    """Tests for is_owner_or_manager method."""

    async def test_true(self, repository: WorkshopsRepository, mock_conn: MagicMock) -> None:
        """Returns True for a privileged user."""
        mock_conn.fetchval = AsyncMock(return_value=True)

        assert await repository.is_owner_or_manager("ws-1", "owner-1") is True

    async def test_false(self, repository: WorkshopsRepository, mock_conn: MagicMock) -> None:
        """Returns False otherwise."""
        mock_conn.fetchval = AsyncMock(return_value=False)

        assert await repository.is_owner_or_manager("ws-1", "u1") is False


class TestManagers:
    """Tests for manager changes."""

    async def test_add_manager(self, repository: WorkshopsRepository, mock_conn: MagicMock) -> None:
        """Returns True when a seat was inserted."""
        mock_conn.execute = AsyncMock(return_value="INSERT 0 1")

        assert await repository.add_manager("ws-1", "u1") is True

    async def test_add_existing_manager(
        self, repository: WorkshopsRepository, mock_conn: MagicMock
    ) -> None:
        """Returns False when the user already manages the workshop."""
        mock_conn.execute = AsyncMock(return_value="INSERT 0 0")

        assert await repository.add_manager("ws-1", "u1") is False

    async def test_set_visibility(
        self, repository: WorkshopsRepository, mock_conn: MagicMock
    ) -> None:
        """Passes the visibility wire value."""
        mock_conn.execute = AsyncMock(return_value="UPDATE 1")

        assert await repository.set_visibility("ws-1", Visibility.PUBLIC) is True
        assert mock_conn.execute.call_args.args[2] == "public"
