"""Tests for projects repository."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from gatekeep.adapters.rbac import ProjectsRepository


@pytest.fixture
def mock_conn() -> MagicMock:
    """Create mock database connection."""
    return MagicMock()


@pytest.fixture
def repository(mock_conn: MagicMock) -> ProjectsRepository:
    """Create repository with mock connection."""
    return ProjectsRepository(mock_conn)


class TestFindById:
    """Tests for find_by_id method."""

    async def test_returns_project(
        self, repository: ProjectsRepository, mock_conn: MagicMock
    ) -> None:
        """Maps manager and maintainers."""
        mock_conn.fetchrow = AsyncMock(
            return_value={
                "id": "p1",
                "workshop_id": "ws-1",
                "name": "Launch",
                "project_manager_id": "pm",
                "maintainer_ids": ["m1"],
            }
        )

        project = await repository.find_by_id("p1")

        assert project is not None
        assert project.project_manager_id == "pm"
        assert project.maintainer_ids == ["m1"]

    async def test_returns_none_when_not_found(
        self, repository: ProjectsRepository, mock_conn: MagicMock
    ) -> None:
        """Returns None when project not found."""
        mock_conn.fetchrow = AsyncMock(return_value=None)

        assert await repository.find_by_id("missing") is None


class TestMaintainers:
    """Tests for maintainer changes."""

    async def test_add_maintainer(
        self, repository: ProjectsRepository, mock_conn: MagicMock
    ) -> None:
        """Returns True when a seat was inserted."""
        mock_conn.execute = AsyncMock(return_value="INSERT 0 1")

        assert await repository.add_maintainer("p1", "u1") is True

    async def test_clear_project_manager(
        self, repository: ProjectsRepository, mock_conn: MagicMock
    ) -> None:
        """Accepts None to clear the manager."""
        mock_conn.execute = AsyncMock(return_value="UPDATE 1")

        assert await repository.set_project_manager("p1", None) is True
        assert mock_conn.execute.call_args.args[2] is None


class TestDelete:
    """Tests for delete method."""

    async def test_delete_returns_true(
        self, repository: ProjectsRepository, mock_conn: MagicMock
    ) -> None:
        """Returns True when a row was deleted."""
        mock_conn.execute = AsyncMock(return_value="DELETE 1")

        assert await repository.delete("p1") is True
        assert mock_conn.execute.call_args.args[1] == "p1"

    async def test_delete_missing(
        self, repository: ProjectsRepository, mock_conn: MagicMock
    ) -> None:
        """Returns False when nothing matched."""
        mock_conn.execute = AsyncMock(return_value="DELETE 0")

        assert await repository.delete("missing") is False
