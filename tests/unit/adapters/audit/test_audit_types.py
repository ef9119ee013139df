"""Tests for audit types."""

import pytest
from pydantic import ValidationError

from gatekeep.adapters.audit import AuditAction, AuditLogCreate, AuditLogPage, Pagination


class TestAuditAction:
    """Tests for AuditAction."""

    def test_wire_values(self) -> None:
        """Values are the stored snake_case names."""
        assert AuditAction.UNAUTHORIZED_ACCESS.value == "unauthorized_access"
        assert AuditAction("join_request_approved") is AuditAction.JOIN_REQUEST_APPROVED

    def test_closed_set(self) -> None:
        """Unknown actions are rejected."""
        with pytest.raises(ValueError):
            AuditAction("role_renamed")


class TestPagination:
    """Tests for Pagination."""

    def test_offset(self) -> None:
        """Pages are 1-based."""
        assert Pagination(page=1, limit=20).offset == 0
        assert Pagination(page=3, limit=20).offset == 40

    def test_rejects_page_zero(self) -> None:
        """Page numbers start at 1."""
        with pytest.raises(ValidationError):
            Pagination(page=0)


class TestAuditLogPage:
    """Tests for AuditLogPage."""

    @pytest.mark.parametrize(("total", "pages"), [(0, 0), (1, 1), (50, 1), (51, 2)])
    def test_total_pages(self, total: int, pages: int) -> None:
        """Rounds up to whole pages."""
        page = AuditLogPage(entries=[], total=total, page=1, limit=50)

        assert page.total_pages == pages


def test_create_is_frozen() -> None:
    """Entries cannot be modified after construction."""
    entry = AuditLogCreate(workshop_id="ws-1", action=AuditAction.MEMBER_LEFT, actor_id="u1")

    with pytest.raises(ValidationError):
        entry.actor_id = "u2"  # type: ignore[misc]
