"""Unit tests for the schema models."""

from __future__ import annotations

from sqlalchemy import UniqueConstraint

from gatekeep.models import AuditLog, Membership, Role, RoleAssignment, Workshop, metadata
from gatekeep.models.base import BaseModel


def _unique_columns(model: type[BaseModel]) -> list[tuple[str, ...]]:
    return [
        tuple(c.name for c in constraint.columns)
        for constraint in model.__table__.constraints
        if isinstance(constraint, UniqueConstraint)
    ]


class TestBaseModel:
    """Tests for BaseModel."""

    def test_base_model_has_id(self) -> None:
        """Test that base model has id column."""
        assert hasattr(BaseModel, "id")

    def test_timestamps_on_mutable_tables(self) -> None:
        """Test that mutable tables carry created_at and updated_at."""
        assert "created_at" in Workshop.__table__.columns
        assert "updated_at" in Role.__table__.columns

    def test_shared_metadata(self) -> None:
        """Test that every table lands in the shared metadata."""
        assert {
            "workshops",
            "workshop_managers",
            "projects",
            "project_maintainers",
            "teams",
            "team_members",
            "memberships",
            "roles",
            "role_assignments",
            "audit_logs",
        } <= set(metadata.tables)


class TestConstraints:
    """Tests for uniqueness and lookup indexes."""

    def test_role_name_unique_per_workshop(self) -> None:
        """Test the (workshop_id, name) constraint on roles."""
        assert ("workshop_id", "name") in _unique_columns(Role)

    def test_one_membership_per_user(self) -> None:
        """Test the (workshop_id, user_id) constraint on memberships."""
        assert ("workshop_id", "user_id") in _unique_columns(Membership)

    def test_constraint_naming_convention(self) -> None:
        """Test that unique constraints follow the naming convention."""
        names = {
            c.name for c in Role.__table__.constraints if isinstance(c, UniqueConstraint)
        }
        assert "uq_roles_workshop_id_name" in names

    def test_assignment_lookup_index(self) -> None:
        """Test the index serving the cascade lookup."""
        index = next(
            i for i in RoleAssignment.__table__.indexes if i.name == "ix_role_assignments_lookup"
        )
        assert [c.name for c in index.columns] == ["workshop_id", "user_id", "scope", "scope_id"]

    def test_audit_log_indexes(self) -> None:
        """Test the indexes backing audit queries."""
        names = {i.name for i in AuditLog.__table__.indexes}
        assert "ix_audit_logs_workshop_timestamp" in names
