"""Append-only audit log."""

from datetime import datetime
from typing import Any

from sqlalchemy import Index, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from gatekeep.models.base import BaseModel


class AuditLog(BaseModel):
    """Immutable audit log entry."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_workshop_timestamp", "workshop_id", "timestamp"),
        Index("ix_audit_logs_workshop_actor", "workshop_id", "actor_id"),
        Index("ix_audit_logs_workshop_target", "workshop_id", "target_id"),
    )

    # Who
    workshop_id: Mapped[str] = mapped_column(String(36), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(36), nullable=False)

    # What
    action: Mapped[str] = mapped_column(String(50), nullable=False)  # "role_assigned"
    target_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    target_type: Mapped[str | None] = mapped_column(String(20), nullable=True)  # "User"
    details: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    # When
    timestamp: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now(), index=True
    )
