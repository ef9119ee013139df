"""Append-only audit log adapters."""

from gatekeep.adapters.audit.memory import InMemoryAuditRepository
from gatekeep.adapters.audit.repository import AuditRepository
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

__all__ = [
    "ActionCount",
    "AuditAction",
    "AuditLogCreate",
    "AuditLogEntry",
    "AuditLogFilters",
    "AuditLogPage",
    "AuditRepository",
    "InMemoryAuditRepository",
    "Pagination",
    "TargetType",
]
