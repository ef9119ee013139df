"""RBAC core domain."""

from gatekeep.core.rbac.cache import CacheConfig, CacheKey, PermissionCache
from gatekeep.core.rbac.engine import EngineConfig, PermissionEngine
from gatekeep.core.rbac.types import (
    CASCADE_ORDER,
    WILDCARD,
    Effect,
    Membership,
    MembershipSource,
    MembershipState,
    PermissionContext,
    PermissionResult,
    PermissionRule,
    Project,
    Role,
    RoleAssignment,
    Scope,
    Team,
    Visibility,
    Workshop,
)

__all__ = [
    "CASCADE_ORDER",
    "WILDCARD",
    "CacheConfig",
    "CacheKey",
    "Effect",
    "EngineConfig",
    "Membership",
    "MembershipSource",
    "MembershipState",
    "PermissionCache",
    "PermissionContext",
    "PermissionEngine",
    "PermissionResult",
    "PermissionRule",
    "Project",
    "Role",
    "RoleAssignment",
    "Scope",
    "Team",
    "Visibility",
    "Workshop",
]
