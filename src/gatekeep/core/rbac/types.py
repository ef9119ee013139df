"""RBAC domain types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Scope(str, Enum):
    """Granularity at which a role assignment applies.

    Ordered from most to least specific in ``CASCADE_ORDER``.
    """

    INDIVIDUAL = "individual"
    TEAM = "team"
    PROJECT = "project"
    WORKSHOP = "workshop"


CASCADE_ORDER: tuple[Scope, ...] = (
    Scope.INDIVIDUAL,
    Scope.TEAM,
    Scope.PROJECT,
    Scope.WORKSHOP,
)


class Effect(str, Enum):
    """Permission effect."""

    GRANT = "grant"
    DENY = "deny"


class MembershipState(str, Enum):
    """Lifecycle state of a workshop membership."""

    PENDING = "pending"
    ACTIVE = "active"
    REMOVED = "removed"


class MembershipSource(str, Enum):
    """How a membership came to exist."""

    INVITATION = "invitation"
    JOIN_REQUEST = "join_request"
    OPEN_ACCESS = "open_access"


class Visibility(str, Enum):
    """Workshop visibility."""

    PUBLIC = "public"
    PRIVATE = "private"


WILDCARD = "*"


@dataclass(frozen=True)
class PermissionRule:
    """A single ``(action, resource, effect)`` entry of a role."""

    action: str
    resource: str
    effect: Effect = Effect.GRANT


@dataclass
class Role:
    """A named, workshop-scoped bundle of permission rules."""

    id: str
    workshop_id: str
    name: str
    scope: Scope
    permissions: list[PermissionRule] = field(default_factory=list)
    description: str | None = None
    scope_id: str | None = None
    is_default: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class RoleAssignment:
    """A role bound to a user at a concrete scope instance.

    ``role`` is hydrated by the repository. It is ``None`` when the
    referenced role no longer exists.
    """

    id: str
    workshop_id: str
    role_id: str
    user_id: str
    scope: Scope
    assigned_by: str
    scope_id: str | None = None
    created_at: datetime | None = None
    role: Role | None = None


@dataclass
class Membership:
    """A user's standing in a workshop."""

    workshop_id: str
    user_id: str
    state: MembershipState
    source: MembershipSource
    joined_at: datetime | None = None
    removed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        """Whether the membership currently grants base access."""
        return self.state == MembershipState.ACTIVE


@dataclass
class Workshop:
    """A tenant: the root of the scope hierarchy."""

    id: str
    name: str
    owner_id: str
    manager_ids: list[str] = field(default_factory=list)
    visibility: Visibility = Visibility.PRIVATE

    def is_owner_or_manager(self, user_id: str) -> bool:
        """Check whether the user holds the full-access shortcut."""
        return bool(user_id) and (user_id == self.owner_id or user_id in self.manager_ids)


@dataclass
class Project:
    """A workshop project with its manager and maintainers."""

    id: str
    workshop_id: str
    name: str
    project_manager_id: str | None = None
    maintainer_ids: list[str] = field(default_factory=list)


@dataclass
class Team:
    """A team in a workshop."""

    id: str
    workshop_id: str
    name: str
    member_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PermissionContext:
    """Optional scoping hints for a permission check."""

    project_id: str | None = None
    team_id: str | None = None


@dataclass(frozen=True)
class PermissionResult:
    """Outcome of a permission check. Never persisted."""

    granted: bool
    reason: str
    source: Scope | None = None
