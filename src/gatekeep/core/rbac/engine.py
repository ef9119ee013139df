"""Permission evaluation engine.

Decides whether an actor may perform an action on a resource inside a
workshop. Evaluation tries, in fixed priority:

1. The result cache.
2. Hierarchical shortcuts: workshop owner/manager, project manager,
   project maintainer (for an allowlist of actions).
3. Base visibility: public workshops and active members may view/read.
4. The explicit RBAC cascade, INDIVIDUAL -> TEAM -> PROJECT -> WORKSHOP.
   The first scope instance with any matching rule decides, and a DENY
   there beats any GRANT there.

Every decision is cached. A denial is a result, never an exception.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from gatekeep.core.interfaces import (
    MembershipStore,
    ProjectStore,
    RoleAssignmentStore,
    TeamStore,
    WorkshopStore,
)
from gatekeep.core.rbac.cache import CacheKey, PermissionCache
from gatekeep.core.rbac.matching import rule_matches
from gatekeep.core.rbac.types import (
    CASCADE_ORDER,
    Effect,
    PermissionContext,
    PermissionResult,
    Scope,
    Visibility,
)

logger = structlog.get_logger()

DEFAULT_MAINTAINER_ACTIONS = frozenset({"read", "view", "write", "update", "manage"})
BASE_ACCESS_ACTIONS = frozenset({"view", "read"})

REASON_INVALID_REQUEST = "invalid permission request"
REASON_OWNER_OR_MANAGER = "owner/manager full access"
REASON_PROJECT_MANAGER = "project manager full access"
REASON_PROJECT_MAINTAINER = "project maintainer elevated access"
REASON_PUBLIC_WORKSHOP = "public workshop view access"
REASON_ACTIVE_MEMBER = "active member base view access"
REASON_NO_PERMISSION = "no explicit permission found"


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for the permission engine.

    Attributes:
        maintainer_actions: Actions a project maintainer may perform
            without an explicit role.
    """

    maintainer_actions: frozenset[str] = DEFAULT_MAINTAINER_ACTIONS


class PermissionEngine:
    """Evaluates permission checks against injected stores.

    Engines are cheap to build. Share one ``PermissionCache`` between every
    engine in the process so invalidations reach all of them.

    Usage:
        engine = PermissionEngine(workshops, projects, memberships, teams, assignments)
        result = await engine.check_permission(user_id, workshop_id, "update", "task")
    """

    def __init__(
        self,
        workshops: WorkshopStore,
        projects: ProjectStore,
        memberships: MembershipStore,
        teams: TeamStore,
        role_assignments: RoleAssignmentStore,
        cache: PermissionCache | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            workshops: Workshop store.
            projects: Project store.
            memberships: Membership store.
            teams: Team store.
            role_assignments: Role assignment store returning hydrated roles.
            cache: Result cache. A fresh default cache if not provided.
            config: Engine configuration. Uses defaults if not provided.
        """
        self._workshops = workshops
        self._projects = projects
        self._memberships = memberships
        self._teams = teams
        self._role_assignments = role_assignments
        self.cache = cache if cache is not None else PermissionCache()
        self.config = config or EngineConfig()

    async def check_permission(
        self,
        actor_id: str | None,
        workshop_id: str,
        action: str,
        resource: str,
        context: PermissionContext | None = None,
    ) -> PermissionResult:
        """Decide whether the actor may perform ``action`` on ``resource``.

        Args:
            actor_id: Acting user. Empty or None for an anonymous actor.
            workshop_id: Workshop the check is made in.
            action: Requested action, e.g. "update".
            resource: Target resource type, e.g. "task".
            context: Optional project/team the action targets.

        Returns:
            The decision with the deciding scope and a readable reason.
        """
        key = CacheKey.build(actor_id, workshop_id, action, resource, context)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        generation = self.cache.generation
        result = await self._evaluate(key)
        # An invalidation during evaluation makes this result stale.
        self.cache.set(key, result, generation=generation)
        logger.debug(
            "permission_evaluated",
            key=str(key),
            granted=result.granted,
            source=result.source.value if result.source else None,
            reason=result.reason,
        )
        return result

    async def _evaluate(self, key: CacheKey) -> PermissionResult:
        if not (key.workshop_id and key.action and key.resource):
            return PermissionResult(granted=False, reason=REASON_INVALID_REQUEST)

        shortcut = await self._check_shortcuts(key)
        if shortcut is not None:
            return shortcut

        base = await self._check_base_access(key)
        if base is not None:
            return base

        if key.actor_id:
            explicit = await self._evaluate_cascade(key)
            if explicit is not None:
                return explicit

        return PermissionResult(granted=False, reason=REASON_NO_PERMISSION)

    async def _check_shortcuts(self, key: CacheKey) -> PermissionResult | None:
        if not key.actor_id:
            return None

        if await self._workshops.is_owner_or_manager(key.workshop_id, key.actor_id):
            return PermissionResult(
                granted=True, source=Scope.WORKSHOP, reason=REASON_OWNER_OR_MANAGER
            )

        if not key.project_id:
            return None

        project = await self._projects.find_by_id(key.project_id)
        if project is None or project.workshop_id != key.workshop_id:
            return None

        if project.project_manager_id == key.actor_id:
            return PermissionResult(
                granted=True, source=Scope.PROJECT, reason=REASON_PROJECT_MANAGER
            )

        if key.actor_id in project.maintainer_ids and key.action in self.config.maintainer_actions:
            return PermissionResult(
                granted=True, source=Scope.PROJECT, reason=REASON_PROJECT_MAINTAINER
            )

        return None

    async def _check_base_access(self, key: CacheKey) -> PermissionResult | None:
        if key.action not in BASE_ACCESS_ACTIONS:
            return None

        workshop = await self._workshops.find_by_id(key.workshop_id)
        if workshop is None:
            return None

        if workshop.visibility == Visibility.PUBLIC:
            return PermissionResult(
                granted=True, source=Scope.WORKSHOP, reason=REASON_PUBLIC_WORKSHOP
            )

        if not key.actor_id:
            return None

        membership = await self._memberships.find_by_workshop_and_user(
            key.workshop_id, key.actor_id
        )
        if membership is not None and membership.is_active:
            return PermissionResult(
                granted=True, source=Scope.WORKSHOP, reason=REASON_ACTIVE_MEMBER
            )

        return None

    async def _scope_ids(self, scope: Scope, key: CacheKey) -> list[str | None]:
        """Resolve the scope instances to check at one cascade level."""
        if scope == Scope.PROJECT:
            return [key.project_id] if key.project_id else []
        if scope == Scope.TEAM:
            if key.team_id:
                return [key.team_id]
            teams = await self._teams.find_teams_by_member(key.workshop_id, key.actor_id)
            return sorted(team.id for team in teams)
        return [None]

    async def _evaluate_cascade(self, key: CacheKey) -> PermissionResult | None:
        for scope in CASCADE_ORDER:
            for scope_id in await self._scope_ids(scope, key):
                effect = await self._effect_at_scope(key, scope, scope_id)
                if effect is Effect.DENY:
                    return PermissionResult(
                        granted=False,
                        source=scope,
                        reason=f"explicitly denied at {scope.value} level",
                    )
                if effect is Effect.GRANT:
                    return PermissionResult(
                        granted=True,
                        source=scope,
                        reason=f"explicitly granted at {scope.value} level",
                    )
        return None

    async def _effect_at_scope(
        self, key: CacheKey, scope: Scope, scope_id: str | None
    ) -> Effect | None:
        """Return DENY if any matching rule denies, GRANT if any grants, else None."""
        assignments = await self._role_assignments.find_by_user_and_scope(
            key.workshop_id, key.actor_id, scope, scope_id
        )
        effect: Effect | None = None
        for assignment in assignments:
            role = assignment.role
            if role is None:
                logger.debug(
                    "dangling_role_assignment",
                    assignment_id=assignment.id,
                    role_id=assignment.role_id,
                )
                continue
            for rule in role.permissions:
                if not rule_matches(rule, key.action, key.resource):
                    continue
                if rule.effect is Effect.DENY:
                    return Effect.DENY
                effect = Effect.GRANT
        return effect

    async def has_any_permission(
        self,
        actor_id: str | None,
        workshop_id: str,
        permissions: Iterable[tuple[str, str]],
        context: PermissionContext | None = None,
    ) -> bool:
        """Check whether any ``(action, resource)`` pair is granted."""
        for action, resource in permissions:
            result = await self.check_permission(actor_id, workshop_id, action, resource, context)
            if result.granted:
                return True
        return False

    async def has_all_permissions(
        self,
        actor_id: str | None,
        workshop_id: str,
        permissions: Iterable[tuple[str, str]],
        context: PermissionContext | None = None,
    ) -> bool:
        """Check whether every ``(action, resource)`` pair is granted."""
        for action, resource in permissions:
            result = await self.check_permission(actor_id, workshop_id, action, resource, context)
            if not result.granted:
                return False
        return True

    def invalidate_user_cache(self, actor_id: str, workshop_id: str) -> None:
        """Forget cached decisions for one actor in one workshop."""
        self.cache.invalidate_user(actor_id, workshop_id)

    def invalidate_tenant_cache(self, workshop_id: str) -> None:
        """Forget cached decisions for every actor in a workshop."""
        self.cache.invalidate_tenant(workshop_id)

    def invalidate_all_cache(self) -> None:
        """Forget every cached decision."""
        self.cache.invalidate_all()
