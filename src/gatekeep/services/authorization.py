"""Turns permission decisions into failures for service-layer callers."""

from __future__ import annotations

from typing import NoReturn

import structlog

from gatekeep.core.exceptions import AuthorizationError
from gatekeep.core.interfaces import WorkshopStore
from gatekeep.core.rbac import PermissionContext, PermissionEngine, PermissionResult
from gatekeep.services.audit import AuditService

logger = structlog.get_logger()

ANONYMOUS_ACTOR = "anonymous"


class Authorizer:
    """Enforces permission checks and records refused attempts.

    The engine only ever answers with a ``PermissionResult``. Callers that
    must stop on a denial go through ``authorize``, which logs an
    ``unauthorized_access`` audit entry and raises ``AuthorizationError``.
    """

    def __init__(
        self,
        engine: PermissionEngine,
        workshops: WorkshopStore,
        audit: AuditService,
    ) -> None:
        self._engine = engine
        self._workshops = workshops
        self._audit = audit

    async def authorize(
        self,
        actor_id: str | None,
        workshop_id: str,
        action: str,
        resource: str,
        context: PermissionContext | None = None,
    ) -> PermissionResult:
        """Require that the actor may perform the action.

        Args:
            actor_id: Acting user, None for anonymous.
            workshop_id: Workshop the action happens in.
            action: Requested action.
            resource: Target resource type.
            context: Optional project/team context.

        Returns:
            The granting decision.

        Raises:
            AuthorizationError: If the engine denies the action.
        """
        result = await self._engine.check_permission(
            actor_id, workshop_id, action, resource, context
        )
        if not result.granted:
            await self._refuse(actor_id, workshop_id, action, resource, result.reason)
        return result

    async def require_owner_or_manager(self, actor_id: str, workshop_id: str) -> None:
        """Require workshop owner or manager rights.

        Raises:
            AuthorizationError: If the actor is neither.
        """
        if not await self._workshops.is_owner_or_manager(workshop_id, actor_id):
            await self._refuse(actor_id, workshop_id, "manage", "workshop", "not owner or manager")

    async def require_owner(self, actor_id: str, workshop_id: str) -> None:
        """Require that the actor owns the workshop.

        Raises:
            AuthorizationError: If the actor is not the owner.
        """
        workshop = await self._workshops.find_by_id(workshop_id)
        if workshop is None or workshop.owner_id != actor_id:
            await self._refuse(actor_id, workshop_id, "manage", "workshop", "not owner")

    async def _refuse(
        self,
        actor_id: str | None,
        workshop_id: str,
        action: str,
        resource: str,
        reason: str,
    ) -> NoReturn:
        logger.warning(
            "unauthorized_access",
            actor_id=actor_id,
            workshop_id=workshop_id,
            action=action,
            resource=resource,
            reason=reason,
        )
        if workshop_id:
            await self._audit.log_unauthorized_access(
                workshop_id, actor_id or ANONYMOUS_ACTOR, action, resource
            )
        raise AuthorizationError(action=action, resource=resource)
