"""Domain-specific exceptions.

All exceptions in the gatekeep system inherit from GatekeepError,
making it easy to catch all system errors while still being able
to handle specific error types.
"""

from __future__ import annotations


class GatekeepError(Exception):
    """Base exception for all gatekeep errors."""

    pass


class AuthorizationError(GatekeepError):
    """Actor is not allowed to perform the requested action.

    Raised by callers that turn a denied PermissionResult into a failure.
    The permission engine itself never raises it. Maps to HTTP 403.

    Attributes:
        action: The denied action, when known.
        resource: The resource the action targeted, when known.
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        action: str | None = None,
        resource: str | None = None,
    ) -> None:
        """Initialize AuthorizationError.

        Args:
            message: Error description.
            action: The denied action.
            resource: The targeted resource.
        """
        super().__init__(message)
        self.action = action
        self.resource = resource


class NotFoundError(GatekeepError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str = "Resource") -> None:
        """Initialize NotFoundError.

        Args:
            entity: Human readable name of the missing entity.
        """
        super().__init__(f"{entity} not found")
        self.entity = entity


class ValidationError(GatekeepError):
    """Request data is incomplete or inconsistent."""

    pass


class ConflictError(GatekeepError):
    """The operation would violate a uniqueness invariant.

    Examples:
    - Creating a role whose name is already used in the workshop
    - Assigning a role the user already holds at that scope
    """

    pass


class ImmutableAuditLogError(GatekeepError):
    """An update or delete was attempted on the append-only audit log.

    This is never recoverable: audit entries are written once and
    never changed. Any code path that reaches it is a bug.
    """

    pass
