"""Application services."""

from gatekeep.services.audit import AuditService
from gatekeep.services.authorization import Authorizer
from gatekeep.services.organization import OrganizationService
from gatekeep.services.roles import RoleService

__all__ = [
    "AuditService",
    "Authorizer",
    "OrganizationService",
    "RoleService",
]
