"""
Access-control services
"""

from backoffice.services.access import AccessService
from backoffice.services.guard import AuthorizationGuard
from backoffice.services.page_access import PageAccessMatrix
from backoffice.services.permissions import Capability, PermissionEvaluator, PermissionSet
from backoffice.services.points import PointRemoval, PointService
from backoffice.services.principal import Principal, PrincipalResolver
from backoffice.services.role_store import RoleStore

__all__ = [
    "AccessService",
    "AuthorizationGuard",
    "Capability",
    "PageAccessMatrix",
    "PermissionEvaluator",
    "PermissionSet",
    "PointRemoval",
    "PointService",
    "Principal",
    "PrincipalResolver",
    "RoleStore",
]
