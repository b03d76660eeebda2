"""
Schemas module
"""

from backoffice.schemas.page_access import PageAccessEntry, PageAccessUpdate
from backoffice.schemas.point import PointCreate, PointUpdate
from backoffice.schemas.role import RoleAssignment, RoleCreate, RoleSummary, RoleUpdate
from backoffice.schemas.token import TokenPayload

__all__ = [
    "PageAccessEntry",
    "PageAccessUpdate",
    "PointCreate",
    "PointUpdate",
    "RoleAssignment",
    "RoleCreate",
    "RoleSummary",
    "RoleUpdate",
    "TokenPayload",
]
