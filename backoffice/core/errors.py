"""
Access-control error taxonomy

Every authorization failure is raised as one of these kinds so callers can
map it to a transport status without inspecting messages.
"""

from typing import Optional

from fastapi import status


class AccessError(Exception):
    """Base class for all access-control failures"""

    code: str = "access_error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Access control error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail}


class Unauthorized(AccessError):
    code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"


class NoTenant(AccessError):
    code = "no_tenant"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Operation requires a tenant scope"


class Forbidden(AccessError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"


class NotFound(AccessError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class Unresolvable(NotFound):
    """Identity does not map to an existing user"""

    code = "unresolvable"
    default_detail = "Principal could not be resolved"


class DuplicateName(AccessError):
    code = "duplicate_name"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Role with this name already exists"


class DuplicateAssignment(AccessError):
    code = "duplicate_assignment"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "User already holds this role in the tenant"


class RoleInUse(AccessError):
    code = "role_in_use"
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Cannot delete role that is assigned to users"


class ProtectedRole(AccessError):
    code = "protected_role"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Cannot modify base system roles"


class CannotDisableSystemPage(AccessError):
    code = "cannot_disable_system_page"
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Cannot disable system page for OWNER"


class ValidationError(AccessError):
    code = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid input"


class StoreUnavailable(AccessError):
    """The store could not be reached; the request was not evaluated"""

    code = "store_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Authorization store unavailable"
