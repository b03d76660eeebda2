"""
Principal resolution

The Principal is the single typed view of "who is calling"; nothing else in
the package reads tenant or role fields off raw identity data.
"""

from typing import Any, Mapping, Optional
import uuid

from pydantic import BaseModel, ConfigDict
from sqlmodel import Session
import structlog

from backoffice.core.database import reading
from backoffice.core.errors import Unauthorized, Unresolvable
from backoffice.models.user import StructuralRole, User

logger = structlog.get_logger(__name__)


class Principal(BaseModel):
    """Normalized identity of the caller for one request"""

    model_config = ConfigDict(frozen=True)

    user_id: uuid.UUID
    tenant_id: Optional[uuid.UUID] = None
    point_id: Optional[uuid.UUID] = None
    is_platform_owner: bool = False
    structural_role: StructuralRole

    @property
    def is_tenant_scoped(self) -> bool:
        return self.tenant_id is not None


def infer_structural_role(
    is_platform_owner: bool,
    tenant_id: Optional[uuid.UUID],
    point_id: Optional[uuid.UUID],
) -> StructuralRole:
    """Derive the structural role; first match wins"""
    if is_platform_owner:
        return StructuralRole.PLATFORM_OWNER
    if tenant_id is not None and point_id is None:
        return StructuralRole.PARTNER
    if point_id is not None:
        return StructuralRole.POINT
    return StructuralRole.EMPLOYEE


def build_principal(
    user_id: uuid.UUID,
    tenant_id: Optional[uuid.UUID] = None,
    point_id: Optional[uuid.UUID] = None,
    is_platform_owner: bool = False,
) -> Principal:
    return Principal(
        user_id=user_id,
        tenant_id=tenant_id,
        point_id=point_id,
        is_platform_owner=is_platform_owner,
        structural_role=infer_structural_role(is_platform_owner, tenant_id, point_id),
    )


def _optional_uuid(value: Any) -> Optional[uuid.UUID]:
    if value in (None, ""):
        return None
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def principal_from_claims(claims: Mapping[str, Any]) -> Principal:
    """Build a principal from identity claims verified upstream"""
    try:
        user_id = _optional_uuid(claims.get("sub"))
        tenant_id = _optional_uuid(claims.get("tenant_id"))
        point_id = _optional_uuid(claims.get("point_id"))
    except ValueError as e:
        raise Unauthorized("Malformed identity claims") from e

    if user_id is None:
        raise Unauthorized("Identity claims carry no subject")

    return build_principal(
        user_id=user_id,
        tenant_id=tenant_id,
        point_id=point_id,
        is_platform_owner=bool(claims.get("is_platform_owner", False)),
    )


def principal_from_user(user: User) -> Principal:
    return build_principal(
        user_id=user.id,
        tenant_id=user.tenant_id,
        point_id=user.point_id,
        is_platform_owner=user.is_platform_owner,
    )


class PrincipalResolver:
    """Resolves stored users into principals"""

    def __init__(self, session: Session):
        self.session = session

    def resolve(self, user_id: uuid.UUID) -> Principal:
        with reading(self.session):
            user = self.session.get(User, user_id)
        if user is None:
            logger.warning(f"Unresolvable principal: {user_id}")
            raise Unresolvable(f"User {user_id} does not exist")

        principal = principal_from_user(user)
        logger.debug(f"Principal resolved: {user_id} as {principal.structural_role.value}")
        return principal
