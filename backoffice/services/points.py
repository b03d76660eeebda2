"""
Point management for tenant operators
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
import uuid

from sqlalchemy import func
from sqlmodel import Session, select
import structlog

from backoffice.core.database import atomic, reading
from backoffice.core.errors import NotFound
from backoffice.models.point import Point
from backoffice.models.user import User
from backoffice.schemas.point import PointCreate, PointUpdate
from backoffice.services.guard import AuthorizationGuard
from backoffice.services.permissions import Capability
from backoffice.services.principal import Principal

logger = structlog.get_logger(__name__)


class PointRemoval(str, Enum):
    DELETED = "deleted"
    DEACTIVATED = "deactivated"


class PointService:
    """Points of the actor's own tenant"""

    def __init__(self, session: Session):
        self.session = session
        self.guard = AuthorizationGuard(session)

    def _get_own_point(self, tenant_id: uuid.UUID, point_id: uuid.UUID) -> Point:
        point = self.session.get(Point, point_id)
        # Points of other tenants are reported as missing
        if point is None or point.tenant_id != tenant_id:
            raise NotFound(f"Point {point_id} not found")
        return point

    def list_points(self, actor: Optional[Principal], include_inactive: bool = False) -> List[Point]:
        self.guard.require_capability(actor, Capability.POINTS_VIEW)
        tenant_id = self.guard.require_tenant_scoped(actor)

        query = select(Point).where(Point.tenant_id == tenant_id)
        if not include_inactive:
            query = query.where(Point.is_active == True)  # noqa: E712
        with reading(self.session):
            return self.session.exec(query.order_by(Point.name)).all()

    def create_point(self, actor: Optional[Principal], data: PointCreate) -> Point:
        self.guard.require_capability(actor, Capability.POINTS_CREATE)
        tenant_id = self.guard.require_tenant_scoped(actor)

        with atomic(self.session):
            point = Point(tenant_id=tenant_id, **data.model_dump())
            self.session.add(point)

        self.session.refresh(point)
        logger.info(f"Point created: {point.id}")
        return point

    def update_point(self, actor: Optional[Principal], point_id: uuid.UUID, patch: PointUpdate) -> Point:
        self.guard.require_capability(actor, Capability.POINTS_EDIT)
        tenant_id = self.guard.require_tenant_scoped(actor)

        changes = patch.model_dump(exclude_unset=True)
        # Explicit nulls for required columns keep the current value
        for field in ("name", "is_active"):
            if field in changes and changes[field] is None:
                del changes[field]

        with atomic(self.session):
            point = self._get_own_point(tenant_id, point_id)
            for field, value in changes.items():
                setattr(point, field, value)
            point.updated_at = datetime.utcnow()
            self.session.add(point)

        self.session.refresh(point)
        logger.info(f"Point updated: {point.id}")
        return point

    def current_point(self, actor: Optional[Principal]) -> Optional[Point]:
        """Active point of the actor, if any"""
        actor = self.guard.require_authenticated(actor)
        if actor.point_id is None:
            return None
        with reading(self.session):
            return self.session.get(Point, actor.point_id)

    def remove_point(self, actor: Optional[Principal], point_id: uuid.UUID) -> PointRemoval:
        """Delete the point, or deactivate it while users are still attached"""
        self.guard.require_capability(actor, Capability.POINTS_DELETE)
        tenant_id = self.guard.require_tenant_scoped(actor)

        with atomic(self.session):
            point = self._get_own_point(tenant_id, point_id)
            attached = self.session.exec(
                select(func.count()).select_from(User).where(User.point_id == point_id)
            ).one()

            if attached > 0:
                point.is_active = False
                point.updated_at = datetime.utcnow()
                self.session.add(point)
                outcome = PointRemoval.DEACTIVATED
            else:
                self.session.delete(point)
                outcome = PointRemoval.DELETED

        logger.info(f"Point {outcome.value}: {point_id}")
        return outcome
