"""
Tests for point management
"""

import pytest
import uuid

from backoffice.core.errors import Forbidden, NoTenant, NotFound
from backoffice.models import Point
from backoffice.schemas.point import PointCreate, PointUpdate
from backoffice.services.points import PointRemoval, PointService


@pytest.fixture
def service(db):
    return PointService(db)


def test_partner_creates_point(service, partner_user, tenant, as_principal):
    point = service.create_point(as_principal(partner_user), PointCreate(name="Riverside", address="1 River Rd"))

    assert point.id is not None
    assert point.tenant_id == tenant.id
    assert point.is_active is True


def test_point_user_cannot_create_points(service, point_user, as_principal):
    with pytest.raises(Forbidden):
        service.create_point(as_principal(point_user), PointCreate(name="Kiosk"))


def test_platform_owner_needs_tenant(service, platform_owner, as_principal):
    with pytest.raises(NoTenant):
        service.create_point(as_principal(platform_owner), PointCreate(name="Nowhere"))


def test_list_points_is_tenant_scoped(db, service, point_user, point, other_tenant, as_principal):
    db.add(Point(tenant_id=other_tenant.id, name="Elsewhere"))
    db.commit()

    points = service.list_points(as_principal(point_user))

    assert [p.id for p in points] == [point.id]


def test_list_points_hides_inactive(db, service, partner_user, tenant, point, as_principal):
    db.add(Point(tenant_id=tenant.id, name="Closed", is_active=False))
    db.commit()
    actor = as_principal(partner_user)

    assert [p.name for p in service.list_points(actor)] == ["Main Street"]
    assert [p.name for p in service.list_points(actor, include_inactive=True)] == ["Closed", "Main Street"]


def test_employee_cannot_list_points(service, user_factory, tenant, as_principal):
    # No tenant and no point: structural EMPLOYEE
    employee = user_factory("staff@test.com")

    with pytest.raises(Forbidden):
        service.list_points(as_principal(employee))


def test_empty_point_is_deleted(db, service, partner_user, tenant, as_principal):
    actor = as_principal(partner_user)
    point = service.create_point(actor, PointCreate(name="Popup"))

    assert service.remove_point(actor, point.id) == PointRemoval.DELETED
    assert db.get(Point, point.id) is None


def test_staffed_point_is_deactivated(db, service, partner_user, point_user, point, as_principal):
    assert service.remove_point(as_principal(partner_user), point.id) == PointRemoval.DEACTIVATED

    db.refresh(point)
    assert point.is_active is False


def test_foreign_point_is_not_found(service, other_partner, point, as_principal):
    with pytest.raises(NotFound):
        service.remove_point(as_principal(other_partner), point.id)


def test_missing_point_is_not_found(service, partner_user, as_principal):
    with pytest.raises(NotFound):
        service.remove_point(as_principal(partner_user), uuid.uuid4())


def test_partner_updates_point(service, partner_user, point, as_principal):
    updated = service.update_point(
        as_principal(partner_user), point.id, PointUpdate(name="High Street", address="2 High St")
    )

    assert updated.id == point.id
    assert updated.name == "High Street"
    assert updated.address == "2 High St"
    assert updated.is_active is True
    assert updated.updated_at is not None


def test_update_can_reactivate_point(db, service, partner_user, point_user, point, as_principal):
    actor = as_principal(partner_user)
    assert service.remove_point(actor, point.id) == PointRemoval.DEACTIVATED

    updated = service.update_point(actor, point.id, PointUpdate(is_active=True))

    assert updated.is_active is True
    assert [p.id for p in service.list_points(actor)] == [point.id]


def test_update_ignores_null_name(service, partner_user, point, as_principal):
    updated = service.update_point(as_principal(partner_user), point.id, PointUpdate(name=None, phone="555-0100"))

    assert updated.name == "Main Street"
    assert updated.phone == "555-0100"


def test_point_user_cannot_edit_points(service, point_user, point, as_principal):
    with pytest.raises(Forbidden):
        service.update_point(as_principal(point_user), point.id, PointUpdate(name="Mine now"))


def test_foreign_point_cannot_be_updated(db, service, other_partner, point, as_principal):
    with pytest.raises(NotFound):
        service.update_point(as_principal(other_partner), point.id, PointUpdate(name="Taken"))

    db.refresh(point)
    assert point.name == "Main Street"


def test_current_point(service, point_user, partner_user, point, as_principal):
    assert service.current_point(as_principal(point_user)).id == point.id
    assert service.current_point(as_principal(partner_user)) is None
