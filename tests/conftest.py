"""
Test configuration for pytest
"""

import pytest
import os
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session
from typing import Generator

# Test environment variables
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["DEBUG"] = "false"

import backoffice.models  # noqa: E402,F401
from backoffice.models import Point, Tenant, User, UserRole  # noqa: E402
from backoffice.services.principal import Principal, principal_from_user  # noqa: E402
from backoffice.services.role_store import RoleStore  # noqa: E402


# One shared in-memory SQLite connection for the whole test run
test_engine = create_engine(
    "sqlite://",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture
def engine():
    return test_engine


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def base_roles(db: Session):
    """Global OWNER, PARTNER and POINT roles"""
    store = RoleStore(db)
    store.ensure_base_roles()
    return {name: store.get_role_by_name(name) for name in ("OWNER", "PARTNER", "POINT")}


@pytest.fixture
def tenant(db: Session) -> Tenant:
    tenant = Tenant(name="Test Restaurant", slug="test-restaurant", billing_email="billing@test.com")
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db: Session) -> Tenant:
    tenant = Tenant(name="Other Cafe", slug="other-cafe")
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


@pytest.fixture
def point(db: Session, tenant: Tenant) -> Point:
    point = Point(tenant_id=tenant.id, name="Main Street")
    db.add(point)
    db.commit()
    db.refresh(point)
    return point


def make_user(db: Session, email: str, **fields) -> User:
    user = User(email=email, password_hash="x", **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user_factory(db: Session):
    def build(email: str, **fields) -> User:
        return make_user(db, email, **fields)
    return build


@pytest.fixture
def platform_owner(db: Session) -> User:
    return make_user(db, "root@platform.test", is_platform_owner=True)


@pytest.fixture
def partner_user(db: Session, tenant: Tenant) -> User:
    return make_user(db, "partner@test.com", tenant_id=tenant.id)


@pytest.fixture
def point_user(db: Session, tenant: Tenant, point: Point) -> User:
    return make_user(db, "point@test.com", tenant_id=tenant.id, point_id=point.id)


@pytest.fixture
def other_partner(db: Session, other_tenant: Tenant) -> User:
    return make_user(db, "partner@other.com", tenant_id=other_tenant.id)


@pytest.fixture
def tenant_owner(db: Session, tenant: Tenant, base_roles) -> User:
    """Tenant-level user holding the OWNER role in its tenant"""
    user = make_user(db, "owner@test.com", tenant_id=tenant.id)
    db.add(UserRole(user_id=user.id, role_id=base_roles["OWNER"].id, tenant_id=tenant.id))
    db.commit()
    return user


@pytest.fixture
def as_principal():
    def build(user: User) -> Principal:
        return principal_from_user(user)
    return build
