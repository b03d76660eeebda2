"""
Role store

Persisted named roles. Names form one global namespace, the reserved base
roles can be neither deleted nor renamed, and inheritance is kept to a single
hop by validating every write.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
import uuid

from sqlalchemy import func, or_
from sqlmodel import Session, select
import structlog

from backoffice.core.database import atomic, reading
from backoffice.core.errors import (
    DuplicateName,
    NotFound,
    ProtectedRole,
    RoleInUse,
    ValidationError,
)
from backoffice.models.role import Role, UserRole
from backoffice.schemas.role import RoleSummary, RoleUpdate
from backoffice.services.permissions import empty_document

logger = structlog.get_logger(__name__)

OWNER_ROLE = "OWNER"
PARTNER_ROLE = "PARTNER"
POINT_ROLE = "POINT"

PROTECTED_ROLE_NAMES = (OWNER_ROLE, PARTNER_ROLE, POINT_ROLE)

# Case variants and legacy localized spellings of the base roles
_BASE_ROLE_ALIASES = {
    "owner": OWNER_ROLE,
    "владелец": OWNER_ROLE,
    "partner": PARTNER_ROLE,
    "партнер": PARTNER_ROLE,
    "партнёр": PARTNER_ROLE,
    "point": POINT_ROLE,
    "точка": POINT_ROLE,
}


def normalize_role_name(name: Optional[str]) -> str:
    """Trim a role name and canonicalize base-role spellings"""
    if name is None or not name.strip():
        raise ValidationError("Role name required")
    name = name.strip()
    return _BASE_ROLE_ALIASES.get(name.lower(), name)


def _owner_document() -> Dict[str, Dict[str, bool]]:
    document = empty_document(True)
    document["organization"]["manageTenants"] = False
    document["special"]["isPlatformOwner"] = False
    document["special"]["canViewAllData"] = False
    return document


BASE_ROLE_DOCUMENTS: Dict[str, Dict[str, Any]] = {
    OWNER_ROLE: _owner_document(),
    PARTNER_ROLE: {},
    POINT_ROLE: {},
}


def _validate_document(permissions: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if permissions is None:
        return {}
    if not isinstance(permissions, Mapping):
        raise ValidationError("Permissions must be an object")
    return dict(permissions)


class RoleStore:
    """CRUD over named roles"""

    def __init__(self, session: Session):
        self.session = session

    # Reads

    def get_role(self, role_id: uuid.UUID) -> Role:
        with reading(self.session):
            role = self.session.get(Role, role_id)
        if role is None:
            raise NotFound(f"Role {role_id} not found")
        return role

    def find_role_by_name(self, name: str) -> Optional[Role]:
        name = normalize_role_name(name)
        with reading(self.session):
            return self.session.exec(select(Role).where(Role.name == name)).first()

    def get_role_by_name(self, name: str) -> Role:
        role = self.find_role_by_name(name)
        if role is None:
            raise NotFound(f"Role {name} not found")
        return role

    def count_assignments(self, role_id: uuid.UUID) -> int:
        with reading(self.session):
            return self.session.exec(
                select(func.count()).select_from(UserRole).where(UserRole.role_id == role_id)
            ).one()

    def has_children(self, role_id: uuid.UUID) -> bool:
        with reading(self.session):
            child = self.session.exec(select(Role).where(Role.inherits_from == role_id)).first()
        return child is not None

    def list_roles(self, tenant_id: Optional[uuid.UUID] = None, include_all: bool = False) -> List[RoleSummary]:
        """
        Roles visible from a tenant: global roles plus the tenant's own.

        ``include_all`` lists every role of every tenant.
        """
        query = select(Role)
        if not include_all:
            if tenant_id is None:
                query = query.where(Role.tenant_id == None)  # noqa: E711
            else:
                query = query.where(or_(Role.tenant_id == None, Role.tenant_id == tenant_id))  # noqa: E711

        with reading(self.session):
            roles = self.session.exec(query.order_by(Role.name)).all()
            counts = dict(
                self.session.exec(
                    select(UserRole.role_id, func.count()).group_by(UserRole.role_id)
                ).all()
            )

        return [
            RoleSummary(
                id=role.id,
                name=role.name,
                tenant_id=role.tenant_id,
                permissions=role.permissions,
                inherits_from=role.inherits_from,
                user_count=counts.get(role.id, 0),
                last_modified_at=role.last_modified_at,
            )
            for role in roles
        ]

    # Writes

    def _check_parent(
        self,
        role_id: Optional[uuid.UUID],
        parent_id: uuid.UUID,
        tenant_id: Optional[uuid.UUID],
    ) -> None:
        if role_id is not None and parent_id == role_id:
            raise ValidationError("Role cannot inherit from itself")

        parent = self.session.get(Role, parent_id)
        if parent is None:
            raise NotFound(f"Parent role {parent_id} not found")
        if parent.inherits_from is not None:
            raise ValidationError(f"Role {parent.name} already inherits; only one level of inheritance is allowed")
        if parent.tenant_id is not None and parent.tenant_id != tenant_id:
            raise ValidationError(f"Role {parent.name} belongs to another tenant")
        if role_id is not None and self.has_children(role_id):
            raise ValidationError("A role that is inherited from cannot inherit itself")

    def create_role(
        self,
        name: str,
        permissions: Optional[Mapping[str, Any]] = None,
        inherits_from: Optional[uuid.UUID] = None,
        tenant_id: Optional[uuid.UUID] = None,
        description: Optional[str] = None,
        created_by: Optional[uuid.UUID] = None,
    ) -> Role:
        name = normalize_role_name(name)
        document = _validate_document(permissions)

        with atomic(self.session):
            if self.session.exec(select(Role).where(Role.name == name)).first() is not None:
                raise DuplicateName(f"Role with name {name} already exists")
            if inherits_from is not None:
                self._check_parent(None, inherits_from, tenant_id)

            now = datetime.utcnow()
            role = Role(
                name=name,
                description=description,
                tenant_id=tenant_id,
                permissions=document,
                inherits_from=inherits_from,
                created_at=now,
                last_modified_at=now,
                last_modified_by=created_by,
            )
            self.session.add(role)

        self.session.refresh(role)
        logger.info(f"Role created: {role.name} ({role.id})")
        return role

    def update_role(
        self,
        role_id: uuid.UUID,
        patch: RoleUpdate,
        modified_by: Optional[uuid.UUID] = None,
    ) -> Role:
        changes = patch.model_dump(exclude_unset=True)

        with atomic(self.session):
            role = self.session.get(Role, role_id)
            if role is None:
                raise NotFound(f"Role {role_id} not found")

            if "name" in changes:
                new_name = normalize_role_name(changes["name"])
                if new_name != role.name:
                    if role.name in PROTECTED_ROLE_NAMES:
                        raise ProtectedRole(f"Cannot rename base role {role.name}")
                    clash = self.session.exec(select(Role).where(Role.name == new_name)).first()
                    if clash is not None and clash.id != role.id:
                        raise DuplicateName(f"Role with name {new_name} already exists")
                    role.name = new_name

            if "tenant_id" in changes and changes["tenant_id"] != role.tenant_id:
                if role.name in PROTECTED_ROLE_NAMES:
                    raise ProtectedRole(f"Base role {role.name} must stay global")
                if self.has_children(role.id):
                    raise ValidationError(f"Other roles inherit from {role.name}; it cannot change tenant")
                role.tenant_id = changes["tenant_id"]

            if "inherits_from" in changes or "tenant_id" in changes:
                parent_id = changes.get("inherits_from", role.inherits_from)
                if parent_id is not None:
                    self._check_parent(role.id, parent_id, role.tenant_id)
                role.inherits_from = parent_id

            if "permissions" in changes:
                role.permissions = _validate_document(changes["permissions"])

            if "description" in changes:
                role.description = changes["description"]

            now = datetime.utcnow()
            role.updated_at = now
            role.last_modified_at = now
            role.last_modified_by = modified_by
            self.session.add(role)

        self.session.refresh(role)
        logger.info(f"Role updated: {role.name} ({role.id})")
        return role

    def delete_role(self, role_id: uuid.UUID) -> None:
        with atomic(self.session):
            role = self.session.get(Role, role_id)
            if role is None:
                raise NotFound(f"Role {role_id} not found")
            if role.name in PROTECTED_ROLE_NAMES:
                raise ProtectedRole(f"Cannot delete base role {role.name}")
            if self.count_assignments(role.id) > 0:
                raise RoleInUse()
            if self.has_children(role.id):
                raise RoleInUse(f"Other roles inherit from {role.name}")
            self.session.delete(role)

        logger.info(f"Role deleted: {role_id}")

    def ensure_base_roles(self) -> List[str]:
        """Create missing global base roles; returns the names created"""
        created = []
        for name in PROTECTED_ROLE_NAMES:
            if self.find_role_by_name(name) is None:
                self.create_role(
                    name,
                    permissions=BASE_ROLE_DOCUMENTS[name],
                    description=f"Base {name.lower()} role",
                )
                created.append(name)
        if created:
            logger.info(f"Base roles created: {', '.join(created)}")
        return created
