"""
Access-control service

Entry points consumed by request handlers, CLI scripts and admin tooling.
Each operation authorizes the actor through the guard before touching the
role store or the page matrix.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Union
import uuid

from sqlmodel import Session, select
import structlog

from backoffice.core.database import atomic
from backoffice.core.errors import DuplicateAssignment, Forbidden, NotFound, Unresolvable
from backoffice.core.menu import MenuItem
from backoffice.models.page_access import AppRole
from backoffice.models.point import Point
from backoffice.models.role import Role, UserRole
from backoffice.models.tenant import Tenant
from backoffice.models.user import StructuralRole, User
from backoffice.schemas.page_access import PageAccessEntry, PageAccessUpdate
from backoffice.schemas.role import RoleAssignment, RoleCreate, RoleSummary, RoleUpdate
from backoffice.services.guard import AuthorizationGuard
from backoffice.services.page_access import PageAccessMatrix, parse_app_role
from backoffice.services.permissions import PermissionEvaluator, PermissionSet
from backoffice.services.principal import Principal, PrincipalResolver, principal_from_user
from backoffice.services.role_store import OWNER_ROLE, PARTNER_ROLE, RoleStore

logger = structlog.get_logger(__name__)


class AccessService:
    """Exposed access-control surface"""

    def __init__(self, session: Session):
        self.session = session
        self.resolver = PrincipalResolver(session)
        self.evaluator = PermissionEvaluator(session)
        self.roles = RoleStore(session)
        self.matrix = PageAccessMatrix(session)
        self.guard = AuthorizationGuard(session)

    def resolve_principal(self, user_id: uuid.UUID) -> Principal:
        return self.resolver.resolve(user_id)

    def resolve_permissions(self, principal: Principal) -> PermissionSet:
        return self.evaluator.resolve(principal)

    # Assignment

    def assign_role(
        self,
        actor: Optional[Principal],
        target_user_id: uuid.UUID,
        target_tenant_id: uuid.UUID,
        role_name: str,
    ) -> RoleAssignment:
        """Replace the user's role in the tenant with ``role_name``"""
        actor = self.guard.require_authenticated(actor)
        if not self.guard.can_assign_role(actor, target_tenant_id):
            self.guard.deny(Forbidden("Cannot assign roles in this tenant"), actor, "assign_denied")

        actor_is_owner = actor.is_platform_owner or self.guard.is_tenant_owner(actor, target_tenant_id)
        if target_user_id == actor.user_id and not actor_is_owner:
            self.guard.deny(Forbidden("Cannot assign a role to yourself"), actor, "self_assign_denied")

        role = self.roles.get_role_by_name(role_name)
        if role.tenant_id is not None and role.tenant_id != target_tenant_id:
            raise Forbidden(f"Role {role.name} belongs to another tenant")
        if role.name == OWNER_ROLE and not actor_is_owner:
            self.guard.deny(Forbidden("Only owners may grant the OWNER role"), actor, "owner_grant_denied")

        with atomic(self.session):
            if self.session.get(Tenant, target_tenant_id) is None:
                raise NotFound(f"Tenant {target_tenant_id} not found")
            user = self.session.get(User, target_user_id)
            if user is None:
                raise NotFound(f"User {target_user_id} not found")
            if user.tenant_id != target_tenant_id:
                raise Forbidden("User does not belong to this tenant")

            existing = self.session.exec(
                select(UserRole)
                .where(UserRole.user_id == target_user_id)
                .where(UserRole.tenant_id == target_tenant_id)
            ).all()
            if len(existing) == 1 and existing[0].role_id == role.id:
                raise DuplicateAssignment(f"User already holds role {role.name}")
            if not actor_is_owner and self.guard.holds_role(user.id, target_tenant_id, OWNER_ROLE):
                self.guard.deny(Forbidden("Only owners may change an owner's role"), actor, "owner_demote_denied")

            for row in existing:
                self.session.delete(row)
            # Old rows must be gone before the unique (user, tenant) insert
            self.session.flush()

            self.session.add(UserRole(user_id=target_user_id, role_id=role.id, tenant_id=target_tenant_id))

        logger.info(f"Role assigned: user={target_user_id} tenant={target_tenant_id} role={role.name} by={actor.user_id}")
        return RoleAssignment(
            user_id=target_user_id,
            tenant_id=target_tenant_id,
            role_id=role.id,
            role_name=role.name,
        )

    # Points

    def switch_point(self, actor: Optional[Principal], point_id: uuid.UUID) -> Principal:
        """
        Move a partner's active point to another active point of its tenant.

        The structural role follows the stored point, so a partner that has
        switched is recognized by its PARTNER or OWNER role assignment.
        """
        actor = self.guard.require_authenticated(actor)
        tenant_id = self.guard.require_tenant_scoped(actor)
        if not (
            actor.structural_role == StructuralRole.PARTNER
            or self.guard.holds_role(actor.user_id, tenant_id, PARTNER_ROLE)
            or self.guard.is_tenant_owner(actor, tenant_id)
        ):
            self.guard.deny(Forbidden("Only partners can switch points"), actor, "switch_point_denied")

        with atomic(self.session):
            point = self.session.get(Point, point_id)
            if point is None or point.tenant_id != tenant_id or not point.is_active:
                raise NotFound(f"Point {point_id} not found")
            user = self.session.get(User, actor.user_id)
            if user is None:
                raise Unresolvable(f"User {actor.user_id} does not exist")
            user.point_id = point_id
            user.updated_at = datetime.utcnow()
            self.session.add(user)

        self.session.refresh(user)
        logger.info(f"Point switched: user={actor.user_id} point={point_id}")
        return principal_from_user(user)

    # Roles

    def _require_role_scope(self, actor: Principal, role: Role) -> None:
        if actor.is_platform_owner:
            return
        if role.tenant_id is None or role.tenant_id != actor.tenant_id:
            self.guard.deny(Forbidden(f"Role {role.name} is outside your tenant"), actor, "role_scope")

    def list_roles(self, actor: Optional[Principal]) -> List[RoleSummary]:
        actor = self.guard.require_role_management(actor, "view")
        if actor.is_platform_owner:
            return self.roles.list_roles(include_all=True)
        return self.roles.list_roles(tenant_id=self.guard.require_tenant_scoped(actor))

    def create_role(self, actor: Optional[Principal], data: RoleCreate) -> Role:
        actor = self.guard.require_role_management(actor, "create")
        tenant_id = data.tenant_id
        if not actor.is_platform_owner:
            actor_tenant = self.guard.require_tenant_scoped(actor)
            if tenant_id is None:
                tenant_id = actor_tenant
            elif tenant_id != actor_tenant:
                self.guard.deny(Forbidden("Cannot create roles for another tenant"), actor, "role_scope")

        return self.roles.create_role(
            name=data.name,
            permissions=data.permissions,
            inherits_from=data.inherits_from,
            tenant_id=tenant_id,
            description=data.description,
            created_by=actor.user_id,
        )

    def update_role(self, actor: Optional[Principal], role_id: uuid.UUID, patch: RoleUpdate) -> Role:
        actor = self.guard.require_role_management(actor, "edit")
        self._require_role_scope(actor, self.roles.get_role(role_id))
        if (
            not actor.is_platform_owner
            and "tenant_id" in patch.model_fields_set
            and patch.tenant_id != actor.tenant_id
        ):
            self.guard.deny(Forbidden("Cannot move roles to another tenant"), actor, "role_scope")
        return self.roles.update_role(role_id, patch, modified_by=actor.user_id)

    def delete_role(self, actor: Optional[Principal], role_id: uuid.UUID) -> None:
        actor = self.guard.require_role_management(actor, "delete")
        self._require_role_scope(actor, self.roles.get_role(role_id))
        self.roles.delete_role(role_id)

    # Pages

    def get_page_matrix(
        self,
        actor: Optional[Principal],
        tenant_id: uuid.UUID,
        role: Union[AppRole, str],
    ) -> List[PageAccessEntry]:
        self.guard.require_tenant_owner(actor, tenant_id)
        return self.matrix.get_matrix(tenant_id, parse_app_role(role))

    def set_page_matrix(
        self,
        actor: Optional[Principal],
        tenant_id: uuid.UUID,
        role: Union[AppRole, str],
        updates: Iterable[PageAccessUpdate],
    ) -> None:
        self.guard.require_tenant_owner(actor, tenant_id)
        self.matrix.set_overrides(tenant_id, parse_app_role(role), updates)

    def filter_menu(self, principal: Optional[Principal]) -> List[MenuItem]:
        return self.guard.filter_menu_for_principal(principal)
