"""
Authorization guard

The only decision surface for callers. Every predicate either returns a
value or raises a specific AccessError kind.
"""

from typing import Iterable, List, Optional, Union
import uuid

from sqlmodel import Session, select
import structlog

from backoffice.core.database import reading
from backoffice.core.errors import Forbidden, NoTenant, Unauthorized
from backoffice.core.menu import MENU, MenuItem, find_menu_item
from backoffice.models.page_access import AppRole
from backoffice.models.role import Role, UserRole
from backoffice.models.user import StructuralRole
from backoffice.services.page_access import PageAccessMatrix
from backoffice.services.permissions import Capability, PermissionEvaluator, PermissionSet
from backoffice.services.principal import Principal
from backoffice.services.role_store import OWNER_ROLE

logger = structlog.get_logger(__name__)

_PAGE_ROLES = {
    StructuralRole.PARTNER: AppRole.PARTNER,
    StructuralRole.POINT: AppRole.POINT,
    StructuralRole.EMPLOYEE: AppRole.EMPLOYEE,
}

_ROLE_ACTIONS = {
    "view": Capability.ROLES_VIEW,
    "create": Capability.ROLES_CREATE,
    "edit": Capability.ROLES_EDIT,
    "delete": Capability.ROLES_DELETE,
}


class AuthorizationGuard:
    """Composed authorization predicates"""

    def __init__(self, session: Session):
        self.session = session
        self.evaluator = PermissionEvaluator(session)
        self.matrix = PageAccessMatrix(session)

    def deny(self, error: Exception, principal: Optional[Principal], reason: str):
        logger.warning(
            f"Access denied ({reason}): user_id={getattr(principal, 'user_id', None)} "
            f"role={getattr(principal, 'structural_role', None)} "
            f"tenant_id={getattr(principal, 'tenant_id', None)}"
        )
        raise error

    # Scope

    def require_authenticated(self, principal: Optional[Principal]) -> Principal:
        if principal is None:
            self.deny(Unauthorized(), None, "unauthenticated")
        return principal

    def require_tenant_scoped(self, principal: Optional[Principal]) -> uuid.UUID:
        principal = self.require_authenticated(principal)
        if not principal.is_tenant_scoped:
            self.deny(NoTenant(), principal, "no_tenant")
        return principal.tenant_id

    def require_structural_role(self, principal: Optional[Principal], role: StructuralRole) -> Principal:
        return self.require_any_structural_role(principal, [role])

    def require_any_structural_role(
        self,
        principal: Optional[Principal],
        roles: Iterable[StructuralRole],
    ) -> Principal:
        principal = self.require_authenticated(principal)
        allowed = set(roles)
        if principal.structural_role not in allowed:
            needed = ", ".join(sorted(role.value for role in allowed))
            self.deny(Forbidden(f"Requires structural role: {needed}"), principal, "role_denied")
        return principal

    # Capabilities

    def permissions_for(self, principal: Optional[Principal]) -> PermissionSet:
        return self.evaluator.resolve(self.require_authenticated(principal))

    def require_capability(self, principal: Optional[Principal], flag: Union[Capability, str]) -> PermissionSet:
        permissions = self.permissions_for(principal)
        if not permissions.has(flag):
            name = flag.value if isinstance(flag, Capability) else flag
            self.deny(Forbidden(f"Permission required: {name}"), principal, "capability_denied")
        return permissions

    def can_manage_roles(self, principal: Principal, action: str) -> bool:
        if principal.is_platform_owner:
            return True
        return self.evaluator.resolve(principal).has(_ROLE_ACTIONS[action])

    def require_role_management(self, principal: Optional[Principal], action: str) -> Principal:
        principal = self.require_authenticated(principal)
        if not self.can_manage_roles(principal, action):
            self.deny(Forbidden(f"Permission required: {_ROLE_ACTIONS[action].value}"), principal, "role_management")
        return principal

    # Tenant ownership

    def holds_role(self, user_id: uuid.UUID, tenant_id: uuid.UUID, role_name: str) -> bool:
        with reading(self.session):
            assignment = self.session.exec(
                select(UserRole)
                .join(Role, UserRole.role_id == Role.id)
                .where(UserRole.user_id == user_id)
                .where(UserRole.tenant_id == tenant_id)
                .where(Role.name == role_name)
            ).first()
        return assignment is not None

    def is_tenant_owner(self, principal: Principal, tenant_id: uuid.UUID) -> bool:
        """Holds the OWNER role in the tenant; platform ownership does not count"""
        return self.holds_role(principal.user_id, tenant_id, OWNER_ROLE)

    def require_tenant_owner(self, principal: Optional[Principal], tenant_id: uuid.UUID) -> Principal:
        principal = self.require_authenticated(principal)
        if not self.is_tenant_owner(principal, tenant_id):
            self.deny(Forbidden("Only the tenant owner may do this"), principal, "not_tenant_owner")
        return principal

    def can_assign_role(self, actor: Principal, target_tenant_id: uuid.UUID) -> bool:
        if actor.is_platform_owner:
            return True
        if actor.tenant_id != target_tenant_id:
            return False
        if self.is_tenant_owner(actor, target_tenant_id):
            return True
        return self.evaluator.resolve(actor).has(Capability.USERS_ASSIGN_ROLES)

    # Pages

    def app_role_for(self, principal: Principal) -> AppRole:
        """Page-matrix role of a principal"""
        if principal.is_platform_owner:
            return AppRole.OWNER
        if principal.is_tenant_scoped and self.is_tenant_owner(principal, principal.tenant_id):
            return AppRole.OWNER
        return _PAGE_ROLES.get(principal.structural_role, AppRole.EMPLOYEE)

    def filter_menu_for_principal(self, principal: Optional[Principal]) -> List[MenuItem]:
        principal = self.require_authenticated(principal)
        role = self.app_role_for(principal)
        if role == AppRole.OWNER:
            return list(MENU)
        if not principal.is_tenant_scoped:
            return []
        return self.matrix.list_allowed_items(principal.tenant_id, role)

    def can_view_page(self, principal: Optional[Principal], slug: str) -> bool:
        principal = self.require_authenticated(principal)
        if find_menu_item(slug) is None:
            return False
        role = self.app_role_for(principal)
        if role == AppRole.OWNER:
            return True
        if not principal.is_tenant_scoped:
            return False
        return self.matrix.is_page_allowed(principal.tenant_id, role, slug)

    def require_page(self, principal: Optional[Principal], slug: str) -> Principal:
        if not self.can_view_page(principal, slug):
            self.deny(Forbidden(f"Page not available: {slug}"), principal, "page_denied")
        return principal
