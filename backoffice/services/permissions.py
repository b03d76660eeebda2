"""
Permission evaluation

Resolves a principal's effective PermissionSet from three layers, lowest
precedence first: the structural-role default template, the parent of the
assigned role, and the assigned role itself. Platform ownership is applied
last and cannot be merged away.
"""

from copy import deepcopy
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import Session, select
import structlog

from backoffice.core.database import reading
from backoffice.core.errors import ValidationError
from backoffice.models.role import Role, UserRole
from backoffice.models.user import StructuralRole
from backoffice.services.principal import Principal

logger = structlog.get_logger(__name__)


class Capability(str, Enum):
    """Capability flags, addressed as ``category.flag``"""
    # Modules
    MODULE_DASHBOARD = "modules.dashboard"
    MODULE_LABELING = "modules.labeling"
    MODULE_FILES = "modules.files"
    MODULE_LEARNING = "modules.learning"
    MODULE_HACCP = "modules.haccp"
    MODULE_MEDICAL_BOOKS = "modules.medicalBooks"
    MODULE_SCHEDULE_SALARY = "modules.scheduleSalary"
    MODULE_EMPLOYEES = "modules.employees"
    MODULE_EQUIPMENT = "modules.equipment"
    MODULE_BILLING = "modules.billing"

    # User management
    USERS_VIEW = "userManagement.viewUsers"
    USERS_CREATE = "userManagement.createUsers"
    USERS_EDIT = "userManagement.editUsers"
    USERS_DELETE = "userManagement.deleteUsers"
    USERS_ASSIGN_ROLES = "userManagement.assignRoles"

    # Role management
    ROLES_VIEW = "roleManagement.viewRoles"
    ROLES_CREATE = "roleManagement.createRoles"
    ROLES_EDIT = "roleManagement.editRoles"
    ROLES_DELETE = "roleManagement.deleteRoles"

    # Organization
    ORG_VIEW_SETTINGS = "organization.viewSettings"
    ORG_EDIT_SETTINGS = "organization.editSettings"
    ORG_VIEW_REPORTS = "organization.viewReports"
    ORG_MANAGE_TENANTS = "organization.manageTenants"

    # Points
    POINTS_VIEW = "points.viewPoints"
    POINTS_CREATE = "points.createPoints"
    POINTS_EDIT = "points.editPoints"
    POINTS_DELETE = "points.deletePoints"

    # Special
    SPECIAL_PLATFORM_OWNER = "special.isPlatformOwner"
    SPECIAL_OWNER_PAGES = "special.canAccessOwnerPages"
    SPECIAL_MANAGE_BILLING = "special.canManageBilling"
    SPECIAL_VIEW_ALL_DATA = "special.canViewAllData"


def _category_keys() -> Dict[str, Tuple[str, ...]]:
    keys: Dict[str, List[str]] = {}
    for capability in Capability:
        category, flag = capability.value.split(".", 1)
        keys.setdefault(category, []).append(flag)
    return {category: tuple(flags) for category, flags in keys.items()}


CATEGORY_KEYS: Dict[str, Tuple[str, ...]] = _category_keys()


class _Category(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ModulePermissions(_Category):
    dashboard: bool = False
    labeling: bool = False
    files: bool = False
    learning: bool = False
    haccp: bool = False
    medical_books: bool = False
    schedule_salary: bool = False
    employees: bool = False
    equipment: bool = False
    billing: bool = False


class UserManagementPermissions(_Category):
    view_users: bool = False
    create_users: bool = False
    edit_users: bool = False
    delete_users: bool = False
    assign_roles: bool = False


class RoleManagementPermissions(_Category):
    view_roles: bool = False
    create_roles: bool = False
    edit_roles: bool = False
    delete_roles: bool = False


class OrganizationPermissions(_Category):
    view_settings: bool = False
    edit_settings: bool = False
    view_reports: bool = False
    manage_tenants: bool = False


class PointPermissions(_Category):
    view_points: bool = False
    create_points: bool = False
    edit_points: bool = False
    delete_points: bool = False


class SpecialPermissions(_Category):
    is_platform_owner: bool = False
    can_access_owner_pages: bool = False
    can_manage_billing: bool = False
    can_view_all_data: bool = False


class PermissionSet(_Category):
    """Resolved capability map for a single authorization decision"""

    modules: ModulePermissions = ModulePermissions()
    user_management: UserManagementPermissions = UserManagementPermissions()
    role_management: RoleManagementPermissions = RoleManagementPermissions()
    organization: OrganizationPermissions = OrganizationPermissions()
    points: PointPermissions = PointPermissions()
    special: SpecialPermissions = SpecialPermissions()

    def to_document(self) -> Dict[str, Dict[str, bool]]:
        return self.model_dump(by_alias=True)

    def has(self, flag: Union[Capability, str]) -> bool:
        """Check a ``category.flag`` capability"""
        name = flag.value if isinstance(flag, Capability) else flag
        category, _, key = name.partition(".")
        if key not in CATEGORY_KEYS.get(category, ()):
            raise ValidationError(f"Unknown capability: {name}")
        return self.to_document()[category][key]

    def granted(self) -> List[str]:
        document = self.to_document()
        return [
            f"{category}.{key}"
            for category, keys in CATEGORY_KEYS.items()
            for key in keys
            if document[category][key]
        ]


def empty_document(value: bool = False) -> Dict[str, Dict[str, bool]]:
    return {category: {key: value for key in keys} for category, keys in CATEGORY_KEYS.items()}


def _grant(**categories: Union[bool, Iterable[str]]) -> Dict[str, Dict[str, bool]]:
    """Build a complete document; ``True`` grants a whole category"""
    document = empty_document()
    for category, keys in categories.items():
        flags = CATEGORY_KEYS[category] if keys is True else keys
        for key in flags:
            document[category][key] = True
    return document


_MODULES_EXCEPT_BILLING = [key for key in CATEGORY_KEYS["modules"] if key != "billing"]

STRUCTURAL_DEFAULTS: Dict[StructuralRole, Dict[str, Dict[str, bool]]] = {
    StructuralRole.PLATFORM_OWNER: empty_document(True),
    StructuralRole.PARTNER: _grant(
        modules=_MODULES_EXCEPT_BILLING,
        userManagement=["viewUsers", "createUsers", "editUsers", "deleteUsers"],
        roleManagement=["viewRoles"],
        organization=["viewSettings", "editSettings", "viewReports"],
        points=True,
    ),
    StructuralRole.POINT: _grant(
        modules=_MODULES_EXCEPT_BILLING,
        organization=["viewReports"],
        points=["viewPoints"],
    ),
    StructuralRole.EMPLOYEE: _grant(
        modules=["dashboard", "labeling", "learning", "haccp"],
    ),
}


def merge_permission_documents(
    base: Mapping[str, Mapping[str, bool]],
    override: Optional[Mapping[str, Any]],
) -> Dict[str, Dict[str, bool]]:
    """
    Layer ``override`` on top of ``base`` per category.

    Explicit boolean keys replace the lower layer; unset keys keep it. A
    top-level ``"all": true`` grants every flag before the explicit keys are
    applied. Unknown categories, unknown keys and non-boolean values are
    ignored.
    """
    merged = {category: dict(base.get(category, {})) for category in CATEGORY_KEYS}
    if not override:
        return merged

    if override.get("all") is True:
        merged = empty_document(True)

    for category, flags in override.items():
        if category == "all":
            continue
        if category not in CATEGORY_KEYS or not isinstance(flags, Mapping):
            logger.debug(f"Ignoring permission category: {category}")
            continue
        for key, value in flags.items():
            if key in CATEGORY_KEYS[category] and isinstance(value, bool):
                merged[category][key] = value
            else:
                logger.debug(f"Ignoring permission flag: {category}.{key}")
    return merged


class PermissionEvaluator:
    """Computes a fresh PermissionSet per request"""

    def __init__(self, session: Session):
        self.session = session

    def assigned_role(self, principal: Principal) -> Optional[Role]:
        """Role held by the principal in its active tenant"""
        if principal.tenant_id is None:
            return None
        with reading(self.session):
            return self.session.exec(
                select(Role)
                .join(UserRole, UserRole.role_id == Role.id)
                .where(UserRole.user_id == principal.user_id)
                .where(UserRole.tenant_id == principal.tenant_id)
            ).first()

    def resolve(self, principal: Principal) -> PermissionSet:
        template = STRUCTURAL_DEFAULTS.get(principal.structural_role)
        if template is None:
            logger.warning(f"No structural template for {principal.structural_role}, failing closed")
            document = empty_document()
        else:
            document = deepcopy(template)

        role = self.assigned_role(principal)
        if role is not None:
            if role.inherits_from is not None:
                with reading(self.session):
                    parent = self.session.get(Role, role.inherits_from)
                if parent is None:
                    logger.warning(f"Role {role.name} inherits from missing role {role.inherits_from}")
                else:
                    document = merge_permission_documents(document, parent.permissions)
            document = merge_permission_documents(document, role.permissions)

        if principal.is_platform_owner:
            document["special"] = {key: True for key in CATEGORY_KEYS["special"]}

        return PermissionSet.model_validate(document)


# Path prefix -> capability gating it, most specific first
PATH_CAPABILITIES: Tuple[Tuple[str, Capability], ...] = (
    ("/owner", Capability.SPECIAL_OWNER_PAGES),
    ("/partner", Capability.POINTS_VIEW),
    ("/dashboard", Capability.MODULE_DASHBOARD),
    ("/labeling", Capability.MODULE_LABELING),
    ("/files", Capability.MODULE_FILES),
    ("/learning", Capability.MODULE_LEARNING),
    ("/haccp", Capability.MODULE_HACCP),
    ("/medical-books", Capability.MODULE_MEDICAL_BOOKS),
    ("/schedule-salary", Capability.MODULE_SCHEDULE_SALARY),
    ("/employees", Capability.MODULE_EMPLOYEES),
    ("/equipment", Capability.MODULE_EQUIPMENT),
    ("/billing", Capability.MODULE_BILLING),
)


def capability_for_path(path: str) -> Optional[Capability]:
    for prefix, capability in PATH_CAPABILITIES:
        if path == prefix or path.startswith(prefix + "/"):
            return capability
    return None


def can_access_path(permissions: PermissionSet, path: str) -> bool:
    """Paths outside the capability map are not gated by permissions"""
    capability = capability_for_path(path)
    if capability is None:
        return True
    return permissions.has(capability)


def visible_module_slugs(permissions: PermissionSet) -> List[str]:
    """Menu slugs a permission set unlocks, in registry order"""
    return [
        prefix
        for prefix, capability in PATH_CAPABILITIES
        if capability.value.startswith("modules.") and permissions.has(capability)
    ]
