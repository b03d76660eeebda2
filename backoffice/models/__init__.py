from backoffice.models.tenant import Tenant
from backoffice.models.point import Point
from backoffice.models.user import User, StructuralRole
from backoffice.models.role import Role, UserRole
from backoffice.models.page_access import RolePageAccess, AppRole
