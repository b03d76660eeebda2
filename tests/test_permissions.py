"""
Unit tests for permission evaluation
"""

import pytest

from backoffice.core.errors import ValidationError
from backoffice.models import UserRole
from backoffice.models.user import StructuralRole
from backoffice.services.permissions import (
    CATEGORY_KEYS,
    STRUCTURAL_DEFAULTS,
    Capability,
    PermissionEvaluator,
    PermissionSet,
    can_access_path,
    empty_document,
    merge_permission_documents,
    visible_module_slugs,
)
from backoffice.services.principal import build_principal
from backoffice.services.role_store import RoleStore


def assign(db, user, role, tenant):
    db.add(UserRole(user_id=user.id, role_id=role.id, tenant_id=tenant.id))
    db.commit()


def test_structural_templates_are_complete():
    """Every structural role has a value for every flag"""
    for role in StructuralRole:
        document = STRUCTURAL_DEFAULTS[role]
        for category, keys in CATEGORY_KEYS.items():
            assert set(document[category]) == set(keys)
            assert all(isinstance(value, bool) for value in document[category].values())


def test_structural_template_contents():
    platform = PermissionSet.model_validate(STRUCTURAL_DEFAULTS[StructuralRole.PLATFORM_OWNER])
    partner = PermissionSet.model_validate(STRUCTURAL_DEFAULTS[StructuralRole.PARTNER])
    point = PermissionSet.model_validate(STRUCTURAL_DEFAULTS[StructuralRole.POINT])
    employee = PermissionSet.model_validate(STRUCTURAL_DEFAULTS[StructuralRole.EMPLOYEE])

    assert all(platform.has(capability) for capability in Capability)

    assert partner.has(Capability.MODULE_FILES)
    assert partner.has(Capability.POINTS_CREATE)
    assert partner.has(Capability.USERS_CREATE)
    assert not partner.has(Capability.MODULE_BILLING)
    assert not partner.has(Capability.SPECIAL_PLATFORM_OWNER)

    assert point.has(Capability.MODULE_LABELING)
    assert not point.has(Capability.USERS_CREATE)
    assert not point.has(Capability.POINTS_CREATE)

    assert employee.has(Capability.MODULE_LEARNING)
    assert not employee.has(Capability.MODULE_FILES)
    assert not employee.has(Capability.USERS_VIEW)


def test_merge_is_per_category():
    base = empty_document()
    base["modules"]["files"] = True

    merged = merge_permission_documents(base, {"modules": {"labeling": True}})

    assert merged["modules"]["labeling"] is True
    assert merged["modules"]["files"] is True
    assert merged["special"]["isPlatformOwner"] is False


def test_merge_ignores_unknown_and_non_boolean_values():
    merged = merge_permission_documents(
        empty_document(),
        {"modules": {"labeling": "yes", "teleport": True}, "bogus": {"x": True}, "special": True},
    )

    assert merged == empty_document()


def test_merge_all_flag_grants_everything_before_explicit_keys():
    merged = merge_permission_documents(empty_document(), {"all": True, "modules": {"billing": False}})

    assert merged["userManagement"]["assignRoles"] is True
    assert merged["modules"]["billing"] is False


def test_has_rejects_unknown_capability():
    with pytest.raises(ValidationError):
        PermissionSet().has("modules.teleport")


def test_permission_set_round_trips_camel_case_document():
    permissions = PermissionSet.model_validate(STRUCTURAL_DEFAULTS[StructuralRole.PARTNER])

    assert permissions.user_management.create_users is True
    assert permissions.user_management.assign_roles is False
    assert permissions.to_document() == STRUCTURAL_DEFAULTS[StructuralRole.PARTNER]


def test_structural_default_without_role(db, point_user, as_principal):
    permissions = PermissionEvaluator(db).resolve(as_principal(point_user))

    assert permissions.to_document() == STRUCTURAL_DEFAULTS[StructuralRole.POINT]


def test_inheritance_precedence(db, point_user, tenant, as_principal):
    """Own role overrides parent overrides structural default"""
    principal = as_principal(point_user)
    defaults = STRUCTURAL_DEFAULTS[StructuralRole.POINT]
    assert defaults["modules"]["billing"] is False
    assert defaults["userManagement"]["viewUsers"] is False

    store = RoleStore(db)
    parent = store.create_role("Cashier", permissions={"modules": {"billing": True}})
    child = store.create_role(
        "Senior Cashier",
        permissions={"userManagement": {"viewUsers": True}},
        inherits_from=parent.id,
    )
    assign(db, point_user, child, tenant)

    resolved = PermissionEvaluator(db).resolve(principal)
    assert resolved.has("modules.billing") is True
    assert resolved.has("userManagement.viewUsers") is True

    child.permissions = {"modules": {"billing": False}, "userManagement": {"viewUsers": True}}
    db.add(child)
    db.commit()

    resolved = PermissionEvaluator(db).resolve(principal)
    assert resolved.has("modules.billing") is False
    assert resolved.has("userManagement.viewUsers") is True


def test_platform_owner_override_is_absolute(db, user_factory, tenant):
    root = user_factory("root@test.com", is_platform_owner=True, tenant_id=tenant.id)
    store = RoleStore(db)
    role = store.create_role(
        "Locked Down",
        permissions={"special": {
            "isPlatformOwner": False,
            "canAccessOwnerPages": False,
            "canManageBilling": False,
            "canViewAllData": False,
        }},
    )
    assign(db, root, role, tenant)

    principal = build_principal(user_id=root.id, tenant_id=tenant.id, is_platform_owner=True)
    permissions = PermissionEvaluator(db).resolve(principal)

    assert permissions.special.is_platform_owner is True
    assert permissions.special.can_access_owner_pages is True
    assert permissions.special.can_manage_billing is True
    assert permissions.special.can_view_all_data is True


def test_custom_manager_scenario(db, partner_user, tenant, as_principal):
    principal = as_principal(partner_user)
    assert principal.structural_role == StructuralRole.PARTNER

    role = RoleStore(db).create_role(
        "CustomManager",
        permissions={"modules": {"labeling": True}},
        tenant_id=tenant.id,
    )
    assign(db, partner_user, role, tenant)

    permissions = PermissionEvaluator(db).resolve(principal)

    assert permissions.has(Capability.MODULE_LABELING) is True
    assert permissions.has(Capability.MODULE_FILES) == STRUCTURAL_DEFAULTS[StructuralRole.PARTNER]["modules"]["files"]
    assert permissions.has(Capability.SPECIAL_PLATFORM_OWNER) is False


def test_role_in_other_tenant_is_ignored(db, partner_user, other_tenant, as_principal):
    role = RoleStore(db).create_role("Billing Clerk", permissions={"modules": {"billing": True}})
    assign(db, partner_user, role, other_tenant)

    permissions = PermissionEvaluator(db).resolve(as_principal(partner_user))

    assert permissions.has(Capability.MODULE_BILLING) is False


def test_missing_template_fails_closed(db, partner_user, as_principal, monkeypatch):
    monkeypatch.delitem(STRUCTURAL_DEFAULTS, StructuralRole.PARTNER)

    permissions = PermissionEvaluator(db).resolve(as_principal(partner_user))

    assert permissions.granted() == []


def test_can_access_path():
    employee = PermissionSet.model_validate(STRUCTURAL_DEFAULTS[StructuralRole.EMPLOYEE])
    partner = PermissionSet.model_validate(STRUCTURAL_DEFAULTS[StructuralRole.PARTNER])

    assert can_access_path(employee, "/labeling/shelf-life")
    assert not can_access_path(employee, "/files")
    assert not can_access_path(partner, "/owner/users")
    assert can_access_path(partner, "/partner/points")
    assert can_access_path(employee, "/profile")


def test_visible_module_slugs():
    employee = PermissionSet.model_validate(STRUCTURAL_DEFAULTS[StructuralRole.EMPLOYEE])

    assert visible_module_slugs(employee) == ["/dashboard", "/labeling", "/learning", "/haccp"]
