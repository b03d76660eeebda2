"""
Page access matrix

Per-tenant, per-role overrides on top of the static menu registry. A missing
override row falls back to the role default: OWNER sees every page, every
other role sees none.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Tuple, Union
import uuid

from sqlmodel import Session, select
import structlog

from backoffice.core.database import atomic, reading
from backoffice.core.errors import CannotDisableSystemPage, ValidationError
from backoffice.core.menu import MENU, MenuItem, find_menu_item
from backoffice.models.page_access import AppRole, RolePageAccess
from backoffice.schemas.page_access import PageAccessEntry, PageAccessUpdate

logger = structlog.get_logger(__name__)


def parse_app_role(role: Union[AppRole, str]) -> AppRole:
    if isinstance(role, AppRole):
        return role
    try:
        return AppRole(str(role).strip().upper())
    except ValueError as e:
        raise ValidationError(f"Unknown page role: {role}") from e


def default_allowed(role: AppRole) -> bool:
    return role == AppRole.OWNER


class PageAccessMatrix:
    """Reads and writes page visibility overrides"""

    def __init__(self, session: Session, menu: Tuple[MenuItem, ...] = MENU):
        self.session = session
        self.menu = menu

    def _overrides(self, tenant_id: uuid.UUID, role: AppRole) -> Dict[str, bool]:
        with reading(self.session):
            rows = self.session.exec(
                select(RolePageAccess)
                .where(RolePageAccess.tenant_id == tenant_id)
                .where(RolePageAccess.role == role)
            ).all()
        return {row.page_slug: row.allowed for row in rows}

    def is_page_allowed(self, tenant_id: uuid.UUID, role: AppRole, slug: str) -> bool:
        if find_menu_item(slug, self.menu) is None:
            return False
        with reading(self.session):
            row = self.session.exec(
                select(RolePageAccess)
                .where(RolePageAccess.tenant_id == tenant_id)
                .where(RolePageAccess.role == role)
                .where(RolePageAccess.page_slug == slug)
            ).first()
        if row is not None:
            return row.allowed
        return default_allowed(role)

    def get_matrix(self, tenant_id: uuid.UUID, role: AppRole) -> List[PageAccessEntry]:
        overrides = self._overrides(tenant_id, role)
        return [
            PageAccessEntry(
                slug=item.slug,
                label=item.label,
                system=item.system,
                allowed=overrides.get(item.slug, default_allowed(role)),
            )
            for item in self.menu
        ]

    def list_allowed_slugs(self, tenant_id: uuid.UUID, role: AppRole) -> List[str]:
        return [entry.slug for entry in self.get_matrix(tenant_id, role) if entry.allowed]

    def list_allowed_items(self, tenant_id: uuid.UUID, role: AppRole) -> List[MenuItem]:
        allowed = set(self.list_allowed_slugs(tenant_id, role))
        return [item for item in self.menu if item.slug in allowed]

    def _check_updates(self, role: AppRole, updates: List[PageAccessUpdate]) -> None:
        for update in updates:
            item = find_menu_item(update.slug, self.menu)
            if item is None:
                raise ValidationError(f"Unknown page: {update.slug}")
            if role == AppRole.OWNER and item.system and update.allowed is False:
                raise CannotDisableSystemPage(f"Cannot disable system page {update.slug} for OWNER")

    def set_overrides(
        self,
        tenant_id: uuid.UUID,
        role: AppRole,
        updates: Iterable[PageAccessUpdate],
    ) -> None:
        """Apply the whole batch or none of it"""
        updates = list(updates)
        self._check_updates(role, updates)

        with atomic(self.session):
            for update in updates:
                row = self.session.exec(
                    select(RolePageAccess)
                    .where(RolePageAccess.tenant_id == tenant_id)
                    .where(RolePageAccess.role == role)
                    .where(RolePageAccess.page_slug == update.slug)
                ).first()
                if row is None:
                    row = RolePageAccess(
                        tenant_id=tenant_id,
                        role=role,
                        page_slug=update.slug,
                        allowed=update.allowed,
                    )
                else:
                    row.allowed = update.allowed
                    row.updated_at = datetime.utcnow()
                self.session.add(row)

        logger.info(f"Page overrides saved: tenant={tenant_id} role={role.value} count={len(updates)}")
