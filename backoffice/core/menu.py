"""
Static menu registry

Ordered and immutable; the page access matrix and menu filtering both walk it
in this order.
"""

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


class MenuItem(BaseModel):
    """Navigable page"""

    model_config = ConfigDict(frozen=True)

    slug: str
    label: str
    system: bool = False


MENU: Tuple[MenuItem, ...] = (
    MenuItem(slug="/dashboard", label="Dashboard"),
    MenuItem(slug="/labeling", label="Labeling"),
    MenuItem(slug="/files", label="Files"),
    MenuItem(slug="/learning", label="Learning"),
    MenuItem(slug="/haccp", label="HACCP logs"),
    MenuItem(slug="/medical-books", label="Medical books"),
    MenuItem(slug="/schedule-salary", label="Schedule & salary"),
    MenuItem(slug="/employees", label="My employees"),
    MenuItem(slug="/equipment", label="My equipment"),
    MenuItem(slug="/billing", label="Billing"),
    MenuItem(slug="/owner", label="Ownership", system=True),
    MenuItem(slug="/owner/users", label="Users", system=True),
    MenuItem(slug="/partner", label="Partners"),
    MenuItem(slug="/partner/points", label="My points"),
)


def find_menu_item(slug: str, menu: Tuple[MenuItem, ...] = MENU) -> Optional[MenuItem]:
    for item in menu:
        if item.slug == slug:
            return item
    return None


def is_system_page(slug: str, menu: Tuple[MenuItem, ...] = MENU) -> bool:
    item = find_menu_item(slug, menu)
    return item is not None and item.system
