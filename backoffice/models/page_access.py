"""
Per-tenant page visibility overrides
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from datetime import datetime
from typing import Optional
import uuid
from enum import Enum


class AppRole(str, Enum):
    """Roles the page access matrix is keyed by"""
    OWNER = "OWNER"
    PARTNER = "PARTNER"
    POINT = "POINT"
    EMPLOYEE = "EMPLOYEE"


class RolePageAccess(SQLModel, table=True):
    """Override row; a missing row means the role default applies"""

    __tablename__ = "role_page_access"
    __table_args__ = (
        UniqueConstraint("tenant_id", "role", "page_slug", name="uq_role_page_access"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)
    role: AppRole = Field(nullable=False)
    page_slug: str = Field(nullable=False, max_length=200)
    allowed: bool = Field(nullable=False)

    updated_at: Optional[datetime] = Field(default_factory=datetime.utcnow)
