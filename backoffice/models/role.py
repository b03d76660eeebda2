"""
Named roles and their assignment to users
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON, UniqueConstraint
from datetime import datetime
from typing import Any, Dict, Optional
import uuid


class Role(SQLModel, table=True):
    """
    Reusable permission bundle.

    ``tenant_id`` is null for global roles. ``inherits_from`` points at a
    parent role that itself has no parent.
    """

    __tablename__ = "roles"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True, index=True, nullable=False, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    tenant_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tenants.id", index=True)

    permissions: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    inherits_from: Optional[uuid.UUID] = Field(default=None, foreign_key="roles.id")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    last_modified_at: Optional[datetime] = None
    last_modified_by: Optional[uuid.UUID] = None


class UserRole(SQLModel, table=True):
    """Assignment of one role to one user within one tenant"""

    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "tenant_id", name="uq_user_roles_user_tenant"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    role_id: uuid.UUID = Field(foreign_key="roles.id", index=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
