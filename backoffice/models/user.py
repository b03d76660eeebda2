"""
User model with tenant and point scoping
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
import uuid
from enum import Enum


class StructuralRole(str, Enum):
    """Role implied by the shape of a user's foreign keys, never stored"""
    PLATFORM_OWNER = "PLATFORM_OWNER"
    PARTNER = "PARTNER"
    POINT = "POINT"
    EMPLOYEE = "EMPLOYEE"


class User(SQLModel, table=True):
    """Login identity"""

    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Authentication
    email: str = Field(unique=True, index=True, nullable=False, max_length=255)
    password_hash: str = Field(default="", nullable=False)

    # Profile
    name: Optional[str] = Field(default=None, max_length=200)

    # Scoping; structural role is derived from these three fields
    is_platform_owner: bool = Field(default=False, nullable=False)
    tenant_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tenants.id", index=True)
    point_id: Optional[uuid.UUID] = Field(default=None, foreign_key="points.id", index=True)

    # Status
    is_active: bool = Field(default=True, index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
