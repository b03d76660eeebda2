"""
Pydantic schemas for roles and assignments
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime
import uuid


class RoleCreate(BaseModel):
    """Role creation schema"""
    name: str = Field(..., min_length=1, max_length=100)
    permissions: Dict[str, Any] = Field(default_factory=dict)
    inherits_from: Optional[uuid.UUID] = None
    tenant_id: Optional[uuid.UUID] = None
    description: Optional[str] = Field(default=None, max_length=500)


class RoleUpdate(BaseModel):
    """Partial role update; only explicitly set fields are applied"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    permissions: Optional[Dict[str, Any]] = None
    inherits_from: Optional[uuid.UUID] = None
    tenant_id: Optional[uuid.UUID] = None
    description: Optional[str] = Field(default=None, max_length=500)


class RoleSummary(BaseModel):
    """Role listing entry"""
    id: uuid.UUID
    name: str
    tenant_id: Optional[uuid.UUID]
    permissions: Dict[str, Any]
    inherits_from: Optional[uuid.UUID]
    user_count: int = 0
    last_modified_at: Optional[datetime] = None


class RoleAssignment(BaseModel):
    """Result of assigning a role to a user"""
    user_id: uuid.UUID
    tenant_id: uuid.UUID
    role_id: uuid.UUID
    role_name: str
