"""
Pydantic schemas for identity tokens
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class TokenPayload(BaseModel):
    """JWT token payload"""
    sub: str = Field(..., description="User ID")
    tenant_id: Optional[str] = Field(default=None, description="Tenant ID")
    point_id: Optional[str] = Field(default=None, description="Active point ID")
    is_platform_owner: bool = Field(default=False, description="Platform super-admin flag")
    exp: datetime = Field(..., description="Expiration time")
    iat: datetime = Field(default_factory=datetime.utcnow, description="Issued at")
