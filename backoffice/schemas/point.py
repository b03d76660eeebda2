"""
Pydantic schemas for points
"""

from pydantic import BaseModel, Field
from typing import Optional


class PointCreate(BaseModel):
    """Point creation schema"""
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)


class PointUpdate(BaseModel):
    """Partial point update; only explicitly set fields are applied"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: Optional[str] = Field(default=None, max_length=255)
    is_active: Optional[bool] = None
