"""
Pydantic schemas for the page access matrix
"""

from pydantic import BaseModel


class PageAccessUpdate(BaseModel):
    """Single override in a matrix write batch"""
    slug: str
    allowed: bool


class PageAccessEntry(BaseModel):
    """Matrix row as seen by a tenant owner"""
    slug: str
    label: str
    system: bool
    allowed: bool
