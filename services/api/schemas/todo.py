"""
Pydantic schemas for to-dos and notifications.
"""
from typing import Optional

from pydantic import Field

from . import ApiModel


class TodoCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=500)
    user_id: int = Field(..., gt=0)
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    category: Optional[str] = None
    is_important: bool = False
    assigned_to: Optional[str] = None


class TodoUpdate(ApiModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    category: Optional[str] = None
    is_important: Optional[bool] = None
    assigned_to: Optional[str] = None
    expected_updated_at: Optional[str] = None


class NotificationCreate(ApiModel):
    user_id: int = Field(..., gt=0, description="Recipient")
    title: str = Field(..., min_length=1)
    message: Optional[str] = None
    type: Optional[str] = Field(None, description="Defaults to info")
    link: Optional[str] = None
