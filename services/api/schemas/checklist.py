"""
Pydantic schemas for checklists with validation.
"""
from typing import List, Optional

from pydantic import Field, model_validator

from . import ApiModel


class ChecklistCreate(ApiModel):
    """Schema for creating a recurring checklist series."""
    question: str = Field(..., min_length=1)
    assignee: str = Field(..., min_length=1)
    doer_name: Optional[str] = None
    doers: List[str] = Field(default_factory=list)
    priority: Optional[str] = None
    department: Optional[str] = None
    verification_required: bool = False
    verifier_name: Optional[str] = None
    attachment_required: bool = False
    frequency: str = Field(..., description="daily | weekly | monthly | quarterly | yearly")
    due_date: str = Field(..., description="First due date")
    weekly_days: List[int] = Field(default_factory=list, description="0=Sunday .. 6=Saturday")
    selected_dates: List[str] = Field(default_factory=list, description="YYYY-MM-DD")
    created_by: Optional[str] = None


class ChecklistUpdate(ApiModel):
    """Update one checklist (``id``) or a whole series (``group_id``)."""
    id: Optional[int] = Field(None, gt=0)
    group_id: Optional[str] = None
    question: Optional[str] = None
    assignee: Optional[str] = None
    doer_name: Optional[str] = None
    priority: Optional[str] = None
    department: Optional[str] = None
    verification_required: Optional[bool] = None
    verifier_name: Optional[str] = None
    attachment_required: Optional[bool] = None
    due_date: Optional[str] = Field(None, description="Single checklist only; refused with group_id")
    status: Optional[str] = None
    expected_updated_at: Optional[str] = None

    @model_validator(mode='after')
    def require_target(self) -> 'ChecklistUpdate':
        if self.id is None and not self.group_id:
            raise ValueError("Checklist ID or group_id is required")
        return self


class ChecklistStatusUpdate(ApiModel):
    checklist_id: int = Field(..., gt=0)
    status: str = Field(..., min_length=1)
    user_id: int = Field(..., gt=0)
    username: Optional[str] = None
    remark: Optional[str] = None
    attachment_url: Optional[str] = None


class ChecklistRemarkCreate(ApiModel):
    checklist_id: int = Field(..., gt=0)
    user_id: int = Field(..., gt=0)
    remark: str = Field(..., min_length=1)
    username: Optional[str] = None
