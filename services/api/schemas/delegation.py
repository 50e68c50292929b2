"""
Pydantic schemas for delegations, their remarks and status changes.
"""
from typing import Any, List, Optional, Union

from pydantic import Field

from . import ApiModel


class DelegationCreate(ApiModel):
    """Schema for creating delegation(s); one row per entry of ``doers``."""
    user_id: int = Field(..., gt=0, description="Creator user id")
    delegation_name: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    assigned_to: str = Field(..., min_length=1)
    doer_name: Optional[str] = None
    doers: List[str] = Field(default_factory=list, description="One delegation per doer")
    department: Optional[str] = None
    priority: Optional[str] = Field(None, description="Defaults to medium")
    due_date: Optional[str] = Field(None, description="dd/mm/yyyy HH:MM:SS or YYYY-MM-DDTHH:MM")
    voice_note_url: Optional[str] = None
    reference_docs: Optional[Union[List[Any], str]] = None
    evidence_required: bool = False
    category: Optional[str] = None
    is_important: bool = False


class DelegationUpdate(ApiModel):
    """Partial update; only sent fields change."""
    delegation_name: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = None
    assigned_to: Optional[str] = None
    doer_name: Optional[str] = None
    doers: Optional[List[str]] = None
    department: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[str] = None
    voice_note_url: Optional[str] = None
    reference_docs: Optional[Union[List[Any], str]] = None
    evidence_required: Optional[bool] = None
    category: Optional[str] = None
    is_important: Optional[bool] = None
    expected_updated_at: Optional[str] = Field(
        None, description="Reject with 409 if the row changed since this updated_at"
    )


class DelegationStatusUpdate(ApiModel):
    delegation_id: int = Field(..., gt=0)
    status: str = Field(..., min_length=1)
    user_id: int = Field(..., gt=0)
    username: Optional[str] = None
    revised_due_date: Optional[str] = None
    remark: Optional[str] = None
    evidence_urls: Optional[List[str]] = None


class DelegationRemarkCreate(ApiModel):
    delegation_id: int = Field(..., gt=0)
    user_id: int = Field(..., gt=0)
    remark: str = Field(..., min_length=1)
    username: Optional[str] = None
