"""
Pydantic schemas for users and departments.
"""
from typing import Any, List, Optional, Union

from pydantic import Field

from . import ApiModel


class UserFields(ApiModel):
    """Profile fields shared by create and update."""
    phone: Optional[str] = None
    role_name: Optional[str] = None
    image_url: Optional[str] = None

    # Personal details
    dob: Optional[str] = None
    uan_number: Optional[str] = None
    aadhaar_number: Optional[str] = None
    pan_number: Optional[str] = None

    # Address details
    present_address_line1: Optional[str] = None
    present_address_line2: Optional[str] = None
    present_city: Optional[str] = None
    present_country: Optional[str] = None
    present_state: Optional[str] = None
    present_postal_code: Optional[str] = None
    permanent_same_as_present: Optional[bool] = None
    permanent_address_line1: Optional[str] = None
    permanent_address_line2: Optional[str] = None
    permanent_city: Optional[str] = None
    permanent_country: Optional[str] = None
    permanent_state: Optional[str] = None
    permanent_postal_code: Optional[str] = None

    # Professional details
    experience: Optional[str] = None
    source_of_hire: Optional[str] = None
    skill_set: Optional[str] = None
    highest_qualification: Optional[str] = None
    additional_information: Optional[str] = None
    location: Optional[str] = None
    title: Optional[str] = None
    current_salary: Optional[str] = None
    department: Optional[str] = None
    offer_letter_url: Optional[str] = None
    tentative_joining_date: Optional[str] = None

    # JSON columns; a JSON string from older clients is stored as sent
    education: Optional[Union[List[Any], str]] = None
    work_experience: Optional[Union[List[Any], str]] = None


class UserCreate(UserFields):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class UserUpdate(UserFields):
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = None
    password: Optional[str] = Field(None, description="Only changed when non-empty")
    expected_updated_at: Optional[str] = None


class DepartmentCreate(ApiModel):
    name: str = Field(..., description="Department name")


class LoginRequest(ApiModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
