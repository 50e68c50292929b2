# services/api/routers/users.py
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from main import get_stores  # DI helper
from models import StoreSet
from schemas.user import DepartmentCreate, LoginRequest, UserCreate, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])
departments_router = APIRouter(prefix="/departments", tags=["departments"])
login_router = APIRouter(prefix="/login", tags=["auth"])

Stores = Annotated[StoreSet, Depends(get_stores)]


# ========== Users ==========

@router.get("")
async def list_users(stores: Stores):
    return {"users": stores.users.list()}


@router.get("/{user_id}")
async def get_user(user_id: int, stores: Stores):
    return {"user": stores.users.require(user_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(body: UserCreate, stores: Stores):
    return {"user": stores.users.create(body.changes())}


@router.put("/{user_id}")
async def update_user(user_id: int, body: UserUpdate, stores: Stores):
    user = stores.users.update(
        user_id,
        body.changes("expected_updated_at"),
        expected_updated_at=body.expected_updated_at,
    )
    return {"user": user}


@router.delete("/{user_id}")
async def delete_user(user_id: int, stores: Stores):
    stores.users.delete(user_id)
    return {"message": "User deleted successfully"}


# ========== Departments ==========

@departments_router.get("")
async def list_departments(stores: Stores):
    return {"departments": stores.departments.list()}


@departments_router.post("", status_code=status.HTTP_201_CREATED)
async def add_department(body: DepartmentCreate, stores: Stores):
    return {"department": stores.departments.add(body.name)}


@departments_router.delete("")
async def delete_department(stores: Stores, name: str = Query(..., min_length=1)):
    return {"department": stores.departments.delete_by_name(name)}


# ========== Login ==========

@login_router.post("")
async def login(body: LoginRequest, stores: Stores):
    """Check a username/password pair; returns the user without its password."""
    user = stores.users.verify_credentials(body.username, body.password)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid username or password")
    return {"user": user}
