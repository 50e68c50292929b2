# services/api/routers/todos.py
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from main import get_stores  # DI helper
from models import StoreSet
from schemas.todo import TodoCreate, TodoUpdate

router = APIRouter(prefix="/todos", tags=["todos"])

Stores = Annotated[StoreSet, Depends(get_stores)]


@router.get("")
async def list_todos(
    stores: Stores,
    user_id: Optional[int] = Query(None),
    status_: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = Query(None, description="inbox | trash"),
    is_important: Optional[bool] = Query(None),
):
    """
    To-dos filtered on any combination of status, category and importance.
    """
    return stores.todos.list(
        user_id=user_id, status=status_, category=category, is_important=is_important
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_todo(body: TodoCreate, stores: Stores):
    return stores.todos.create(body.changes())


@router.put("/{todo_id}")
async def update_todo(todo_id: int, body: TodoUpdate, stores: Stores):
    return stores.todos.update(
        todo_id,
        body.changes("expected_updated_at"),
        expected_updated_at=body.expected_updated_at,
    )


@router.put("/{todo_id}/trash")
async def trash_todo(todo_id: int, stores: Stores):
    return stores.todos.move_to_trash(todo_id)


@router.put("/{todo_id}/restore")
async def restore_todo(todo_id: int, stores: Stores):
    return stores.todos.restore(todo_id)


@router.put("/{todo_id}/important")
async def toggle_todo_important(todo_id: int, stores: Stores):
    return stores.todos.toggle_important(todo_id)


@router.delete("/{todo_id}")
async def delete_todo(todo_id: int, stores: Stores):
    stores.todos.delete(todo_id)
    return {"success": True}
