# services/api/routers/notifications.py
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from main import get_stores  # DI helper
from models import StoreSet
from schemas.todo import NotificationCreate

router = APIRouter(prefix="/notifications", tags=["notifications"])

Stores = Annotated[StoreSet, Depends(get_stores)]


@router.get("")
async def list_notifications(
    stores: Stores,
    user_id: int = Query(..., gt=0),
    role: Optional[str] = Query(None),
    unread_only: bool = Query(False),
):
    """
    Notifications visible to the caller, newest first.
    """
    return stores.notifications.list(user_id, role=role, unread_only=unread_only)


@router.get("/unread-count")
async def unread_count(
    stores: Stores,
    user_id: int = Query(..., gt=0),
    role: Optional[str] = Query(None),
):
    return {"count": stores.notifications.unread_count(user_id, role=role)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_notification(body: NotificationCreate, stores: Stores):
    return stores.notifications.create(body.changes())


@router.put("/read-all")
async def mark_all_notifications_read(stores: Stores, user_id: int = Query(..., gt=0)):
    return {"success": True, "updated": stores.notifications.mark_all_read(user_id)}


@router.put("/{notification_id}/read")
async def mark_notification_read(notification_id: int, stores: Stores):
    stores.notifications.mark_read(notification_id)
    return {"success": True}


@router.delete("/{notification_id}")
async def delete_notification(notification_id: int, stores: Stores):
    stores.notifications.delete(notification_id)
    return {"success": True}
