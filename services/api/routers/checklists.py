# services/api/routers/checklists.py
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from main import get_stores  # DI helper
from models import StoreSet
from schemas.checklist import (
    ChecklistCreate,
    ChecklistRemarkCreate,
    ChecklistStatusUpdate,
    ChecklistUpdate,
)

router = APIRouter(prefix="/checklists", tags=["checklists"])

Stores = Annotated[StoreSet, Depends(get_stores)]


@router.get("")
async def list_checklists(
    stores: Stores,
    group_id: Optional[str] = Query(None),
    doer_name: Optional[str] = Query(None),
):
    """
    All checklists (optionally one series or one doer), soonest due first.
    """
    return {"checklists": stores.checklists.list(group_id=group_id, doer_name=doer_name)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_checklists(body: ChecklistCreate, stores: Stores):
    """
    Expand the frequency into dated checklists for every doer.
    """
    result = stores.checklists.create(
        body.changes("doers", "weekly_days", "selected_dates"),
        doers=body.doers,
        weekly_days=body.weekly_days,
        selected_dates=body.selected_dates,
    )
    return {
        "message": "Checklists created successfully",
        "count": result["count"],
        "id": result["first_id"],
        "group_ids": result["group_ids"],
    }


@router.put("")
async def update_checklists(body: ChecklistUpdate, stores: Stores):
    """
    Update one checklist by ``id``, or every checklist of ``group_id``.
    """
    changes = body.changes("id", "group_id", "expected_updated_at")
    if body.group_id:
        updated = stores.checklists.update_group(body.group_id, changes)
        return {"message": "Checklists updated successfully", "updated": updated}
    checklist = stores.checklists.update(body.id, changes, expected_updated_at=body.expected_updated_at)
    return {"checklist": checklist}


@router.delete("")
async def delete_checklists(
    stores: Stores,
    id: Optional[int] = Query(None, gt=0),
    group_id: Optional[str] = Query(None),
):
    if not id and not group_id:
        raise HTTPException(status_code=400, detail="Checklist ID or group_id is required")
    if group_id:
        deleted = stores.checklists.delete_group(group_id)
        return {"message": f"{deleted} checklists deleted successfully", "deleted": deleted}
    stores.checklists.delete(id)
    return {"message": "Checklist deleted successfully", "deleted": 1}


@router.post("/update-status")
async def update_checklist_status(body: ChecklistStatusUpdate, stores: Stores):
    checklist = stores.checklists.update_status(
        body.checklist_id,
        body.status,
        user_id=body.user_id,
        username=body.username,
        remark=body.remark,
        attachment_url=body.attachment_url,
    )
    return {"message": "Checklist status updated successfully", "status": checklist["status"]}


@router.get("/remarks")
async def list_checklist_remarks(stores: Stores, checklist_id: int = Query(..., gt=0)):
    return {"remarks": stores.checklists.list_remarks(checklist_id)}


@router.post("/remarks", status_code=status.HTTP_201_CREATED)
async def add_checklist_remark(body: ChecklistRemarkCreate, stores: Stores):
    remark = stores.checklists.add_remark(
        body.checklist_id, body.user_id, body.remark, username=body.username
    )
    return {"remark": remark}


@router.get("/history")
async def list_checklist_history(stores: Stores, checklist_id: int = Query(..., gt=0)):
    return {"history": stores.checklists.list_history(checklist_id)}
