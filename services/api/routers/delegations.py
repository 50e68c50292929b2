# services/api/routers/delegations.py
from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from main import get_stores  # DI helper
from models import StoreSet
from schemas.delegation import (
    DelegationCreate,
    DelegationRemarkCreate,
    DelegationStatusUpdate,
    DelegationUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/delegations", tags=["delegations"])

Stores = Annotated[StoreSet, Depends(get_stores)]


@router.get("")
async def list_delegations(
    stores: Stores,
    user_id: Optional[int] = Query(None, description="Caller's user id"),
    role: Optional[str] = Query(None, description="Caller's role; the privileged role sees all"),
    username: Optional[str] = Query(None, description="Caller's username (doer/assignee match)"),
):
    """
    Delegations visible to the caller, newest first.
    """
    return {"delegations": stores.delegations.list(user_id=user_id, role=role, username=username)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_delegation(body: DelegationCreate, stores: Stores):
    """
    Create one delegation per doer in a single sheet append.
    """
    created = stores.delegations.create(body.changes("doers"), doers=body.doers)
    return {"delegation": created[0], "delegations": created, "count": len(created)}


@router.post("/update-status")
async def update_delegation_status(body: DelegationStatusUpdate, stores: Stores):
    """
    Change status (and optionally the due date), logging revision history
    and the remark.
    """
    delegation = stores.delegations.update_status(
        body.delegation_id,
        body.status,
        user_id=body.user_id,
        username=body.username,
        revised_due_date=body.revised_due_date,
        remark=body.remark,
        evidence_urls=body.evidence_urls,
    )
    return {"message": "Status updated successfully", "delegation": delegation}


@router.get("/remarks")
async def list_delegation_remarks(stores: Stores, delegation_id: int = Query(..., gt=0)):
    return {"remarks": stores.delegations.list_remarks(delegation_id)}


@router.post("/remarks", status_code=status.HTTP_201_CREATED)
async def add_delegation_remark(body: DelegationRemarkCreate, stores: Stores):
    remark = stores.delegations.add_remark(
        body.delegation_id, body.user_id, body.remark, username=body.username
    )
    return {"remark": remark}


@router.get("/history")
async def list_delegation_history(stores: Stores, delegation_id: int = Query(..., gt=0)):
    return {"history": stores.delegations.list_history(delegation_id)}


@router.get("/{delegation_id}")
async def get_delegation(delegation_id: int, stores: Stores):
    return {"delegation": stores.delegations.require(delegation_id)}


@router.put("/{delegation_id}")
async def update_delegation(delegation_id: int, body: DelegationUpdate, stores: Stores):
    delegation = stores.delegations.update(
        delegation_id,
        body.changes("doers", "expected_updated_at"),
        doers=body.doers,
        expected_updated_at=body.expected_updated_at,
    )
    return {"delegation": delegation}


@router.delete("/{delegation_id}")
async def delete_delegation(delegation_id: int, stores: Stores):
    stores.delegations.delete(delegation_id)
    logger.info(f"Deleted delegation {delegation_id}")
    return {"message": "Delegation deleted successfully", "id": delegation_id}
