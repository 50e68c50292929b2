# services/api/models/delegation.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from core.codec import parse_int
from core.dates import format_due_date, status_for_due_date
from core.errors import ValidationError
from core.validation import ensure_unique, require_fields, validate_category, validate_id, validate_status

from .base import Record, SheetStore, newest_first, same_text
from .tables import DELEGATION, DELEGATION_HISTORY, DELEGATION_REMARKS

logger = logging.getLogger(__name__)


def _due_date_or_400(value: Any) -> Optional[str]:
    if value is None or str(value).strip() == "":
        return None
    formatted = format_due_date(value)
    if formatted is None:
        raise ValidationError(f"Invalid due date: {value!r}", field="due_date")
    return formatted


class DelegationStore(SheetStore):
    """
    Delegations: tasks handed from one user to one or more doers, with a
    remark thread and a revision history per delegation.
    """

    schema = DELEGATION

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.remarks = self._child(DELEGATION_REMARKS, "delegation_id")
        self.history = self._child(DELEGATION_HISTORY, "delegation_id")

    def _status_for(self, due_date: Optional[str]) -> str:
        if not due_date:
            return "pending"
        return status_for_due_date(due_date, self.clock(), compare_time=True)

    # ========== Read ==========

    def list(
        self,
        user_id: Any = None,
        role: Optional[str] = None,
        username: Optional[str] = None,
    ) -> List[Record]:
        """
        Delegations visible to the caller, newest first.

        The privileged role sees everything; anyone else sees delegations
        they created, or where they are the doer or the assignee.
        """
        if self.is_privileged(role):
            predicate = None
        else:
            uid = parse_int(user_id)

            def predicate(r: Record) -> bool:
                if uid is not None and parse_int(r.get("user_id")) == uid:
                    return True
                return same_text(r.get("doer_name"), username) or same_text(r.get("assigned_to"), username)

        return self.table.list(predicate, sort_key=newest_first(), reverse=True)

    # ========== Write ==========

    def create(self, data: Record, doers: Optional[List[str]] = None) -> List[Record]:
        """
        One delegation row per doer, written in a single append.
        Without doers a single row is created for ``doer_name`` (may be blank).
        """
        require_fields(data, "user_id", "delegation_name", "assigned_to")
        validate_id(data.get("user_id"), "user_id")

        doer_list = [d for d in (doers or []) if d and str(d).strip()]
        ensure_unique(doer_list, "doers")
        if not doer_list:
            doer_list = [data.get("doer_name")]

        due_date = _due_date_or_400(data.get("due_date"))
        base = {
            **data,
            "description": data.get("description") or None,
            "department": data.get("department") or None,
            "priority": data.get("priority") or "medium",
            "due_date": due_date,
            "status": self._status_for(due_date),
            "reference_docs": data.get("reference_docs") or [],
            "evidence_required": bool(data.get("evidence_required")),
            "evidence_urls": data.get("evidence_urls") or [],
            "category": validate_category(data.get("category") or "inbox"),
            "is_important": bool(data.get("is_important")),
        }
        rows = [{**base, "doer_name": doer} for doer in doer_list]
        created = self.table.create_many(rows)
        logger.info(f"Created {len(created)} delegation(s) '{data.get('delegation_name')}'")
        return created

    def update(
        self,
        delegation_id: Any,
        changes: Record,
        doers: Optional[List[str]] = None,
        expected_updated_at: Optional[str] = None,
    ) -> Record:
        """
        Partial update. A new due date re-derives the status unless an
        explicit status is given; ``doers`` (first entry) fills ``doer_name``
        when no doer name is given.
        """
        did = validate_id(delegation_id)
        changes = dict(changes)

        if changes.get("status") is not None:
            changes["status"] = validate_status(changes["status"])
        else:
            changes.pop("status", None)
        if changes.get("category") is not None:
            changes["category"] = validate_category(changes["category"])
        if "due_date" in changes:
            changes["due_date"] = _due_date_or_400(changes["due_date"])
            changes.setdefault("status", self._status_for(changes["due_date"]))
        if not changes.get("doer_name") and doers:
            changes["doer_name"] = doers[0]

        return self.table.update(did, changes, expected_updated_at=expected_updated_at)

    def update_status(
        self,
        delegation_id: Any,
        status: str,
        user_id: Any,
        username: Optional[str] = None,
        revised_due_date: Any = None,
        remark: Optional[str] = None,
        evidence_urls: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Status change: update the row, record a revision-history entry, and
        add the remark (if any) to the thread.
        """
        did = validate_id(delegation_id)
        new_status = validate_status(status)
        validate_id(user_id, "user_id")

        current = self.require(did)
        old_status = current.get("status")
        old_due_date = current.get("due_date")
        new_due_date = _due_date_or_400(revised_due_date) or old_due_date

        changes: Record = {"status": new_status, "due_date": new_due_date}
        if evidence_urls is not None:
            changes["evidence_urls"] = evidence_urls
        updated = self.table.update(did, changes)

        self.history.add({
            "delegation_id": did,
            "old_status": old_status,
            "new_status": new_status,
            "old_due_date": old_due_date,
            "new_due_date": new_due_date,
            "reason": remark or None,
            "evidence_urls": evidence_urls or [],
        })
        if remark:
            self.remarks.add({
                "delegation_id": did,
                "user_id": user_id,
                "username": username or "Unknown User",
                "remark": remark,
            })

        logger.info(f"Delegation {did}: {old_status} -> {new_status}")
        return updated

    # ========== Remarks / history ==========

    def list_remarks(self, delegation_id: Any) -> List[Record]:
        return self.remarks.list_for(delegation_id)

    def add_remark(self, delegation_id: Any, user_id: Any, remark: str, username: Optional[str] = None) -> Record:
        data = {"delegation_id": delegation_id, "user_id": user_id, "remark": remark}
        require_fields(data, "delegation_id", "user_id", "remark")
        did = validate_id(delegation_id, "delegation_id")
        self.require(did)
        return self.remarks.add({**data, "delegation_id": did, "username": username or "Unknown User"})

    def list_history(self, delegation_id: Any) -> List[Record]:
        return self.history.list_for(delegation_id)
