# services/api/models/checklist.py
from __future__ import annotations

import logging
import random
import string
import time
from typing import Any, Dict, Iterable, List, Optional

from core.codec import parse_int
from core.dates import format_due_date, format_sheet_datetime, parse_sheet_date, sort_timestamp, status_for_due_date
from core.errors import ValidationError
from core.recurrence import dates_for_frequency
from core.validation import ensure_unique, require_fields, validate_id, validate_status

from .base import Record, SheetStore
from .tables import CHECKLIST_HISTORY, CHECKLIST_REMARKS, CHECKLISTS

logger = logging.getLogger(__name__)

_GROUP_ALPHABET = string.ascii_lowercase + string.digits


def new_group_id() -> str:
    """GRP-<epoch ms>-<7 random base36 chars>."""
    suffix = "".join(random.choices(_GROUP_ALPHABET, k=7))
    return f"GRP-{int(time.time() * 1000)}-{suffix}"


class ChecklistStore(SheetStore):
    """
    Recurring checklists. One create call expands a frequency into dated
    rows per doer; each doer's rows share a ``group_id`` so the series can
    be edited or removed together.
    """

    schema = CHECKLISTS

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.remarks = self._child(CHECKLIST_REMARKS, "checklist_id")
        self.history = self._child(CHECKLIST_HISTORY, "checklist_id", sort_field="timestamp")

    # ========== Read ==========

    def list(self, group_id: Optional[str] = None, doer_name: Optional[str] = None) -> List[Record]:
        """
        Checklists sorted by due date (soonest first), newest first within
        the same due date.

        Status is derived from the due date for checklists nobody has acted
        on yet; once a checklist has revision history its stored status is
        authoritative.
        """
        rows = self.table.list()
        acted_on = self.history.parent_ids()
        now = self.clock()

        out = []
        for r in rows:
            if group_id and r.get("group_id") != group_id:
                continue
            if doer_name and str(r.get("doer_name") or "").strip().lower() != doer_name.strip().lower():
                continue
            if parse_int(r.get("id")) not in acted_on:
                r["status"] = status_for_due_date(r.get("due_date"), now)
            out.append(r)

        out.sort(key=lambda r: (sort_timestamp(r.get("created_at")), parse_int(r.get("id")) or 0), reverse=True)
        out.sort(key=lambda r: sort_timestamp(r.get("due_date")))
        return out

    # ========== Write ==========

    def create(
        self,
        data: Record,
        doers: Optional[List[str]] = None,
        weekly_days: Optional[Iterable[int]] = None,
        selected_dates: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """
        Expand the recurrence and write every instance for every doer in
        ONE append.

        Returns:
            {"count", "first_id", "group_ids", "checklists"}
        """
        require_fields(data, "question", "assignee", "frequency", "due_date")
        start = parse_sheet_date(format_due_date(data.get("due_date")))
        if start is None:
            raise ValidationError("Invalid due date format", field="due_date")

        dates = dates_for_frequency(start, data["frequency"], weekly_days, selected_dates)
        if not dates:
            raise ValidationError("No valid dates generated from frequency", field="frequency")

        doer_list = [d for d in (doers or []) if d and str(d).strip()]
        ensure_unique(doer_list, "doers")
        if not doer_list:
            doer_list = [data.get("doer_name")]

        now = self.clock()
        rows: List[Record] = []
        group_ids: List[str] = []
        for doer in doer_list:
            group_id = new_group_id()
            while group_id in group_ids:
                group_id = new_group_id()
            group_ids.append(group_id)
            for due in dates:
                rows.append({
                    "question": data["question"],
                    "assignee": data["assignee"],
                    "doer_name": doer,
                    "priority": data.get("priority") or "medium",
                    "department": data.get("department") or None,
                    "verification_required": bool(data.get("verification_required")),
                    "verifier_name": data.get("verifier_name") or None,
                    "attachment_required": bool(data.get("attachment_required")),
                    "frequency": str(data["frequency"]).strip().lower(),
                    "due_date": format_sheet_datetime(due),
                    "status": status_for_due_date(due, now),
                    "group_id": group_id,
                    "created_by": data.get("created_by") or None,
                })

        created = self.table.create_many(rows)
        logger.info(
            f"Created {len(created)} checklist row(s) for {len(doer_list)} doer(s), "
            f"{len(dates)} date(s) each"
        )
        return {
            "count": len(created),
            "first_id": created[0]["id"],
            "group_ids": group_ids,
            "checklists": created,
        }

    def _clean_changes(self, changes: Record) -> Record:
        changes = {k: v for k, v in changes.items() if k not in ("id", "group_id")}
        if changes.get("status") is not None:
            changes["status"] = validate_status(changes["status"])
        else:
            changes.pop("status", None)
        if "due_date" in changes and changes["due_date"]:
            formatted = format_due_date(changes["due_date"])
            if formatted is None:
                raise ValidationError(f"Invalid due date: {changes['due_date']!r}", field="due_date")
            changes["due_date"] = formatted
        return changes

    def update(self, checklist_id: Any, changes: Record, expected_updated_at: Optional[str] = None) -> Record:
        return self.table.update(
            validate_id(checklist_id),
            self._clean_changes(changes),
            expected_updated_at=expected_updated_at,
        )

    def update_group(self, group_id: str, changes: Record) -> int:
        """
        Apply the same changes to every checklist of the series in one write.
        Due dates differ per instance, so a series-wide due date is refused.
        """
        if not group_id or not str(group_id).strip():
            raise ValidationError("group_id is required", field="group_id")
        if changes.get("due_date"):
            raise ValidationError(
                "due_date cannot be set for a whole series; update single checklists by id",
                field="due_date",
            )
        changes = {k: v for k, v in changes.items() if k != "due_date"}
        return self.table.update_where("group_id", group_id, self._clean_changes(changes))

    def delete_group(self, group_id: str) -> int:
        """Remove every checklist of the series in one structural batch."""
        if not group_id or not str(group_id).strip():
            raise ValidationError("group_id is required", field="group_id")
        return self.table.delete_where("group_id", group_id)

    def update_status(
        self,
        checklist_id: Any,
        status: str,
        user_id: Any,
        username: Optional[str] = None,
        remark: Optional[str] = None,
        attachment_url: Optional[str] = None,
    ) -> Record:
        """
        Status change: update the row, record a ``status_change`` history
        entry (the attachment lives only there), and add the remark.
        """
        cid = validate_id(checklist_id)
        new_status = validate_status(status)
        validate_id(user_id, "user_id")

        current = self.require(cid)
        old_status = current.get("status") or "pending"
        updated = self.table.update(cid, {"status": new_status})

        self.history.add({
            "checklist_id": cid,
            "user_id": user_id,
            "username": username or "Unknown User",
            "action": "status_change",
            "old_status": old_status,
            "new_status": new_status,
            "remark": remark or None,
            "attachment_url": attachment_url or None,
        })
        if remark:
            self.remarks.add({
                "checklist_id": cid,
                "user_id": user_id,
                "username": username or "Unknown User",
                "remark": remark,
            })

        logger.info(f"Checklist {cid}: {old_status} -> {new_status}")
        return updated

    # ========== Remarks / history ==========

    def list_remarks(self, checklist_id: Any) -> List[Record]:
        return self.remarks.list_for(checklist_id)

    def add_remark(self, checklist_id: Any, user_id: Any, remark: str, username: Optional[str] = None) -> Record:
        data = {"checklist_id": checklist_id, "user_id": user_id, "remark": remark}
        require_fields(data, "checklist_id", "user_id", "remark")
        cid = validate_id(checklist_id, "checklist_id")
        self.require(cid)
        return self.remarks.add({**data, "checklist_id": cid, "username": username or "Unknown User"})

    def list_history(self, checklist_id: Any) -> List[Record]:
        return self.history.list_for(checklist_id)
