# services/api/models/todo.py
from __future__ import annotations

from typing import Any, List, Optional

from core.codec import parse_bool, parse_int
from core.validation import require_fields, validate_category, validate_id, validate_status

from .base import Record, SheetStore, newest_first
from .tables import TODOS


class TodoStore(SheetStore):
    """
    Personal to-dos. ``status``, ``category`` (inbox/trash) and
    ``is_important`` are independent: trashing a to-do keeps its status,
    starring it keeps its category.
    """

    schema = TODOS

    def list(
        self,
        user_id: Any = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
        is_important: Optional[bool] = None,
    ) -> List[Record]:
        """Filtered to-dos, important first, then newest first."""
        uid = parse_int(user_id)
        status = validate_status(status) if status else None
        category = validate_category(category) if category else None

        def predicate(r: Record) -> bool:
            if uid is not None and parse_int(r.get("user_id")) != uid:
                return False
            if status and (r.get("status") or "pending") != status:
                return False
            if category and (r.get("category") or "inbox") != category:
                return False
            if is_important is not None and bool(r.get("is_important")) != is_important:
                return False
            return True

        rows = self.table.list(predicate, sort_key=newest_first(), reverse=True)
        rows.sort(key=lambda r: not r.get("is_important"))
        return rows

    def create(self, data: Record) -> Record:
        require_fields(data, "title", "user_id")
        validate_id(data["user_id"], "user_id")
        return self.table.create({
            "title": data["title"],
            "description": data.get("description") or None,
            "priority": data.get("priority") or "medium",
            "status": validate_status(data.get("status") or "pending"),
            "category": validate_category(data.get("category") or "inbox"),
            "is_important": bool(parse_bool(data.get("is_important"))),
            "assigned_to": data.get("assigned_to") or None,
            "user_id": data["user_id"],
        })

    def update(self, todo_id: Any, changes: Record, expected_updated_at: Optional[str] = None) -> Record:
        changes = {k: v for k, v in changes.items() if v is not None or k in ("description", "assigned_to")}
        if "status" in changes:
            changes["status"] = validate_status(changes["status"])
        if "category" in changes:
            changes["category"] = validate_category(changes["category"])
        if "is_important" in changes:
            changes["is_important"] = bool(parse_bool(changes["is_important"]))
        return self.table.update(validate_id(todo_id), changes, expected_updated_at=expected_updated_at)

    def move_to_trash(self, todo_id: Any) -> Record:
        return self.update(todo_id, {"category": "trash"})

    def restore(self, todo_id: Any) -> Record:
        return self.update(todo_id, {"category": "inbox"})

    def toggle_important(self, todo_id: Any) -> Record:
        current = self.require(todo_id)
        return self.update(todo_id, {"is_important": not current.get("is_important")})
