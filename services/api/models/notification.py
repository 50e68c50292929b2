# services/api/models/notification.py
from __future__ import annotations

import logging
from typing import Any, List, Optional

from core.codec import parse_int
from core.validation import require_fields, validate_id

from .base import Record, SheetStore, newest_first
from .tables import NOTIFICATIONS

logger = logging.getLogger(__name__)


class NotificationStore(SheetStore):
    schema = NOTIFICATIONS

    def list(self, user_id: Any, role: Optional[str] = None, unread_only: bool = False) -> List[Record]:
        """
        Newest first. The privileged role sees every notification; anyone
        else only the ones addressed to them.
        """
        uid = validate_id(user_id, "user_id")
        privileged = self.is_privileged(role)

        def predicate(r: Record) -> bool:
            if not privileged and parse_int(r.get("user_id")) != uid:
                return False
            if unread_only and r.get("is_read"):
                return False
            return True

        return self.table.list(predicate, sort_key=newest_first(), reverse=True)

    def create(self, data: Record) -> Record:
        require_fields(data, "user_id", "title")
        validate_id(data["user_id"], "user_id")
        return self.table.create({
            "user_id": data["user_id"],
            "title": data["title"],
            "message": data.get("message") or None,
            "type": data.get("type") or "info",
            "link": data.get("link") or None,
            "is_read": False,
        })

    def mark_read(self, notification_id: Any) -> Record:
        """Flip ``is_read`` by rewriting that single cell."""
        return self.table.update_cell(validate_id(notification_id), "is_read", True)

    def mark_all_read(self, user_id: Any) -> int:
        """Flip only the ``is_read`` cells of this user's unread rows, in one batch."""
        uid = validate_id(user_id, "user_id")
        count = self.table.update_cells_where(
            lambda r: parse_int(r.get("user_id")) == uid and not r.get("is_read"),
            "is_read",
            True,
        )
        logger.info(f"Marked {count} notification(s) read for user {uid}")
        return count

    def unread_count(self, user_id: Any, role: Optional[str] = None) -> int:
        return len(self.list(user_id, role=role, unread_only=True))
