# services/api/models/user.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import bcrypt

from core.errors import ConflictError, NotFound
from core.validation import require_fields, validate_department_name, validate_email, validate_id

from .base import Record, SheetStore, newest_first, same_text
from .tables import DEPARTMENTS, USERS

logger = logging.getLogger(__name__)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def is_password_hash(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(_BCRYPT_PREFIXES)


def hash_password(password: str) -> str:
    """bcrypt hash; an existing bcrypt hash is stored as-is."""
    if is_password_hash(password):
        return password
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, stored: Optional[str]) -> bool:
    if not stored or not password:
        return False
    if is_password_hash(stored):
        return bcrypt.checkpw(password.encode("utf-8"), stored.encode("utf-8"))
    # legacy plain-text rows
    return password == stored


def public_user(record: Optional[Record]) -> Optional[Record]:
    """User record safe for API output (no password)."""
    if record is None:
        return None
    return {k: v for k, v in record.items() if k != "password"}


class UserStore(SheetStore):
    """
    Users. Passwords are stored as bcrypt hashes and never leave the store
    through list()/get(); username and email are unique (case-insensitive).
    """

    schema = USERS

    def list(self) -> List[Record]:
        rows = self.table.list(sort_key=newest_first(), reverse=True)
        return [public_user(r) for r in rows]

    def get(self, user_id: Any) -> Optional[Record]:
        return public_user(super().get(user_id))

    def _check_unique(self, username: Any = None, email: Any = None, exclude_id: Optional[int] = None) -> None:
        for r in self.table.list():
            if exclude_id is not None and r.get("id") == exclude_id:
                continue
            if username and same_text(r.get("username"), username):
                raise ConflictError(f"Username '{username}' already exists", field="username")
            if email and same_text(r.get("email"), email):
                raise ConflictError(f"Email '{email}' already exists", field="email")

    def create(self, data: Record) -> Record:
        require_fields(data, "username", "email", "password")
        data = dict(data)
        data["username"] = str(data["username"]).strip()
        data["email"] = validate_email(data["email"])
        self._check_unique(data["username"], data["email"])

        data["password"] = hash_password(str(data["password"]))
        data["role_name"] = data.get("role_name") or "User"
        data["permanent_same_as_present"] = bool(data.get("permanent_same_as_present"))
        data["education"] = data.get("education") or []
        data["work_experience"] = data.get("work_experience") or []

        created = self.table.create(data)
        logger.info(f"Created user {created['id']} ({created['username']})")
        return public_user(created)

    def update(self, user_id: Any, changes: Record, expected_updated_at: Optional[str] = None) -> Record:
        """
        Partial update. The password only changes when a new non-empty one
        is supplied.
        """
        uid = validate_id(user_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes.get("password"):
            changes.pop("password", None)
        else:
            changes["password"] = hash_password(str(changes["password"]))
        if "email" in changes:
            changes["email"] = validate_email(changes["email"])
        if "username" in changes:
            changes["username"] = str(changes["username"]).strip()
        if "username" in changes or "email" in changes:
            self._check_unique(changes.get("username"), changes.get("email"), exclude_id=uid)

        return public_user(self.table.update(uid, changes, expected_updated_at=expected_updated_at))

    def verify_credentials(self, username: str, password: str) -> Optional[Record]:
        """Public user record when the password matches, else None."""
        for r in self.table.list(lambda r: same_text(r.get("username"), username)):
            if check_password(password, r.get("password")):
                return public_user(r)
        return None


class DepartmentStore(SheetStore):
    schema = DEPARTMENTS

    def list(self) -> List[Record]:
        return self.table.list(sort_key=lambda r: str(r.get("name") or "").lower())

    def add(self, name: Any) -> Record:
        name = validate_department_name(name)
        if any(same_text(r.get("name"), name) for r in self.table.list()):
            raise ConflictError("Department already exists", field="name")
        return self.table.create({"name": name})

    def delete_by_name(self, name: Any) -> Dict[str, Any]:
        name = validate_department_name(name)
        for r in self.table.list():
            if same_text(r.get("name"), name):
                self.table.delete(r["id"])
                logger.info(f"Deleted department '{r.get('name')}'")
                return {"id": r["id"], "name": r.get("name")}
        raise NotFound(self.schema.name, name, field="name")
