"""
Validation utilities for the operations stores.
Rejects bad input before any Sheets call is made and provides clear error messages.
"""
import re
from typing import Any, Dict, Iterable, Optional

from .codec import parse_int
from .errors import ValidationError

STATUSES = ("pending", "planned", "overdue", "in-progress", "on-hold", "done")
CATEGORIES = ("inbox", "trash")

_STATUS_ALIASES = {
    "in progress": "in-progress",
    "in_progress": "in-progress",
    "inprogress": "in-progress",
    "on hold": "on-hold",
    "on_hold": "on-hold",
    "onhold": "on-hold",
    "completed": "done",
    "complete": "done",
}

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_fields(data: Dict[str, Any], *names: str) -> None:
    """
    Ensure every named field is present and non-blank.

    Raises:
        ValidationError: naming the missing fields
    """
    missing = []
    for name in names:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            field=missing[0],
        )


def validate_status(status: Any) -> str:
    """
    Normalize a status value to its canonical spelling.

    Any known status may follow any other; unknown values are rejected.
    """
    s = str(status or "").strip().lower()
    s = _STATUS_ALIASES.get(s, s)
    if s not in STATUSES:
        raise ValidationError(
            f"Unknown status '{status}'. Expected one of: {', '.join(STATUSES)}",
            field="status",
        )
    return s


def validate_category(category: Any) -> str:
    c = str(category or "").strip().lower()
    if c not in CATEGORIES:
        raise ValidationError(
            f"Unknown category '{category}'. Expected one of: {', '.join(CATEGORIES)}",
            field="category",
        )
    return c


def validate_id(value: Any, field: str = "id") -> int:
    """Positive integer id (accepts "7" and "7.0")."""
    n = parse_int(value)
    if n is None or n <= 0:
        raise ValidationError(f"{field} must be a positive integer, got {value!r}", field=field)
    return n


def validate_department_name(name: Any) -> str:
    s = str(name or "").strip()
    if not s:
        raise ValidationError("Department name is required", field="name")
    if len(s) > 100:
        raise ValidationError("Department name must be at most 100 characters", field="name")
    return s


def validate_email(email: Any) -> str:
    s = str(email or "").strip()
    if not _EMAIL_RE.match(s):
        raise ValidationError(f"Invalid email address: {email!r}", field="email")
    return s


def ensure_unique(values: Iterable[Any], field: str, existing: Optional[Iterable[Any]] = None) -> None:
    """
    Ensure no value repeats, within ``values`` or against ``existing``
    (case-insensitive).

    Raises:
        ValidationError: listing the duplicates
    """
    seen = {str(v).strip().lower() for v in (existing or []) if v is not None}
    duplicates = []
    for v in values:
        key = str(v).strip().lower()
        if key in seen:
            duplicates.append(v)
        seen.add(key)
    if duplicates:
        raise ValidationError(
            f"Duplicate {field} values found: {duplicates}",
            field=field,
        )
