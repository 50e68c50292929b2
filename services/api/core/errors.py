# services/api/core/errors.py
"""
Error taxonomy for the Sheets-backed stores.

Routers map these to HTTP status codes; the stores never raise HTTPException
themselves so they stay usable from scripts and tests.
"""
from __future__ import annotations

from typing import Any, Optional


class StoreError(Exception):
    """Base class for every error raised by the data layer."""

    status_code: int = 500
    code: str = "STORE_ERROR"

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message, **self.context}


class NotFound(StoreError):
    """Requested id (or group) does not exist at read time."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, table: str, key: Any, field: str = "id") -> None:
        super().__init__(f"{table}: no row with {field}={key}", table=table, key=key)
        self.table = table
        self.key = key
        self.field = field


class ValidationError(StoreError):
    """Input rejected before any transport call was made."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        if field:
            super().__init__(message, field=field)
        else:
            super().__init__(message)
        self.field = field


class ConflictError(StoreError):
    """Duplicate natural key, or a stale expected_updated_at."""

    status_code = 409
    code = "CONFLICT"


class HeaderMismatchError(StoreError):
    """Row 1 of a sheet does not carry the columns the schema expects."""

    status_code = 500
    code = "HEADER_MISMATCH"

    def __init__(self, table: str, missing: list[str], existing: list[str]) -> None:
        super().__init__(
            f"{table}: header row is missing columns {missing}",
            table=table,
            missing=missing,
        )
        self.table = table
        self.missing = missing
        self.existing = existing


class TransportError(StoreError):
    """The remote spreadsheet call failed (network, auth, quota)."""

    status_code = 502
    code = "TRANSPORT_ERROR"


class DecodeWarning(UserWarning):
    """A JSON, boolean or integer cell could not be decoded; raw value kept."""
