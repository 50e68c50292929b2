# services/api/models/base.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from core.codec import parse_int
from core.dates import Clock, sort_timestamp
from core.errors import NotFound
from core.schema import SchemaRegistry, TableSchema
from core.table import SheetTable
from core.validation import validate_id

Record = Dict[str, Any]

DEFAULT_PRIVILEGED_ROLE = "admin"


def newest_first(field: str = "created_at"):
    """Sort key (use with reverse=True): timestamp, then id as tie-break."""
    def _key(record: Record):
        return (sort_timestamp(record.get(field)), parse_int(record.get("id")) or 0)
    return _key


def same_text(a: Any, b: Any) -> bool:
    """Case-insensitive, whitespace-trimmed text equality; blanks never match."""
    sa = str(a or "").strip().lower()
    sb = str(b or "").strip().lower()
    return bool(sa) and sa == sb


class SheetStore:
    """
    Base for the entity stores: one primary table plus helpers shared by
    every entity (get-or-404, delete, role checks).
    """

    schema: TableSchema

    def __init__(
        self,
        transport: Any,
        document_id: str,
        registry: Optional[SchemaRegistry] = None,
        clock: Optional[Clock] = None,
        privileged_role: str = DEFAULT_PRIVILEGED_ROLE,
    ) -> None:
        self.transport = transport
        self.document_id = document_id
        self.registry = registry if registry is not None else SchemaRegistry()
        self.table = SheetTable(transport, document_id, self.schema, self.registry, clock)
        self.clock = self.table.clock
        self.privileged_role = privileged_role

    def _child(self, schema: TableSchema, parent_field: str, sort_field: str = "created_at") -> "ChildLog":
        return ChildLog(
            SheetTable(self.transport, self.document_id, schema, self.registry, self.clock),
            parent_field,
            sort_field,
        )

    def is_privileged(self, role: Optional[str]) -> bool:
        return same_text(role, self.privileged_role)

    def get(self, record_id: Any) -> Optional[Record]:
        return self.table.get(validate_id(record_id))

    def require(self, record_id: Any) -> Record:
        record = self.get(record_id)
        if record is None:
            raise NotFound(self.schema.name, record_id)
        return record

    def delete(self, record_id: Any) -> Record:
        return self.table.delete(validate_id(record_id))


class ChildLog:
    """Append-only rows hanging off a parent id (remarks, revision history)."""

    def __init__(self, table: SheetTable, parent_field: str, sort_field: str = "created_at") -> None:
        self.table = table
        self.parent_field = parent_field
        self.sort_field = sort_field

    def list_for(self, parent_id: Any) -> List[Record]:
        """Rows of one parent, newest first."""
        pid = validate_id(parent_id, self.parent_field)
        return self.table.find(self.parent_field, pid, sort_key=newest_first(self.sort_field), reverse=True)

    def parent_ids(self) -> set:
        """Every parent id that has at least one row."""
        ids = set()
        for r in self.table.list():
            pid = parse_int(r.get(self.parent_field))
            if pid is not None:
                ids.add(pid)
        return ids

    def add(self, data: Record) -> Record:
        return self.table.create(data)
