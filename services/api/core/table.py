# services/api/core/table.py
"""
Table engine: list / get / create / update / delete for one sheet, keyed by
a synthetic integer id.

Rules the engine keeps:
- every mutation re-reads current state first (read-modify-write); nothing
  about table contents is cached between calls
- physical row numbers are computed from that fresh read and used only
  within the same call; the public API only takes and returns ids
- group writes go out as one call: value rewrites in one values batch,
  structural deletes in one batchUpdate ordered from the highest row to
  the lowest

Concurrency contract: none beyond the above. Two overlapping updates of the
same id both read the old row and the last write wins. Passing
``expected_updated_at`` to update() detects a change made since the caller
last read the row, but the read->write window itself is not protected.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from .codec import normalize_key, parse_int
from .dates import Clock, format_sheet_datetime, make_clock
from .errors import ConflictError, NotFound
from .ids import allocate_ids, next_id
from .ranges import FIRST_DATA_ROW, column_letter, physical_row, row_span, sheet_range
from .schema import SchemaRegistry, TableSchema, ensure_table, resolve_sheet_id

logger = logging.getLogger(__name__)

Record = dict[str, Any]


def same_value(a: Any, b: Any) -> bool:
    """Cell equality as the sheet sees it: 5 == "5" == "5.0", " x " == "x"."""
    if a is None or b is None:
        return a is None and b is None
    ia, ib = parse_int(a), parse_int(b)
    if ia is not None and ib is not None:
        return ia == ib
    return str(a).strip() == str(b).strip()


class SheetTable:
    """
    CRUD engine for one table of one spreadsheet document.
    """

    def __init__(
        self,
        transport: Any,
        document_id: str,
        schema: TableSchema,
        registry: Optional[SchemaRegistry] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.transport = transport
        self.document_id = document_id
        self.schema = schema
        self.registry = registry if registry is not None else SchemaRegistry()
        self.clock = clock or make_clock()

    @property
    def name(self) -> str:
        return self.schema.name

    # ========== Internal helpers ==========

    def _now(self) -> str:
        return format_sheet_datetime(self.clock())

    def ensure(self) -> list[str]:
        return ensure_table(self.transport, self.document_id, self.schema, self.registry)

    def _read_all(self) -> tuple[list[str], list[list[Any]]]:
        self.ensure()
        rows = self.transport.get_values(self.document_id, sheet_range(self.name))
        if not rows:
            return [], []
        return [str(h) for h in rows[0]], rows[1:]

    def _decode(self, headers: list[str], cells: list[Any]) -> Record:
        return self.schema.codec.decode(headers, cells)

    def _encode(self, headers: list[str], record: Record) -> list[Any]:
        return self.schema.codec.encode(headers, record)

    def _id_of(self, record: Record) -> Optional[int]:
        return parse_int(record.get(self.schema.id_field))

    def _column(self, headers: list[str], field: str) -> int:
        """1-based column of ``field`` in the stored header row."""
        keys = [normalize_key(h) for h in headers]
        key = normalize_key(field)
        if key not in keys:
            raise KeyError(f"{self.name}: no column '{field}' in header {headers}")
        return keys.index(key) + 1

    def _indexed(self, headers: list[str], rows: list[list[Any]]) -> Iterable[tuple[int, Record]]:
        """(data_index, record) for every row that carries an id."""
        for i, cells in enumerate(rows):
            record = self._decode(headers, cells)
            if self._id_of(record) is None:
                continue
            yield i, record

    def _locate(self, headers: list[str], rows: list[list[Any]], record_id: Any) -> tuple[int, Record]:
        target = parse_int(record_id)
        if target is not None:
            for i, record in self._indexed(headers, rows):
                if self._id_of(record) == target:
                    return i, record
        raise NotFound(self.name, record_id)

    def _clean(self, data: Record) -> Record:
        out = {normalize_key(k): v for k, v in (data or {}).items()}
        out.pop(self.schema.id_field, None)
        return out

    def _stamp_new(self, record: Record, now: str) -> Record:
        if self.schema.created_field:
            record[self.schema.created_field] = now
        if self.schema.updated_field:
            record[self.schema.updated_field] = now
        return record

    def _write_row(self, headers: list[str], data_index: int, record: Record) -> Record:
        cells = self._encode(headers, record)
        row = physical_row(data_index)
        self.transport.update_values(
            self.document_id, sheet_range(self.name, row_span(row, len(headers))), [cells]
        )
        return self._decode(headers, cells)

    def _sheet_id(self) -> Optional[int]:
        sheet_id = self.registry.sheet_id_for(self.document_id, self.name)
        if sheet_id is None:
            sheet_id = resolve_sheet_id(self.transport, self.document_id, self.name)
            if sheet_id is not None:
                self.registry.remember_sheet_id(self.document_id, self.name, sheet_id)
        return sheet_id

    def _delete_physical_rows(self, rows: Iterable[int]) -> None:
        sheet_id = self._sheet_id()
        if sheet_id is None:
            raise NotFound(self.name, self.name, field="sheet")
        requests = [
            {
                "deleteDimension": {
                    "range": {
                        "sheetId": sheet_id,
                        "dimension": "ROWS",
                        "startIndex": row - 1,
                        "endIndex": row,
                    }
                }
            }
            for row in sorted(set(rows), reverse=True)
        ]
        self.transport.batch_update(self.document_id, requests)

    # ========== Read ==========

    def list(
        self,
        predicate: Optional[Callable[[Record], bool]] = None,
        sort_key: Optional[Callable[[Record], Any]] = None,
        reverse: bool = False,
    ) -> list[Record]:
        """All records (rows without an id are skipped), optionally filtered and sorted."""
        headers, rows = self._read_all()
        records = [r for _, r in self._indexed(headers, rows)]
        if predicate is not None:
            records = [r for r in records if predicate(r)]
        if sort_key is not None:
            records.sort(key=sort_key, reverse=reverse)
        return records

    def get(self, record_id: Any) -> Optional[Record]:
        headers, rows = self._read_all()
        try:
            return self._locate(headers, rows, record_id)[1]
        except NotFound:
            return None

    def find(
        self,
        field: str,
        value: Any,
        sort_key: Optional[Callable[[Record], Any]] = None,
        reverse: bool = False,
    ) -> list[Record]:
        """Records whose ``field`` equals ``value`` (foreign-key lookups)."""
        key = normalize_key(field)
        return self.list(lambda r: same_value(r.get(key), value), sort_key=sort_key, reverse=reverse)

    # ========== Create ==========

    def create(self, data: Record) -> Record:
        return self.create_many([data])[0]

    def create_many(self, items: list[Record]) -> list[Record]:
        """
        Insert ``items`` with a contiguous block of fresh ids in ONE append.
        Ids follow input order.
        """
        if not items:
            return []
        headers = self.ensure()
        id_letter = column_letter(self._column(headers, self.schema.id_field))
        id_rows = self.transport.get_values(
            self.document_id, sheet_range(self.name, f"{id_letter}{FIRST_DATA_ROW}:{id_letter}")
        )
        ids = allocate_ids((r[0] for r in id_rows if r), len(items))

        now = self._now()
        encoded = []
        for new_id, data in zip(ids, items):
            record = {self.schema.id_field: new_id, **self._clean(data)}
            encoded.append(self._encode(headers, self._stamp_new(record, now)))

        self.transport.append_values(self.document_id, sheet_range(self.name, "A1"), encoded)
        logger.info(f"{self.name}: created {len(ids)} row(s), ids {ids[0]}..{ids[-1]}")
        return [self._decode(headers, cells) for cells in encoded]

    # ========== Update ==========

    def update(
        self,
        record_id: Any,
        changes: Record,
        expected_updated_at: Optional[str] = None,
    ) -> Record:
        """
        Shallow-merge ``changes`` into the row and rewrite that row only.
        ``created_at`` is preserved, ``updated_at`` refreshed.
        """
        headers, rows = self._read_all()
        index, existing = self._locate(headers, rows, record_id)

        updated_field = self.schema.updated_field
        if expected_updated_at is not None and updated_field:
            current = existing.get(updated_field) or ""
            if str(current) != str(expected_updated_at):
                raise ConflictError(
                    f"{self.name} {record_id} changed since it was read",
                    id=record_id,
                    updated_at=current,
                )

        merged = {**existing, **self._clean(changes)}
        if self.schema.created_field:
            merged[self.schema.created_field] = existing.get(self.schema.created_field)
        if updated_field:
            merged[updated_field] = self._now()

        logger.info(f"{self.name}: updating id {record_id} (row {physical_row(index)})")
        return self._write_row(headers, index, merged)

    def update_cell(self, record_id: Any, field: str, value: Any) -> Record:
        """Rewrite a single cell of the row with ``record_id``."""
        headers, rows = self._read_all()
        index, existing = self._locate(headers, rows, record_id)
        key = normalize_key(field)
        col = self._column(headers, key)

        cell = self.schema.codec.encode_value(key, value)
        a1 = f"{column_letter(col)}{physical_row(index)}"
        self.transport.update_values(self.document_id, sheet_range(self.name, a1), [[cell]])
        existing[key] = self.schema.codec.decode_cell(key, cell)
        return existing

    def update_where(self, field: str, value: Any, changes: Record) -> int:
        """Apply ``changes`` to every row whose ``field`` equals ``value``."""
        key = normalize_key(field)
        headers, rows = self._read_all()
        matches = [(i, r) for i, r in self._indexed(headers, rows) if same_value(r.get(key), value)]
        if not matches:
            raise NotFound(self.name, value, field=key)

        clean = self._clean(changes)
        now = self._now()
        data = []
        for index, existing in matches:
            merged = {**existing, **clean}
            if self.schema.updated_field:
                merged[self.schema.updated_field] = now
            row = physical_row(index)
            data.append({
                "range": sheet_range(self.name, row_span(row, len(headers))),
                "values": [self._encode(headers, merged)],
            })
        self.transport.batch_update_values(self.document_id, data)
        logger.info(f"{self.name}: updated {len(matches)} row(s) where {key}={value}")
        return len(matches)

    def update_cells_where(self, predicate: Callable[[Record], bool], field: str, value: Any) -> int:
        """
        Set one column to ``value`` on every row matching ``predicate``,
        writing only those cells in one batch. Returns the count (0 is fine).
        """
        headers, rows = self._read_all()
        key = normalize_key(field)
        letter = column_letter(self._column(headers, key))
        cell = self.schema.codec.encode_value(key, value)
        data = [
            {"range": sheet_range(self.name, f"{letter}{physical_row(i)}"), "values": [[cell]]}
            for i, r in self._indexed(headers, rows)
            if predicate(r)
        ]
        if data:
            self.transport.batch_update_values(self.document_id, data)
            logger.info(f"{self.name}: set {key} on {len(data)} row(s)")
        return len(data)

    # ========== Delete ==========

    def delete(self, record_id: Any) -> dict[str, Any]:
        """
        Structurally remove the row (rows below shift up). Reads only the
        header and the id column to locate it.
        """
        headers = self.ensure()
        id_letter = column_letter(self._column(headers, self.schema.id_field))
        col = self.transport.get_values(
            self.document_id, sheet_range(self.name, f"{id_letter}{FIRST_DATA_ROW}:{id_letter}")
        )

        target = parse_int(record_id)
        for i, cells in enumerate(col):
            if target is not None and cells and parse_int(cells[0]) == target:
                row = physical_row(i)
                self._delete_physical_rows([row])
                logger.info(f"{self.name}: deleted id {record_id} (row {row})")
                return {"id": target}
        raise NotFound(self.name, record_id)

    def delete_where(self, field: str, value: Any) -> int:
        """Delete every row whose ``field`` equals ``value``; returns the count."""
        key = normalize_key(field)
        headers, rows = self._read_all()
        targets = [
            physical_row(i)
            for i, r in self._indexed(headers, rows)
            if same_value(r.get(key), value)
        ]
        if not targets:
            raise NotFound(self.name, value, field=key)
        self._delete_physical_rows(targets)
        logger.info(f"{self.name}: deleted {len(targets)} row(s) where {key}={value}")
        return len(targets)

    # ========== Misc ==========

    def next_id(self) -> int:
        """Id the next create() would allocate (informational; racy by nature)."""
        headers = self.ensure()
        letter = column_letter(self._column(headers, self.schema.id_field))
        rows = self.transport.get_values(
            self.document_id, sheet_range(self.name, f"{letter}{FIRST_DATA_ROW}:{letter}")
        )
        return next_id(r[0] for r in rows if r)
