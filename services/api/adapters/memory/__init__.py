"""
In-memory grid transport for the Sheets-backed stores.
Emulates the parts of the Sheets API the data layer relies on, for local
demo runs (STORAGE_BACKEND=memory) and the test-suite.
Optionally persisted to a JSON file; not suitable for multi-process access.
"""
import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.errors import TransportError
from core.ranges import parse_a1, split_range

logger = logging.getLogger(__name__)


def _to_cell(value: Any) -> str:
    """Render a raw value the way Sheets shows it (FORMATTED_VALUE)."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _trim(row: List[str]) -> List[str]:
    end = len(row)
    while end and row[end - 1] == "":
        end -= 1
    return row[:end]


class MemoryTransport:
    """
    Grid store: {document_id: [{"title", "sheetId", "rows"}]}.
    Every call is applied atomically under a lock and recorded in ``calls``
    as (operation, range_or_document).
    """

    def __init__(self, path: Optional[str] = None):
        """
        Args:
            path: Optional JSON file to load from and persist to after writes
        """
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._docs: Dict[str, List[Dict[str, Any]]] = {}
        self._next_sheet_id = 1
        self.calls: List[tuple] = []

        if self.path and self.path.exists():
            self._load()

    # ========== Persistence ==========

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable grid file {self.path}: {e}")
            return
        self._docs = data.get("documents", {})
        self._next_sheet_id = int(data.get("next_sheet_id", 1))

    def _save(self) -> None:
        """Write the grid to disk atomically."""
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.path.with_suffix(".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(
                {"documents": self._docs, "next_sheet_id": self._next_sheet_id},
                f,
                indent=2,
                ensure_ascii=False,
            )
        tmp_file.replace(self.path)

    # ========== Grid helpers ==========

    def _sheets(self, document_id: str) -> List[Dict[str, Any]]:
        return self._docs.setdefault(document_id, [])

    def _sheet(self, document_id: str, title: str) -> Dict[str, Any]:
        for s in self._sheets(document_id):
            if s["title"] == title:
                return s
        raise TransportError(f"Unable to parse range: sheet '{title}' not found", document_id=document_id)

    def _resolve(self, document_id: str, range_spec: str):
        title, a1 = split_range(range_spec)
        sheet = self._sheet(document_id, title)
        try:
            bounds = parse_a1(a1)
        except ValueError as e:
            raise TransportError(str(e), document_id=document_id) from e
        return sheet, bounds

    @staticmethod
    def _write_block(rows: List[List[str]], top: int, left: int, values: List[List[Any]]) -> None:
        for dr, vals in enumerate(values):
            r = top - 1 + dr
            while len(rows) <= r:
                rows.append([])
            row = rows[r]
            for dc, v in enumerate(vals):
                c = left - 1 + dc
                while len(row) <= c:
                    row.append("")
                row[c] = _to_cell(v)
            rows[r] = _trim(row)

    # ========== SheetsTransport API ==========

    def get_values(self, document_id: str, range_spec: str) -> List[List[str]]:
        with self._lock:
            self.calls.append(("get", range_spec))
            sheet, (r1, r2, c1, c2) = self._resolve(document_id, range_spec)
            rows = sheet["rows"]
            last = len(rows) if r2 is None else min(r2, len(rows))
            out = []
            for r in range(r1 - 1, last):
                row = rows[r]
                cells = row[c1 - 1:] if c2 is None else row[c1 - 1:c2]
                out.append(_trim(list(cells)))
            while out and not out[-1]:
                out.pop()
            return out

    def update_values(self, document_id: str, range_spec: str, values: List[List[Any]]) -> None:
        with self._lock:
            self.calls.append(("update", range_spec))
            sheet, (r1, _, c1, _) = self._resolve(document_id, range_spec)
            self._write_block(sheet["rows"], r1, c1, values)
            self._save()

    def append_values(self, document_id: str, range_spec: str, values: List[List[Any]]) -> None:
        with self._lock:
            self.calls.append(("append", range_spec))
            sheet, (_, _, c1, _) = self._resolve(document_id, range_spec)
            rows = sheet["rows"]
            while rows and not rows[-1]:
                rows.pop()
            self._write_block(rows, len(rows) + 1, c1, values)
            self._save()

    def batch_update_values(self, document_id: str, data: List[Dict[str, Any]]) -> None:
        with self._lock:
            self.calls.append(("batchUpdateValues", document_id))
            # resolve every range before touching the grid
            writes = [(self._resolve(document_id, item["range"]), item["values"]) for item in data]
            for (sheet, (r1, _, c1, _)), values in writes:
                self._write_block(sheet["rows"], r1, c1, values)
            self._save()

    def batch_update(self, document_id: str, requests: List[Dict[str, Any]]) -> Dict[str, Any]:
        with self._lock:
            self.calls.append(("batchUpdate", document_id))
            # apply to a copy so a failing request leaves nothing half-done
            sheets = copy.deepcopy(self._sheets(document_id))
            next_id = self._next_sheet_id
            replies = []
            for req in requests:
                if "addSheet" in req:
                    title = req["addSheet"].get("properties", {}).get("title", "")
                    if not title or any(s["title"] == title for s in sheets):
                        raise TransportError(f"addSheet: invalid or duplicate title '{title}'")
                    sheets.append({"title": title, "sheetId": next_id, "rows": []})
                    replies.append({"addSheet": {"properties": {"title": title, "sheetId": next_id}}})
                    next_id += 1
                elif "deleteDimension" in req:
                    rng = req["deleteDimension"]["range"]
                    if rng.get("dimension") != "ROWS":
                        raise TransportError("deleteDimension: only ROWS is supported")
                    target = next((s for s in sheets if s["sheetId"] == rng.get("sheetId")), None)
                    if target is None:
                        raise TransportError(f"deleteDimension: no sheet with id {rng.get('sheetId')}")
                    del target["rows"][int(rng["startIndex"]):int(rng["endIndex"])]
                    replies.append({})
                else:
                    raise TransportError(f"Unsupported batchUpdate request: {list(req)}")
            self._docs[document_id] = sheets
            self._next_sheet_id = next_id
            self._save()
            return {"replies": replies}

    def get_document_metadata(self, document_id: str) -> Dict[str, Any]:
        with self._lock:
            self.calls.append(("metadata", document_id))
            return {
                "sheets": [
                    {"title": s["title"], "sheetId": s["sheetId"]}
                    for s in self._sheets(document_id)
                ]
            }

    # ========== Test/ops helpers ==========

    def add_sheet(self, document_id: str, title: str, rows: Optional[List[List[Any]]] = None) -> None:
        """Seed a sheet directly (bypasses call accounting)."""
        self.batch_update(document_id, [{"addSheet": {"properties": {"title": title}}}])
        self.calls.pop()
        if rows:
            with self._lock:
                self._write_block(self._sheet(document_id, title)["rows"], 1, 1, rows)
                self._save()

    def dump(self, document_id: str, title: str) -> List[List[str]]:
        """Raw grid of one sheet, header included."""
        with self._lock:
            return [list(r) for r in self._sheet(document_id, title)["rows"]]

    def reset_calls(self) -> None:
        self.calls.clear()
