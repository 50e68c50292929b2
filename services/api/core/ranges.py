# services/api/core/ranges.py
"""A1-notation helpers shared by the schema ensurer, the table engine and the transports."""
from __future__ import annotations

import re
from typing import Optional

from gspread.utils import rowcol_to_a1

HEADER_ROW = 1
# Physical row of data index 0 (1-based, header occupies row 1)
FIRST_DATA_ROW = HEADER_ROW + 1

_CELL_RE = re.compile(r"^([A-Za-z]*)(\d*)$")


def quote_title(title: str) -> str:
    return "'" + title.replace("'", "''") + "'"


def sheet_range(title: str, a1: Optional[str] = None) -> str:
    """"'title'!A1:B2", or "'title'" for the whole sheet."""
    q = quote_title(title)
    return f"{q}!{a1}" if a1 else q


def column_letter(col: int) -> str:
    """1 -> A, 27 -> AA."""
    return re.sub(r"\d+", "", rowcol_to_a1(1, col))


def column_index(letters: str) -> int:
    """A -> 1, AA -> 27."""
    n = 0
    for ch in letters.upper():
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n


def row_span(row: int, width: int) -> str:
    """Whole-row span for ``width`` columns, e.g. row_span(5, 3) -> "A5:C5"."""
    return f"A{row}:{column_letter(max(width, 1))}{row}"


def physical_row(data_index: int) -> int:
    """0-based data index -> 1-based sheet row number."""
    return data_index + FIRST_DATA_ROW


def split_range(range_spec: str) -> tuple[str, Optional[str]]:
    """
    "'my sheet'!A1:B2" -> ("my sheet", "A1:B2"); "'users'" -> ("users", None).
    """
    s = range_spec.strip()
    title, a1 = s, None
    if s.startswith("'"):
        end = 1
        while True:
            end = s.index("'", end)
            if end + 1 < len(s) and s[end + 1] == "'":
                end += 2
                continue
            break
        title = s[1:end].replace("''", "'")
        rest = s[end + 1:]
        if rest.startswith("!"):
            a1 = rest[1:] or None
    elif "!" in s:
        title, a1 = s.rsplit("!", 1)
    return title, a1


def parse_a1(a1: Optional[str]) -> tuple[int, Optional[int], int, Optional[int]]:
    """
    Bounds of an A1 range as (first_row, last_row, first_col, last_col),
    1-based and inclusive; None means unbounded. "A:C" -> (1, None, 1, 3),
    "2:2" -> (2, 2, 1, None), "B5" -> (5, 5, 2, 2).
    """
    if not a1:
        return 1, None, 1, None
    parts = a1.split(":", 1)
    start = _CELL_RE.match(parts[0].strip())
    end = _CELL_RE.match(parts[1].strip()) if len(parts) > 1 else start
    if not start or not end:
        raise ValueError(f"Unsupported A1 range: {a1}")
    c1, r1 = start.groups()
    c2, r2 = end.groups()
    first_row = int(r1) if r1 else 1
    last_row = int(r2) if r2 else None
    first_col = column_index(c1) if c1 else 1
    last_col = column_index(c2) if c2 else None
    return first_row, last_row, first_col, last_col
