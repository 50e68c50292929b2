# services/api/core/ids.py
"""
Synthetic integer ids.

Every table allocates with max-scan (max existing id + 1), so an id is never
handed out twice even after rows were deleted from the middle or the end.
"""
from __future__ import annotations

from typing import Any, Iterable

from .codec import parse_int


def next_id(existing: Iterable[Any]) -> int:
    """max(parsed ids, default 0) + 1; empty/unparsable values are ignored."""
    highest = 0
    for v in existing:
        n = parse_int(v)
        if n is not None and n > highest:
            highest = n
    return highest + 1


def allocate_ids(existing: Iterable[Any], count: int) -> list[int]:
    """Contiguous block of ``count`` fresh ids."""
    if count <= 0:
        return []
    start = next_id(existing)
    return list(range(start, start + count))
