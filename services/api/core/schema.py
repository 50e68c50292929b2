# services/api/core/schema.py
"""
Schema ensurer: guarantees a sheet and its header row exist before the
table engine reads or writes it.

The ensure step is idempotent but costs two or three round trips, so the
SchemaRegistry remembers which (document, table) pairs were ensured within
this process. The registry is an explicit object with an injectable clock
and an invalidate() hook rather than a module-level flag.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from cachetools import TTLCache

from .codec import RowCodec, normalize_key
from .errors import HeaderMismatchError
from .ranges import HEADER_ROW, sheet_range

logger = logging.getLogger(__name__)


class HeaderPolicy(str, Enum):
    STRICT = "strict"        # fail loudly when expected columns are missing
    APPEND = "append"        # add missing columns after the existing ones
    OVERWRITE = "overwrite"  # legacy: relabel row 1 with the expected header


@dataclass(frozen=True)
class TableSchema:
    """
    One logical table (a sheet/tab) and how its cells are typed.

    ``headers`` is the expected header row in canonical snake_case.
    """
    name: str
    headers: tuple[str, ...]
    json_fields: frozenset[str] = frozenset()
    bool_fields: frozenset[str] = frozenset()
    int_fields: frozenset[str] = frozenset({"id"})
    id_field: str = "id"
    created_field: Optional[str] = "created_at"
    updated_field: Optional[str] = None
    codec: RowCodec = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "codec",
            RowCodec(self.json_fields, self.bool_fields, self.int_fields | {self.id_field}),
        )

    @property
    def width(self) -> int:
        return len(self.headers)


class SchemaRegistry:
    """
    Process-local memo of ensured tables and resolved sheet ids.

    Entries expire after ``ttl`` seconds of the injected ``clock`` so an
    out-of-band header edit is picked up eventually.
    """

    def __init__(
        self,
        ttl: float = 600,
        clock: Callable[[], float] = time.monotonic,
        policy: HeaderPolicy = HeaderPolicy.STRICT,
        maxsize: int = 256,
    ) -> None:
        self.policy = HeaderPolicy(policy)
        self._headers: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=clock)
        self._sheet_ids: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=clock)

    def headers_for(self, document_id: str, table: str) -> Optional[list[str]]:
        return self._headers.get((document_id, table))

    def remember(self, document_id: str, table: str, headers: Sequence[str]) -> None:
        self._headers[(document_id, table)] = list(headers)

    def sheet_id_for(self, document_id: str, table: str) -> Optional[int]:
        return self._sheet_ids.get((document_id, table))

    def remember_sheet_id(self, document_id: str, table: str, sheet_id: int) -> None:
        self._sheet_ids[(document_id, table)] = sheet_id

    def invalidate(self, table: Optional[str] = None, document_id: Optional[str] = None) -> None:
        """Forget ensured state for one table, one document, or everything."""
        for cache in (self._headers, self._sheet_ids):
            for key in list(cache.keys()):
                doc, tab = key
                if (table is None or tab == table) and (document_id is None or doc == document_id):
                    cache.pop(key, None)


def resolve_sheet_id(transport: Any, document_id: str, title: str) -> Optional[int]:
    meta = transport.get_document_metadata(document_id)
    for s in meta.get("sheets", []):
        if s.get("title") == title:
            return s.get("sheetId")
    return None


def _reconcile_headers(
    schema: TableSchema, existing: list[str], policy: HeaderPolicy
) -> Optional[list[str]]:
    """
    Header row to write, or None when row 1 is acceptable as it is.
    Raises HeaderMismatchError under the strict policy.
    """
    expected = list(schema.headers)
    if not existing:
        return expected

    present = {normalize_key(h) for h in existing}
    missing = [h for h in expected if h not in present]

    if policy == HeaderPolicy.OVERWRITE:
        prefix = [normalize_key(h) for h in existing[: len(expected)]]
        return expected if prefix != expected else None

    if not missing:
        return None

    if policy == HeaderPolicy.APPEND:
        return list(existing) + missing

    raise HeaderMismatchError(schema.name, missing, list(existing))


def ensure_table(
    transport: Any,
    document_id: str,
    schema: TableSchema,
    registry: Optional[SchemaRegistry] = None,
    policy: Optional[HeaderPolicy] = None,
) -> list[str]:
    """
    Make sure ``schema.name`` exists in the document with an acceptable
    header row. Returns the header row as stored in the sheet.

    Transport failures propagate; nothing is written after one.
    """
    if registry is not None:
        cached = registry.headers_for(document_id, schema.name)
        if cached is not None:
            return cached

    policy = HeaderPolicy(policy or (registry.policy if registry else HeaderPolicy.STRICT))

    sheet_id = resolve_sheet_id(transport, document_id, schema.name)
    if sheet_id is None:
        logger.info(f"Creating sheet '{schema.name}' in {document_id}")
        reply = transport.batch_update(
            document_id, [{"addSheet": {"properties": {"title": schema.name}}}]
        )
        try:
            sheet_id = reply["replies"][0]["addSheet"]["properties"]["sheetId"]
        except (KeyError, IndexError, TypeError):
            sheet_id = resolve_sheet_id(transport, document_id, schema.name)

    rows = transport.get_values(document_id, sheet_range(schema.name, f"{HEADER_ROW}:{HEADER_ROW}"))
    existing = [str(h) for h in rows[0]] if rows else []

    header = _reconcile_headers(schema, existing, policy)
    if header is not None:
        if existing:
            logger.warning(
                f"Rewriting header row of '{schema.name}' ({policy.value} policy): {existing} -> {header}"
            )
        transport.update_values(document_id, sheet_range(schema.name, "A1"), [header])
    else:
        header = existing

    if registry is not None:
        registry.remember(document_id, schema.name, header)
        if sheet_id is not None:
            registry.remember_sheet_id(document_id, schema.name, sheet_id)
    return header
