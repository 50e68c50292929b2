# services/api/core/codec.py
"""
Row codec: header-labelled rows of cells <-> plain dict records.

Sheets has no native typing, so every cell comes back as text. The codec
turns empty cells into None, "TRUE"/"FALSE" into bools for declared boolean
columns, integer columns into ints, and JSON-looking cells into lists/dicts.
Malformed cells never abort a read: the raw value is kept and a
DecodeWarning is emitted.
"""
from __future__ import annotations

import json
import re
import warnings
from typing import Any, Iterable, Optional, Sequence

from .errors import DecodeWarning

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")
_NON_WORD_RE = re.compile(r"[^0-9a-zA-Z]+")


def normalize_key(name: Any) -> str:
    """
    Canonical snake_case column name.

    "Doer Name", "doerName", "doer_name" and " DOER-NAME " all map to
    "doer_name". Applied once to header cells when a row is decoded.
    """
    s = str(name or "").strip()
    if not s:
        return ""
    s = _CAMEL_RE.sub(r"_\1", s)
    s = _NON_WORD_RE.sub("_", s)
    return s.strip("_").lower()


def parse_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    s = str(value).strip()
    if s == "":
        return None
    return s.upper() == "TRUE"


def parse_int(value: Any) -> Optional[int]:
    """Lenient int parse: 7, "7", "7.0" -> 7; anything else -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        s = str(value).strip()
        if s == "":
            return None
        f = float(s)
    except (TypeError, ValueError):
        return None
    if f != f or not f.is_integer():
        return None
    return int(f)


def format_bool(value: Any) -> str:
    return "TRUE" if parse_bool(value) else "FALSE"


class RowCodec:
    """
    Encoder/decoder for one table.

    Field declarations use canonical (normalized) names.
    """

    def __init__(
        self,
        json_fields: Iterable[str] = (),
        bool_fields: Iterable[str] = (),
        int_fields: Iterable[str] = (),
    ) -> None:
        self.json_fields = frozenset(json_fields)
        self.bool_fields = frozenset(bool_fields)
        self.int_fields = frozenset(int_fields)

    # ---- decode ----

    def decode_cell(self, key: str, raw: Any) -> Any:
        if key in self.json_fields:
            return self._decode_json_field(key, raw)

        if isinstance(raw, str):
            if raw == "":
                return None
            if key in self.bool_fields:
                s = raw.strip().upper()
                if s not in ("TRUE", "FALSE"):
                    warnings.warn(
                        f"{key}: {raw!r} is not TRUE/FALSE, read as FALSE",
                        DecodeWarning,
                        stacklevel=3,
                    )
                return s == "TRUE"
            if key in self.int_fields:
                n = parse_int(raw)
                if n is None:
                    warnings.warn(
                        f"{key}: {raw!r} is not an integer, kept as text",
                        DecodeWarning,
                        stacklevel=3,
                    )
                    return raw
                return n
            if raw.startswith("{") or raw.startswith("["):
                return self._try_json(key, raw)
            return raw

        if raw is None:
            return None
        if key in self.int_fields and isinstance(raw, float) and raw.is_integer():
            return int(raw)
        return raw

    def _decode_json_field(self, key: str, raw: Any) -> Any:
        if raw is None:
            return []
        if not isinstance(raw, str):
            return raw
        s = raw.strip()
        if s == "" or s == "null":
            return []
        if s.startswith("{") or s.startswith("["):
            return self._try_json(key, s)
        # free text in a JSON column (e.g. a single URL) stays as-is
        return raw

    @staticmethod
    def _try_json(key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except ValueError:
            warnings.warn(
                f"{key}: cell looks like JSON but does not parse, kept as text",
                DecodeWarning,
                stacklevel=4,
            )
            return raw

    def decode(self, headers: Sequence[Any], cells: Sequence[Any]) -> dict[str, Any]:
        record: dict[str, Any] = {}
        for i, header in enumerate(headers):
            key = normalize_key(header)
            if not key:
                continue
            raw = cells[i] if i < len(cells) else ""
            record[key] = self.decode_cell(key, raw)
        return record

    # ---- encode ----

    def encode_value(self, key: str, value: Any) -> Any:
        if value is None:
            return ""
        if key in self.bool_fields:
            return format_bool(value)
        if isinstance(value, (dict, list, tuple)):
            return json.dumps(value, ensure_ascii=False)
        return value

    def encode(self, headers: Sequence[Any], record: dict[str, Any]) -> list[Any]:
        canonical = {normalize_key(k): v for k, v in record.items()}
        return [
            self.encode_value(key, canonical.get(key))
            for key in (normalize_key(h) for h in headers)
        ]


_DEFAULT_CODEC = RowCodec()


def decode_row(
    headers: Sequence[Any],
    cells: Sequence[Any],
    codec: Optional[RowCodec] = None,
) -> dict[str, Any]:
    return (codec or _DEFAULT_CODEC).decode(headers, cells)


def encode_record(
    headers: Sequence[Any],
    record: dict[str, Any],
    codec: Optional[RowCodec] = None,
) -> list[Any]:
    return (codec or _DEFAULT_CODEC).encode(headers, record)
