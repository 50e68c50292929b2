# services/api/adapters/sheets/__init__.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from core.errors import TransportError
from ..base import SheetsTransport

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def _sa_client_from_json_or_path(google_sa_json: str) -> gspread.Client:
    """
    Accepts either:
      - absolute/relative path to a service-account JSON file, OR
      - a literal JSON string.
    Returns an authorized gspread Client.
    """
    if not google_sa_json:
        raise ValueError("GOOGLE_SA_JSON is required (path to file or inline JSON).")

    # Try to treat as inline JSON first
    try:
        parsed = json.loads(google_sa_json)
        creds = Credentials.from_service_account_info(parsed, scopes=SCOPES)
        return gspread.authorize(creds)
    except json.JSONDecodeError:
        # Not JSON; treat as file path
        creds = Credentials.from_service_account_file(google_sa_json, scopes=SCOPES)
        return gspread.authorize(creds)


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Sheets API call {retry_state.fn.__name__} failed "
        f"(attempt {retry_state.attempt_number}): {exc}"
    )


def _retry_policy(attempts: int = 3) -> dict:
    return dict(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((gspread.exceptions.APIError,)),
        before_sleep=_log_retry,
        reraise=True,
    )


_TRANSPORT_FAILURES = (
    gspread.exceptions.APIError,
    gspread.exceptions.SpreadsheetNotFound,
    requests.exceptions.RequestException,
    GoogleAuthError,
)


class GspreadTransport(SheetsTransport):
    """
    Google Sheets transport on top of gspread:
    - RAW value input (the codec owns all formatting)
    - INSERT_ROWS appends
    - Retry with backoff on API/quota errors (max_retries attempts), then TransportError
    """

    def __init__(
        self,
        google_sa_json: Optional[str] = None,
        client: Optional[gspread.Client] = None,
        max_retries: int = 3,
    ) -> None:
        if client is None:
            if not google_sa_json:
                raise ValueError("GspreadTransport requires GOOGLE_SA_JSON")
            client = _sa_client_from_json_or_path(google_sa_json)
        self.gc = client
        self.max_retries = max_retries
        self._spreadsheets: dict[str, gspread.Spreadsheet] = {}

    # ========== Internal helpers ==========

    def _spreadsheet(self, document_id: str) -> gspread.Spreadsheet:
        ss = self._spreadsheets.get(document_id)
        if ss is None:
            ss = self._open(document_id)
            self._spreadsheets[document_id] = ss
        return ss

    def _open(self, document_id: str) -> gspread.Spreadsheet:
        return self.gc.open_by_key(document_id)

    def _call(self, op: str, document_id: str, fn, *args, **kwargs):
        try:
            return Retrying(**_retry_policy(self.max_retries))(fn, *args, **kwargs)
        except _TRANSPORT_FAILURES as e:
            logger.error(f"Sheets {op} failed on {document_id}: {e}")
            raise TransportError(f"{op} failed: {e}", document_id=document_id) from e

    def _values_get(self, document_id: str, range_spec: str) -> dict:
        return self._spreadsheet(document_id).values_get(range_spec)

    def _values_update(self, document_id: str, range_spec: str, values: list) -> dict:
        return self._spreadsheet(document_id).values_update(
            range_spec,
            params={"valueInputOption": "RAW"},
            body={"values": values},
        )

    def _values_append(self, document_id: str, range_spec: str, values: list) -> dict:
        return self._spreadsheet(document_id).values_append(
            range_spec,
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            body={"values": values},
        )

    def _values_batch_update(self, document_id: str, data: list) -> dict:
        return self._spreadsheet(document_id).values_batch_update(
            body={"valueInputOption": "RAW", "data": data}
        )

    def _batch_update(self, document_id: str, requests_: list) -> dict:
        return self._spreadsheet(document_id).batch_update({"requests": requests_})

    def _fetch_metadata(self, document_id: str) -> dict:
        return self._spreadsheet(document_id).fetch_sheet_metadata()

    # ========== SheetsTransport API ==========

    def get_values(self, document_id: str, range_spec: str) -> List[List[str]]:
        resp = self._call("get", document_id, self._values_get, document_id, range_spec)
        return resp.get("values", []) or []

    def update_values(self, document_id: str, range_spec: str, values: List[List[Any]]) -> None:
        self._call("update", document_id, self._values_update, document_id, range_spec, values)

    def append_values(self, document_id: str, range_spec: str, values: List[List[Any]]) -> None:
        if values:
            self._call("append", document_id, self._values_append, document_id, range_spec, values)

    def batch_update_values(self, document_id: str, data: List[Dict[str, Any]]) -> None:
        if data:
            self._call("batchUpdateValues", document_id, self._values_batch_update, document_id, data)

    def batch_update(self, document_id: str, requests: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not requests:
            return {}
        return self._call("batchUpdate", document_id, self._batch_update, document_id, requests) or {}

    def get_document_metadata(self, document_id: str) -> Dict[str, Any]:
        meta = self._call("metadata", document_id, self._fetch_metadata, document_id)
        sheets = []
        for s in meta.get("sheets", []):
            props = s.get("properties", {})
            sheets.append({"title": props.get("title", ""), "sheetId": props.get("sheetId", 0)})
        return {"sheets": sheets}
