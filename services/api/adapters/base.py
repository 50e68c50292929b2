"""
Transport interface for the Sheets-backed stores.

Defines the contract every spreadsheet transport must implement. The stores
only ever talk to a transport through these six calls, which lets the
service swap Google Sheets for the in-memory grid (local runs, tests)
without touching the store or router code.

NOTE:
- Ranges are A1 notation with a quoted sheet title, e.g. "'users'!A1:Z1".
  A bare "'users'" addresses the whole sheet.
- Authentication / token refresh is entirely the transport's concern.
"""

from typing import Any, Dict, List, Protocol


class SheetsTransport(Protocol):
    """
    Protocol defining the calls the data layer makes against a spreadsheet
    service. Every method is one remote round trip; implementations raise
    core.errors.TransportError when the call fails.
    """

    def get_values(self, document_id: str, range_spec: str) -> List[List[str]]:
        """
        Read a range.

        Returns:
            List of rows, each a list of cell strings. Trailing empty cells
            and trailing empty rows are omitted (as the Sheets API does).
        """
        ...

    def update_values(self, document_id: str, range_spec: str, values: List[List[Any]]) -> None:
        """
        Overwrite a range starting at its top-left cell with raw values.
        """
        ...

    def append_values(self, document_id: str, range_spec: str, values: List[List[Any]]) -> None:
        """
        Append rows after the last non-empty row of the addressed sheet,
        inserting new rows (never overwriting).
        """
        ...

    def batch_update_values(self, document_id: str, data: List[Dict[str, Any]]) -> None:
        """
        Overwrite several ranges in one call (values.batchUpdate).

        Args:
            data: [{"range": "'users'!G2", "values": [[...]]}, ...]

        All ranges are written or none is.
        """
        ...

    def batch_update(self, document_id: str, requests: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Structural changes (spreadsheets.batchUpdate).

        The data layer uses:
            - addSheet:        {"addSheet": {"properties": {"title": ...}}}
            - deleteDimension: {"deleteDimension": {"range": {"sheetId": ...,
                                "dimension": "ROWS", "startIndex": ..., "endIndex": ...}}}

        Requests are applied in order within one atomic call.
        """
        ...

    def get_document_metadata(self, document_id: str) -> Dict[str, Any]:
        """
        Returns:
            {"sheets": [{"title": str, "sheetId": int}, ...]}
        """
        ...
