"""
Tests for the gspread transport with a mocked client (no network).

Run with: pytest tests/test_sheets_transport.py -v
"""
from unittest.mock import MagicMock

import gspread
import pytest
import requests

from adapters.sheets import GspreadTransport
from core.errors import TransportError


def _api_error(code=429):
    response = MagicMock()
    response.json.return_value = {"error": {"code": code, "message": "quota", "status": "RESOURCE_EXHAUSTED"}}
    response.status_code = code
    return gspread.exceptions.APIError(response)


@pytest.fixture
def spreadsheet():
    return MagicMock()


@pytest.fixture
def gspread_transport(spreadsheet):
    client = MagicMock()
    client.open_by_key.return_value = spreadsheet
    return GspreadTransport(client=client, max_retries=1)


class TestCalls:
    def test_get_values(self, gspread_transport, spreadsheet):
        spreadsheet.values_get.return_value = {"values": [["id", "name"]]}
        assert gspread_transport.get_values("doc", "'users'!1:1") == [["id", "name"]]
        spreadsheet.values_get.assert_called_once_with("'users'!1:1")

    def test_empty_range(self, gspread_transport, spreadsheet):
        spreadsheet.values_get.return_value = {"range": "'users'!A2:A"}
        assert gspread_transport.get_values("doc", "'users'!A2:A") == []

    def test_writes_are_raw(self, gspread_transport, spreadsheet):
        gspread_transport.update_values("doc", "'users'!A2:C2", [[1, "a", "TRUE"]])
        _, kwargs = spreadsheet.values_update.call_args
        assert kwargs["params"] == {"valueInputOption": "RAW"}
        assert kwargs["body"] == {"values": [[1, "a", "TRUE"]]}

    def test_append_inserts_rows(self, gspread_transport, spreadsheet):
        gspread_transport.append_values("doc", "'users'!A1", [["1"]])
        _, kwargs = spreadsheet.values_append.call_args
        assert kwargs["params"] == {"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"}

    def test_empty_writes_skip_the_network(self, gspread_transport, spreadsheet):
        gspread_transport.append_values("doc", "'users'!A1", [])
        assert gspread_transport.batch_update("doc", []) == {}
        spreadsheet.values_append.assert_not_called()
        spreadsheet.batch_update.assert_not_called()

    def test_batch_value_write_is_one_raw_call(self, gspread_transport, spreadsheet):
        data = [{"range": "'users'!G2", "values": [[True]]}, {"range": "'users'!G4", "values": [[True]]}]
        gspread_transport.batch_update_values("doc", data)
        spreadsheet.values_batch_update.assert_called_once_with(
            body={"valueInputOption": "RAW", "data": data}
        )
        gspread_transport.batch_update_values("doc", [])
        assert spreadsheet.values_batch_update.call_count == 1

    def test_metadata_is_normalized(self, gspread_transport, spreadsheet):
        spreadsheet.fetch_sheet_metadata.return_value = {
            "sheets": [{"properties": {"title": "users", "sheetId": 7, "index": 0}}]
        }
        assert gspread_transport.get_document_metadata("doc") == {"sheets": [{"title": "users", "sheetId": 7}]}

    def test_spreadsheet_opened_once(self, gspread_transport, spreadsheet):
        spreadsheet.values_get.return_value = {}
        gspread_transport.get_values("doc", "'a'")
        gspread_transport.get_values("doc", "'b'")
        assert gspread_transport.gc.open_by_key.call_count == 1


class TestFailures:
    def test_network_error_becomes_transport_error(self, gspread_transport, spreadsheet):
        spreadsheet.values_get.side_effect = requests.exceptions.ConnectionError("down")
        with pytest.raises(TransportError) as exc:
            gspread_transport.get_values("doc", "'users'")
        assert exc.value.status_code == 502
        assert exc.value.context["document_id"] == "doc"

    def test_api_error_after_retries(self, gspread_transport, spreadsheet):
        spreadsheet.batch_update.side_effect = _api_error()
        with pytest.raises(TransportError):
            gspread_transport.batch_update("doc", [{"addSheet": {"properties": {"title": "t"}}}])
        assert spreadsheet.batch_update.call_count == 1

    def test_api_error_is_retried(self, spreadsheet):
        client = MagicMock()
        client.open_by_key.return_value = spreadsheet
        transport = GspreadTransport(client=client, max_retries=2)
        spreadsheet.values_get.side_effect = [_api_error(), {"values": [["ok"]]}]

        assert transport.get_values("doc", "'users'") == [["ok"]]
        assert spreadsheet.values_get.call_count == 2

    def test_open_is_attempted_max_retries_times(self, spreadsheet):
        client = MagicMock()
        client.open_by_key.side_effect = _api_error()
        transport = GspreadTransport(client=client, max_retries=1)

        with pytest.raises(TransportError):
            transport.get_values("doc", "'users'")
        assert client.open_by_key.call_count == 1

    def test_credentials_required(self):
        with pytest.raises(ValueError):
            GspreadTransport()
