"""
Tests for the table engine over the in-memory grid.

Run with: pytest tests/test_table.py -v
"""
import pytest

from conftest import DOC
from core.errors import ConflictError, NotFound, TransportError
from core.schema import TableSchema
from core.table import SheetTable, same_value

TASKS = TableSchema(
    name="tasks",
    headers=("id", "title", "group_id", "tags", "done", "created_at", "updated_at"),
    json_fields=frozenset({"tags"}),
    bool_fields=frozenset({"done"}),
    updated_field="updated_at",
)


@pytest.fixture
def table(transport, registry, clock):
    return SheetTable(transport, DOC, TASKS, registry, clock)


def _ops(transport, op):
    return [c for c in transport.calls if c[0] == op]


class TestSameValue:
    def test_numbers_and_strings(self):
        assert same_value(5, "5")
        assert same_value("5.0", 5)
        assert same_value(" x ", "x")
        assert not same_value("x", "y")
        assert not same_value(None, "")
        assert same_value(None, None)


class TestCreate:
    def test_create_then_get_round_trip(self, table):
        created = table.create({"title": "Ship", "tags": ["a"], "done": False})

        assert created["id"] == 1
        assert created["created_at"] == "15/01/2025 10:00:00"
        assert created["updated_at"] == created["created_at"]
        assert table.get(1) == created

    def test_create_then_list_contains_record(self, table):
        created = table.create({"title": "Ship"})
        assert created in table.list()

    def test_client_id_is_ignored(self, table):
        table.create({"title": "a"})
        created = table.create({"id": 99, "title": "b"})
        assert created["id"] == 2

    def test_unknown_fields_are_dropped(self, table):
        created = table.create({"title": "a", "colour": "red"})
        assert "colour" not in created

    def test_create_many_is_one_append(self, table, transport):
        table.ensure()
        transport.reset_calls()

        created = table.create_many([{"title": "a"}, {"title": "b"}, {"title": "c"}])

        assert [r["id"] for r in created] == [1, 2, 3]
        assert len(_ops(transport, "append")) == 1
        assert len(transport.calls) == 2

    def test_empty_create_many_makes_no_calls(self, table, transport):
        transport.reset_calls()
        assert table.create_many([]) == []
        assert transport.calls == []


class TestIdAllocation:
    def test_ids_are_strictly_increasing(self, table):
        ids = [table.create({"title": str(i)})["id"] for i in range(4)]
        assert ids == [1, 2, 3, 4]

    def test_no_reuse_after_deleting_from_middle(self, table):
        for i in range(3):
            table.create({"title": str(i)})
        table.delete(2)
        assert table.create({"title": "new"})["id"] == 4

    def test_deleting_the_last_row_frees_its_id(self, table):
        for i in range(3):
            table.create({"title": str(i)})
        table.delete(3)
        # max-scan: highest remaining id is 2
        assert table.next_id() == 3


class TestUpdate:
    def test_only_target_row_changes(self, table, transport):
        for i in range(3):
            table.create({"title": f"t{i}"})
        before = transport.dump(DOC, "tasks")

        table.update(2, {"title": "changed"})

        after = transport.dump(DOC, "tasks")
        assert after[1] == before[1]
        assert after[3] == before[3]
        assert after[2][1] == "changed"

    def test_created_at_kept_updated_at_refreshed(self, table, clock):
        table.create({"title": "a"})
        clock.advance(hours=2)

        updated = table.update(1, {"title": "b", "created_at": "01/01/2000 00:00:00"})

        assert updated["created_at"] == "15/01/2025 10:00:00"
        assert updated["updated_at"] == "15/01/2025 12:00:00"

    def test_shallow_merge_keeps_other_fields(self, table):
        table.create({"title": "a", "tags": ["x"]})
        updated = table.update(1, {"done": True})
        assert updated["tags"] == ["x"]
        assert updated["done"] is True

    def test_missing_id_raises_not_found(self, table):
        table.create({"title": "a"})
        with pytest.raises(NotFound):
            table.update(42, {"title": "b"})

    def test_expected_updated_at_mismatch(self, table, clock):
        created = table.create({"title": "a"})
        clock.advance(minutes=1)
        table.update(1, {"title": "b"})

        with pytest.raises(ConflictError):
            table.update(1, {"title": "c"}, expected_updated_at=created["updated_at"])
        assert table.get(1)["title"] == "b"

    def test_expected_updated_at_match(self, table):
        created = table.create({"title": "a"})
        updated = table.update(1, {"title": "b"}, expected_updated_at=created["updated_at"])
        assert updated["title"] == "b"

    def test_update_cell_writes_one_cell(self, table, transport):
        table.create({"title": "a", "done": False})
        transport.reset_calls()

        record = table.update_cell(1, "done", True)

        updates = _ops(transport, "update")
        assert updates == [("update", "'tasks'!E2")]
        assert record["done"] is True
        assert transport.dump(DOC, "tasks")[1][4] == "TRUE"

    def test_update_where(self, table):
        table.create_many([{"title": "a", "group_id": "g1"}, {"title": "b", "group_id": "g2"},
                           {"title": "c", "group_id": "g1"}])

        assert table.update_where("group_id", "g1", {"done": True}) == 2

        done = {r["title"]: r["done"] for r in table.list()}
        # never written -> blank cell -> None
        assert done == {"a": True, "b": None, "c": True}

    def test_update_where_is_a_single_batch(self, table, transport, monkeypatch):
        table.create_many([{"title": t, "group_id": "g"} for t in ("a", "b", "c")])

        def no_row_writes(*args):
            raise TransportError("row-by-row write")

        monkeypatch.setattr(transport, "update_values", no_row_writes)
        transport.reset_calls()

        assert table.update_where("group_id", "g", {"done": True}) == 3
        assert _ops(transport, "batchUpdateValues") == [("batchUpdateValues", DOC)]
        assert [r["done"] for r in table.list()] == [True, True, True]

    def test_failed_update_where_changes_nothing(self, table, transport, monkeypatch):
        table.create_many([{"title": t, "group_id": "g"} for t in ("a", "b", "c")])

        def unavailable(*args):
            raise TransportError("service unavailable")

        monkeypatch.setattr(transport, "batch_update_values", unavailable)
        with pytest.raises(TransportError):
            table.update_where("group_id", "g", {"done": True})

        assert [r["done"] for r in table.list()] == [None, None, None]

    def test_update_cells_where_writes_only_that_column(self, table, transport):
        table.create_many([{"title": "a", "done": False}, {"title": "b", "done": True},
                           {"title": "c", "done": False}])
        before = transport.dump(DOC, "tasks")
        transport.reset_calls()

        count = table.update_cells_where(lambda r: not r["done"], "done", True)

        assert count == 2
        assert not _ops(transport, "update")
        after = transport.dump(DOC, "tasks")
        assert [row[4] for row in after[1:]] == ["TRUE", "TRUE", "TRUE"]
        assert [row[:4] + row[5:] for row in after] == [row[:4] + row[5:] for row in before]

    def test_update_cells_where_without_matches(self, table, transport):
        table.create({"title": "a", "done": True})
        transport.reset_calls()
        assert table.update_cells_where(lambda r: not r["done"], "done", True) == 0
        assert not _ops(transport, "batchUpdateValues")

    def test_update_where_no_match(self, table):
        table.create({"title": "a", "group_id": "g1"})
        with pytest.raises(NotFound):
            table.update_where("group_id", "nope", {"done": True})


class TestDelete:
    def test_rows_below_shift_up(self, table):
        for t in ("a", "b", "c"):
            table.create({"title": t})

        assert table.delete(2) == {"id": 2}

        assert table.get(2) is None
        assert table.get(3)["title"] == "c"
        assert [r["id"] for r in table.list()] == [1, 3]

    def test_delete_missing_raises(self, table):
        table.create({"title": "a"})
        with pytest.raises(NotFound):
            table.delete(5)

    def test_delete_where_removes_exactly_the_group(self, table, transport):
        table.create_many([
            {"title": "a", "group_id": "g1"},
            {"title": "b", "group_id": "g2"},
            {"title": "c", "group_id": "g1"},
            {"title": "d", "group_id": "g3"},
            {"title": "e", "group_id": "g1"},
        ])
        transport.reset_calls()

        assert table.delete_where("group_id", "g1") == 3

        assert len(_ops(transport, "batchUpdate")) == 1
        assert [r["title"] for r in table.list()] == ["b", "d"]

    def test_group_delete_requests_run_bottom_up(self, table):
        sent = []
        table.create_many([{"title": t, "group_id": "g"} for t in "abc"])
        original = table.transport.batch_update

        def spy(document_id, requests):
            sent.extend(requests)
            return original(document_id, requests)

        table.transport.batch_update = spy
        table.delete_where("group_id", "g")

        starts = [r["deleteDimension"]["range"]["startIndex"] for r in sent]
        assert starts == sorted(starts, reverse=True)


class TestRead:
    def test_rows_without_id_are_skipped(self, table, transport):
        table.create({"title": "a"})
        transport.append_values(DOC, "'tasks'!A1", [["", "stray"]])
        assert [r["title"] for r in table.list()] == ["a"]

    def test_boolean_cells_decode_to_bool(self, table, transport):
        table.create({"title": "a", "done": True})
        transport.update_values(DOC, "'tasks'!E2", [["false"]])
        assert table.get(1)["done"] is False

    def test_list_filter_and_sort(self, table):
        for t in ("b", "c", "a"):
            table.create({"title": t})
        rows = table.list(lambda r: r["title"] != "c", sort_key=lambda r: r["title"])
        assert [r["title"] for r in rows] == ["a", "b"]

    def test_find(self, table):
        table.create_many([{"title": "a", "group_id": "g"}, {"title": "b", "group_id": "h"},
                           {"title": "c", "group_id": "g"}])
        assert [r["title"] for r in table.find("groupId", "g")] == ["a", "c"]
        assert [r["title"] for r in table.find("group_id", "g", sort_key=lambda r: r["id"], reverse=True)] == ["c", "a"]

    def test_each_read_goes_to_the_sheet(self, table, transport):
        table.create({"title": "a"})
        transport.update_values(DOC, "'tasks'!B2", [["edited elsewhere"]])
        assert table.get(1)["title"] == "edited elsewhere"
