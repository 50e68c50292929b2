"""
End-to-end API tests: FastAPI TestClient over the in-memory grid.

Run with: pytest tests/test_api.py -v
"""
import pytest
from fastapi.testclient import TestClient

import main
from models import build_stores


@pytest.fixture
def client(transport, documents, clock):
    main._stores = build_stores(transport, documents, clock=clock)
    yield TestClient(main.app)
    main._stores = None


def _create_delegation(client, **overrides):
    body = {
        "userId": 1,
        "delegationName": "Audit",
        "assignedTo": "boss",
        "dueDate": "2025-01-20T17:00",
    }
    body.update(overrides)
    return client.post("/delegations", json=body)


class TestHealth:
    def test_liveness(self, client):
        assert client.get("/healthz").json()["status"] == "ok"

    def test_health_and_readiness(self, client):
        assert client.get("/health").json()["status"] == "healthy"
        ready = client.get("/readyz")
        assert ready.status_code == 200
        assert set(ready.json()["sheets"]) == {"delegation", "users", "todos", "checklists"}

    def test_request_id_header(self, client):
        assert client.get("/").headers.get("X-Request-ID")


class TestDelegationRoutes:
    def test_create_fans_out_per_doer(self, client):
        res = _create_delegation(client, doers=["amy", "bob"])

        assert res.status_code == 201
        body = res.json()
        assert body["count"] == 2
        assert body["delegation"]["id"] == 1
        assert body["delegation"]["due_date"] == "20/01/2025 17:00:00"

    def test_snake_case_body_accepted(self, client):
        res = client.post("/delegations", json={
            "user_id": 1, "delegation_name": "Audit", "assigned_to": "boss",
        })
        assert res.status_code == 201

    def test_missing_required_field(self, client):
        res = client.post("/delegations", json={"userId": 1, "delegationName": "Audit"})
        assert res.status_code == 422

    def test_duplicate_doers(self, client):
        res = _create_delegation(client, doers=["amy", "amy"])
        assert res.status_code == 400
        assert res.json()["error"] == "VALIDATION_ERROR"

    def test_list_scoped_by_role(self, client):
        _create_delegation(client, doerName="amy")
        _create_delegation(client, userId=2, doerName="bob")

        mine = client.get("/delegations", params={"user_id": 2, "role": "User", "username": "bob"})
        everything = client.get("/delegations", params={"user_id": 2, "role": "admin"})

        assert [d["id"] for d in mine.json()["delegations"]] == [2]
        assert len(everything.json()["delegations"]) == 2

    def test_get_update_delete(self, client):
        _create_delegation(client)

        assert client.get("/delegations/1").json()["delegation"]["delegation_name"] == "Audit"

        res = client.put("/delegations/1", json={"priority": "high", "status": "in progress"})
        assert res.status_code == 200
        assert res.json()["delegation"]["priority"] == "high"
        assert res.json()["delegation"]["status"] == "in-progress"

        assert client.delete("/delegations/1").json()["id"] == 1
        missing = client.get("/delegations/1")
        assert missing.status_code == 404
        assert missing.json()["error"] == "NOT_FOUND"

    def test_stale_update_conflicts(self, client, clock):
        created = _create_delegation(client).json()["delegation"]
        clock.advance(minutes=1)
        client.put("/delegations/1", json={"priority": "low"})

        res = client.put("/delegations/1", json={
            "priority": "high", "expectedUpdatedAt": created["updated_at"],
        })

        assert res.status_code == 409
        assert client.get("/delegations/1").json()["delegation"]["priority"] == "low"

    def test_status_remarks_history(self, client):
        _create_delegation(client)

        res = client.post("/delegations/update-status", json={
            "delegationId": 1, "status": "done", "userId": 3, "username": "amy", "remark": "finished",
        })
        assert res.status_code == 200
        assert res.json()["delegation"]["status"] == "done"

        client.post("/delegations/remarks", json={"delegationId": 1, "userId": 3, "remark": "follow-up"})

        remarks = client.get("/delegations/remarks", params={"delegation_id": 1}).json()["remarks"]
        history = client.get("/delegations/history", params={"delegation_id": 1}).json()["history"]
        assert {r["remark"] for r in remarks} == {"finished", "follow-up"}
        assert [(h["old_status"], h["new_status"]) for h in history] == [("planned", "done")]

    def test_unknown_status(self, client):
        _create_delegation(client)
        res = client.post("/delegations/update-status", json={
            "delegationId": 1, "status": "archived", "userId": 3,
        })
        assert res.status_code == 400


class TestChecklistRoutes:
    def _create(self, client):
        return client.post("/checklists", json={
            "question": "Clean", "assignee": "boss", "frequency": "weekly",
            "dueDate": "2025-01-15T10:00", "doers": ["amy", "bob"], "weeklyDays": [3, 5],
        })

    def test_create_and_list(self, client):
        res = self._create(client)

        assert res.status_code == 201
        assert res.json()["count"] == 4
        assert res.json()["id"] == 1
        assert len(client.get("/checklists").json()["checklists"]) == 4

    def test_group_update_and_delete(self, client):
        group_ids = self._create(client).json()["group_ids"]

        res = client.put("/checklists", json={"groupId": group_ids[0], "priority": "high"})
        assert res.json()["updated"] == 2

        res = client.delete("/checklists", params={"group_id": group_ids[0]})
        assert res.json()["deleted"] == 2
        remaining = client.get("/checklists").json()["checklists"]
        assert {c["doer_name"] for c in remaining} == {"bob"}

    def test_single_update_and_delete(self, client):
        self._create(client)

        res = client.put("/checklists", json={"id": 2, "question": "Mop"})
        assert res.json()["checklist"]["question"] == "Mop"

        assert client.delete("/checklists", params={"id": 2}).json()["deleted"] == 1

    def test_target_required(self, client):
        assert client.put("/checklists", json={"priority": "high"}).status_code == 422
        assert client.delete("/checklists").status_code == 400

    def test_status_update(self, client):
        self._create(client)
        res = client.post("/checklists/update-status", json={
            "checklistId": 1, "status": "done", "userId": 3, "attachmentUrl": "http://x/a.png",
        })
        assert res.json()["status"] == "done"
        history = client.get("/checklists/history", params={"checklist_id": 1}).json()["history"]
        assert history[0]["attachment_url"] == "http://x/a.png"

    def test_unknown_frequency(self, client):
        res = client.post("/checklists", json={
            "question": "Clean", "assignee": "boss", "frequency": "hourly", "dueDate": "2025-01-15T10:00",
        })
        assert res.status_code == 400


class TestChecklistGroupDueDate:
    def test_series_due_date_rejected(self, client):
        res = client.post("/checklists", json={
            "question": "Clean", "assignee": "boss", "doers": ["amy"], "frequency": "weekly",
            "dueDate": "2025-01-15T10:00", "weeklyDays": [1, 3, 5],
        })
        group_id = res.json()["group_ids"][0]

        res = client.put("/checklists", json={"groupId": group_id, "dueDate": "2025-01-20T09:00"})
        assert res.status_code == 400
        assert res.json()["field"] == "due_date"


class TestTodoRoutes:
    def test_crud(self, client):
        res = client.post("/todos", json={"title": "Buy milk", "userId": 1})
        assert res.status_code == 201
        todo_id = res.json()["id"]

        client.put(f"/todos/{todo_id}", json={"category": "trash", "isImportant": True})

        trash = client.get("/todos", params={"user_id": 1, "category": "trash"}).json()
        assert [t["title"] for t in trash] == ["Buy milk"]
        assert trash[0]["is_important"] is True
        assert client.get("/todos", params={"status": "pending", "category": "inbox"}).json() == []

        assert client.delete(f"/todos/{todo_id}").json() == {"success": True}
        assert client.delete(f"/todos/{todo_id}").status_code == 404


    def test_trash_restore_important(self, client):
        todo_id = client.post("/todos", json={"title": "Buy milk", "userId": 1}).json()["id"]

        assert client.put(f"/todos/{todo_id}/trash").json()["category"] == "trash"
        assert client.put(f"/todos/{todo_id}/restore").json()["category"] == "inbox"
        assert client.put(f"/todos/{todo_id}/important").json()["is_important"] is True
        assert client.put(f"/todos/{todo_id}/important").json()["is_important"] is False
        assert client.put("/todos/99/trash").status_code == 404


class TestNotificationRoutes:
    def test_flow(self, client):
        client.post("/notifications", json={"userId": 1, "title": "a"})
        client.post("/notifications", json={"userId": 1, "title": "b"})
        client.post("/notifications", json={"userId": 2, "title": "c"})

        assert len(client.get("/notifications", params={"user_id": 1}).json()) == 2
        assert len(client.get("/notifications", params={"user_id": 1, "role": "admin"}).json()) == 3

        assert client.put("/notifications/1/read").json() == {"success": True}
        unread = client.get("/notifications", params={"user_id": 1, "unread_only": True}).json()
        assert [n["title"] for n in unread] == ["b"]

        assert client.put("/notifications/read-all", params={"user_id": 1}).json()["updated"] == 1
        assert client.get("/notifications/unread-count", params={"user_id": 1}).json() == {"count": 0}
        assert client.get("/notifications/unread-count", params={"user_id": 1, "role": "admin"}).json() == {"count": 1}

    def test_user_id_required(self, client):
        assert client.get("/notifications").status_code == 422


class TestUserRoutes:
    def test_create_get_update(self, client):
        res = client.post("/users", json={
            "username": "amy", "email": "amy@example.com", "password": "pw", "presentCity": "Pune",
        })
        assert res.status_code == 201
        user = res.json()["user"]
        assert "password" not in user
        assert user["present_city"] == "Pune"

        assert client.get(f"/users/{user['id']}").json()["user"]["username"] == "amy"
        res = client.put(f"/users/{user['id']}", json={"phone": "555"})
        assert res.json()["user"]["phone"] == "555"
        assert all("password" not in u for u in client.get("/users").json()["users"])

    def test_duplicate_username(self, client):
        body = {"username": "amy", "email": "amy@example.com", "password": "pw"}
        client.post("/users", json=body)
        res = client.post("/users", json={**body, "email": "x@example.com"})
        assert res.status_code == 409
        assert res.json()["field"] == "username"

    def test_delete(self, client):
        client.post("/users", json={"username": "amy", "email": "amy@example.com", "password": "pw"})
        assert client.delete("/users/1").status_code == 200
        assert client.get("/users/1").status_code == 404


class TestLoginRoute:
    def test_login(self, client):
        client.post("/users", json={"username": "amy", "email": "amy@example.com", "password": "pw"})

        res = client.post("/login", json={"username": "Amy", "password": "pw"})
        assert res.status_code == 200
        assert res.json()["user"]["username"] == "amy"
        assert "password" not in res.json()["user"]

        assert client.post("/login", json={"username": "amy", "password": "nope"}).status_code == 401
        assert client.post("/login", json={"username": "bob", "password": "pw"}).status_code == 401
        assert client.post("/login", json={"username": "amy"}).status_code == 422


class TestDepartmentRoutes:
    def test_flow(self, client):
        assert client.post("/departments", json={"name": "Sales"}).status_code == 201
        assert client.post("/departments", json={"name": "sales"}).status_code == 409
        assert client.post("/departments", json={"name": "  "}).status_code == 400

        assert [d["name"] for d in client.get("/departments").json()["departments"]] == ["Sales"]
        assert client.delete("/departments", params={"name": "SALES"}).json()["department"]["name"] == "Sales"
        assert client.delete("/departments", params={"name": "Sales"}).status_code == 404
