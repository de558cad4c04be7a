import pytest
from fastapi.testclient import TestClient

from config import AppConfig
from dashboard.app import create_app
from dashboard.config import DashboardSettings


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("BACKUP_DIR", str(tmp_path / "backups"))
    monkeypatch.setenv("BLOB_DIR", str(tmp_path / "blobs"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("LOG_TO_FILE", "false")

    app = create_app(AppConfig(), DashboardSettings(DEBUG=True))
    with TestClient(app) as test_client:
        yield test_client


def create(client, **payload):
    response = client.post("/api/tasks/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def virtual_ids(client):
    return [t["id"] for t in client.get("/api/tasks/").json()["tasks"] if t["isVirtual"]]


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["details"]["services"]["task_store"]["subscribers"] == 1


def test_create_and_list_with_projection(client):
    template = create(client, taskName="Newsletter", draftDue="2026-01-10", repeat="monthly")
    create(client, taskName="Trade show", draftDue="2026-03-20")

    body = client.get("/api/tasks/").json()

    assert body["total"] == 3
    [virtual] = [t for t in body["tasks"] if t["isVirtual"]]
    assert virtual["draftDue"] == "2026-03-10"
    assert virtual["recurringParentId"] == template["id"]
    assert virtual["isRecurring"] is True
    assert virtual["id"] in body["months"]["2026-03"]

    march = client.get("/api/tasks/", params={"month": "2026-03"}).json()
    assert {t["taskName"] for t in march["tasks"]} == {"Newsletter", "Trade show"}


def test_list_rejects_bad_month(client):
    assert client.get("/api/tasks/", params={"month": "March"}).status_code == 422


def test_patch_virtual_occurrence_stores_it(client):
    create(client, taskName="Newsletter", draftDue="2026-01-10", repeat="monthly")
    create(client, taskName="Trade show", draftDue="2026-03-20")
    [virtual_id] = virtual_ids(client)

    response = client.patch(f"/api/tasks/{virtual_id}", json={"notes": "Edited"})

    assert response.status_code == 200
    assert response.json()["isVirtual"] is False
    assert response.json()["notes"] == "Edited"
    assert virtual_ids(client) == []
    assert client.get(f"/api/tasks/{virtual_id}").json()["notes"] == "Edited"


def test_patch_rejects_protected_fields(client):
    task = create(client, taskName="Trade show")
    response = client.patch(f"/api/tasks/{task['id']}", json={"completedAt": "2020-01-01"})
    assert response.status_code == 422


def test_toggle_final(client):
    task = create(client, taskName="Trade show", draftDue="2026-03-20")

    done = client.post(f"/api/tasks/{task['id']}/toggle-final").json()
    assert done["draftComplete"] and done["finalComplete"]
    assert done["completedAt"] is not None

    completed = client.get("/api/tasks/", params={"view": "completed"}).json()
    assert [t["id"] for t in completed["tasks"]] == [task["id"]]


def test_delete_template_cascades(client):
    template = create(client, taskName="Newsletter", draftDue="2026-01-10", repeat="monthly")
    create(client, taskName="Trade show", draftDue="2026-03-20")
    [virtual_id] = virtual_ids(client)
    client.patch(f"/api/tasks/{virtual_id}", json={"notes": "stored"})

    response = client.delete(f"/api/tasks/{template['id']}")

    assert response.status_code == 200
    assert sorted(response.json()["removed"]) == sorted([template["id"], virtual_id])
    assert [t["taskName"] for t in client.get("/api/tasks/").json()["tasks"]] == ["Trade show"]


def test_delete_virtual_occurrence_completes_it(client):
    create(client, taskName="Newsletter", draftDue="2026-01-10", repeat="monthly")
    create(client, taskName="Trade show", draftDue="2026-03-20")
    [virtual_id] = virtual_ids(client)

    body = client.delete(f"/api/tasks/{virtual_id}").json()

    assert body["removed"] == []
    assert body["completed"]["id"] == virtual_id
    assert body["completed"]["completedAt"] is not None
    active = client.get("/api/tasks/", params={"view": "active"}).json()
    assert virtual_id not in [t["id"] for t in active["tasks"]]


def test_duplicate_and_attachments(client):
    task = create(client, taskName="Logo", repeat="weekly", draftDue="2026-03-02")

    copy = client.post(f"/api/tasks/{task['id']}/duplicate")
    assert copy.status_code == 201
    assert copy.json()["taskName"] == "Logo (Copy)"
    assert copy.json()["repeat"] == "none"

    response = client.post(
        f"/api/tasks/{task['id']}/attachments",
        json={"name": "logo.txt", "type": "text/plain", "data": "data:text/plain;base64,aGVsbG8="},
    )
    [attachment] = response.json()["attachments"]
    assert attachment["url"].startswith("file://")
    assert "data" not in attachment


def test_reorder(client):
    first = create(client, taskName="First")
    second = create(client, taskName="Second")

    response = client.post("/api/tasks/reorder", json={"taskIds": [second["id"], first["id"]]})

    assert response.json() == {"updated": 2}
    names = [t["taskName"] for t in client.get("/api/tasks/").json()["tasks"]]
    assert names == ["Second", "First"]


@pytest.mark.parametrize("method, path", [
    ("get", "/api/tasks/missing"),
    ("patch", "/api/tasks/missing"),
    ("delete", "/api/tasks/missing"),
    ("post", "/api/tasks/missing/toggle-draft"),
    ("post", "/api/tasks/missing/duplicate"),
    ("post", "/api/notifications/missing/undo"),
])
def test_unknown_ids_are_404(client, method, path):
    kwargs = {"json": {"notes": "x"}} if method == "patch" else {}
    assert getattr(client, method)(path, **kwargs).status_code == 404


def test_undo_delete(client):
    task = create(client, taskName="Trade show")
    client.delete(f"/api/tasks/{task['id']}")

    [notice] = [n for n in client.get("/api/notifications/").json() if n["canUndo"]]
    assert notice["message"] == "Task deleted"

    response = client.post(f"/api/notifications/{notice['id']}/undo")

    assert response.status_code == 200
    assert client.get(f"/api/tasks/{task['id']}").status_code == 200
    assert client.post(f"/api/notifications/{notice['id']}/undo").status_code == 404


def test_tasks_survive_restart(client):
    task = create(client, taskName="Persistent")

    with TestClient(create_app(AppConfig(), DashboardSettings())) as second:
        assert second.get(f"/api/tasks/{task['id']}").json()["taskName"] == "Persistent"
