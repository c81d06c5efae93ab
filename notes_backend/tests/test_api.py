import pytest
from fastapi.testclient import TestClient

from onyx_store import repository
from onyx_store.api.main import app
from onyx_store.errors import StartupError, StorageError


def test_greet(client):
    resp = client.get("/greet/Ada")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Welcome to ONYX, Operator Ada!"}


def test_health_endpoints(client):
    assert client.get("/").json() == {"message": "Healthy"}
    assert client.get("/health/db").json() == {"status": "up", "query": "SELECT 1", "result": 1}


def test_startup_creates_database_in_data_dir(client, tmp_path):
    assert (tmp_path / "appdata" / "onyx.db").exists()


def test_note_lifecycle(client):
    assert client.get("/notes").json() == []

    resp = client.post("/notes", json={"title": "Ideas", "content": "write more"})
    assert resp.status_code == 201
    note_id = resp.json()["id"]

    detail = client.get(f"/notes/{note_id}").json()
    assert detail["title"] == "Ideas"
    assert detail["content"] == "write more"
    assert detail["pb_id"] is None

    resp = client.put(f"/notes/{note_id}", json={"title": "Ideas v2", "content": "edited"})
    assert resp.status_code == 204
    assert client.get(f"/notes/{note_id}").json()["title"] == "Ideas v2"

    summaries = client.get("/notes").json()
    assert [s["id"] for s in summaries] == [note_id]
    assert "content" not in summaries[0]

    assert client.delete(f"/notes/{note_id}").status_code == 204
    assert client.get(f"/notes/{note_id}").json() is None
    assert client.get("/notes").json() == []


def test_missing_note_is_null_not_an_error(client):
    resp = client.get("/notes/777")
    assert resp.status_code == 200
    assert resp.json() is None


def test_mutations_on_missing_note_succeed_silently(client):
    assert client.put("/notes/777", json={"title": "x", "content": "y"}).status_code == 204
    assert client.put("/notes/777/pb-id", json={"pb_id": "ext-9"}).status_code == 204
    assert client.delete("/notes/777").status_code == 204
    assert client.get("/notes").json() == []


def test_sync_operations(client):
    payload = {"pb_id": "ext-1", "title": "T", "content": "C", "updated_at": "2020-01-01T00:00:00Z"}
    resp = client.post("/notes/import", json=payload)
    assert resp.status_code == 201
    imported = resp.json()["id"]

    detail = client.get(f"/notes/{imported}").json()
    assert detail["pb_id"] == "ext-1"
    assert detail["updated_at"] == "2020-01-01T00:00:00Z"

    local = client.post("/notes", json={"title": "local", "content": None}).json()["id"]
    assert client.put(f"/notes/{local}/pb-id", json={"pb_id": "ext-2"}).status_code == 204
    assert client.get(f"/notes/{local}").json()["pb_id"] == "ext-2"

    assert client.delete("/notes/by-pb-id/ext-1").status_code == 204
    assert [s["id"] for s in client.get("/notes").json()] == [local]


def test_storage_error_is_returned_as_message(client, monkeypatch):
    def _fail(db, title, content):
        raise StorageError("Failed to create note: database is locked")

    monkeypatch.setattr(repository, "create_note", _fail)
    resp = client.post("/notes", json={"title": "T", "content": "C"})
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to create note: database is locked"}


def test_startup_aborts_without_usable_data_dir(tmp_path, monkeypatch):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    monkeypatch.setenv("ONYX_DATA_DIR", str(blocker / "ONYX"))
    with pytest.raises(StartupError):
        with TestClient(app):
            pass
