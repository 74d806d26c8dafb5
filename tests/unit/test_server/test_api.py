"""
Tests for the data server HTTP API.
"""

import json
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from daily_life.core.exceptions import (
    DailyLifeError, DuplicateEntryError, EntryNotFoundError, MalformedImportError,
    PersistenceError, StorageIOError
)
from daily_life.server.app import status_code_for


@pytest.fixture
def seeded_client(api_client: TestClient, sample_entries):
    response = api_client.post(
        "/api/entries", json=[entry.model_dump(mode="json") for entry in sample_entries]
    )
    assert response.status_code == 200
    return api_client


class TestHealth:
    """Test liveness endpoint."""

    def test_health(self, api_client: TestClient):
        response = api_client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "OK", "message": "Server is running"}


class TestEntriesApi:
    """Test entry endpoints."""

    def test_empty_list(self, api_client: TestClient):
        response = api_client.get("/api/entries")
        assert response.status_code == 200
        assert response.json() == []

    def test_add_entry(self, api_client: TestClient):
        response = api_client.post("/api/entries/add", json={"content": "hello", "mood": "happy"})
        assert response.status_code == 200
        created = response.json()
        assert created["content"] == "hello"
        assert created["mood"] == "happy"
        assert created["id"]
        assert created["date"].endswith("Z")

        assert api_client.get("/api/entries").json() == [created]

    def test_add_ignores_client_id(self, api_client: TestClient):
        created = api_client.post(
            "/api/entries/add", json={"content": "hello", "id": "chosen"}
        ).json()
        assert created["id"] != "chosen"
        assert created["mood"] == "neutral"

    @pytest.mark.parametrize("body", [
        {"content": "   "},
        {"mood": "happy"},
        {"content": "hello", "mood": "ecstatic"},
    ])
    def test_add_rejects_invalid(self, api_client: TestClient, body):
        response = api_client.post("/api/entries/add", json=body)
        assert response.status_code == 422
        assert api_client.get("/api/entries").json() == []

    def test_list_filters(self, seeded_client: TestClient):
        assert [e["id"] for e in seeded_client.get("/api/entries", params={"q": "HIKING"}).json()] == ["3"]
        assert [e["id"] for e in seeded_client.get("/api/entries", params={"mood": "sad"}).json()] == ["2"]

    def test_update_entry(self, seeded_client: TestClient):
        response = seeded_client.put("/api/entries/1", json={"content": "edited"})
        assert response.status_code == 200
        assert response.json() == {"message": "Entry updated successfully"}

        entry = next(e for e in seeded_client.get("/api/entries").json() if e["id"] == "1")
        assert entry["content"] == "edited"
        assert entry["mood"] == "happy"
        assert entry["date"] == "2025-06-01T09:00:00.000Z"

    def test_update_unknown_entry(self, seeded_client: TestClient):
        response = seeded_client.put("/api/entries/missing", json={"content": "x"})
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_delete_entry(self, seeded_client: TestClient):
        response = seeded_client.delete("/api/entries/2")
        assert response.status_code == 200
        assert response.json() == {"message": "Entry deleted successfully"}
        assert [e["id"] for e in seeded_client.get("/api/entries").json()] == ["3", "1"]

    def test_delete_unknown_entry(self, seeded_client: TestClient):
        assert seeded_client.delete("/api/entries/missing").status_code == 200
        assert len(seeded_client.get("/api/entries").json()) == 3

    def test_replace_rejects_invalid_entries(self, api_client: TestClient):
        response = api_client.post("/api/entries", json=[{"content": "no id"}])
        assert response.status_code == 422

    def test_corrupt_entries_file(self, api_client: TestClient, store):
        store.settings.entries_path.write_text("{oops", encoding="utf-8")
        assert api_client.get("/api/entries").json() == []

        response = api_client.post("/api/entries/add", json={"content": "hello"})
        assert response.status_code == 500
        assert response.json()["error_code"] == "PERSISTENCE_ERROR"


class TestSettingsApi:
    """Test settings endpoints."""

    def test_defaults(self, api_client: TestClient):
        data = api_client.get("/api/settings").json()
        assert data["theme"] == "light"
        assert data["autoSave"] is True
        assert data["customTexts"]["appTitle"] == "Life Recorder"

    def test_partial_save_merges_on_read(self, api_client: TestClient):
        response = api_client.post("/api/settings", json={"theme": "dark"})
        assert response.status_code == 200

        data = api_client.get("/api/settings").json()
        assert data["theme"] == "dark"
        assert data["customTexts"]["appTitle"] == "Life Recorder"

    def test_invalid_theme_rejected(self, api_client: TestClient):
        assert api_client.post("/api/settings", json={"theme": "purple"}).status_code == 422


class TestBackupApi:
    """Test export and import."""

    def test_export(self, seeded_client: TestClient):
        response = seeded_client.get("/api/export")
        assert response.status_code == 200
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="daily-life-backup-')
        assert disposition.endswith('.json"')

        backup = response.json()
        assert [e["id"] for e in backup["entries"]] == ["3", "2", "1"]
        assert backup["settings"]["theme"] == "light"
        assert backup["exportDate"].endswith("Z")

    def test_export_then_import(self, seeded_client: TestClient):
        backup = seeded_client.get("/api/export").text
        seeded_client.post("/api/entries", json=[])

        response = seeded_client.post("/api/import", content=backup)
        assert response.status_code == 200
        assert response.json() == {"message": "Data imported successfully"}
        assert [e["id"] for e in seeded_client.get("/api/entries").json()] == ["3", "2", "1"]

    def test_import_settings_only(self, seeded_client: TestClient):
        response = seeded_client.post("/api/import", json={"settings": {"theme": "dark"}})
        assert response.status_code == 200
        assert seeded_client.get("/api/settings").json()["theme"] == "dark"
        assert len(seeded_client.get("/api/entries").json()) == 3

    @pytest.mark.parametrize("body", [
        "not json",
        "[]",
        "{}",
        json.dumps({"entries": [{"content": "no id"}]}),
    ])
    def test_import_malformed(self, seeded_client: TestClient, body):
        response = seeded_client.post(
            "/api/import", content=body, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "MALFORMED_IMPORT"
        assert len(seeded_client.get("/api/entries").json()) == 3


class TestStatsApi:
    """Test aggregate endpoints."""

    def test_stats(self, seeded_client: TestClient):
        data = seeded_client.get("/api/stats").json()
        assert data["total_entries"] == 3
        assert data["top_mood"] == "amazing"
        assert len(data["moods"]) == 5

    def test_calendar(self, api_client: TestClient):
        api_client.post("/api/entries", json=[
            {"id": "a", "date": "2025-06-15T12:00:00.000Z", "content": "x", "mood": "happy"},
            {"id": "b", "date": "2025-05-15T12:00:00.000Z", "content": "y", "mood": "sad"},
        ])
        data = api_client.get("/api/calendar/2025/6").json()
        assert list(data) == ["2025-06-15"]
        assert data["2025-06-15"][0]["id"] == "a"

    def test_calendar_invalid_month(self, api_client: TestClient):
        assert api_client.get("/api/calendar/2025/13").status_code == 422


class TestErrorMapping:
    """Test error to status code mapping."""

    def test_status_codes(self):
        assert status_code_for(EntryNotFoundError("1")) == 404
        assert status_code_for(MalformedImportError("bad")) == 400
        assert status_code_for(DuplicateEntryError(["1"])) == 400
        assert status_code_for(PersistenceError("bad")) == 500
        assert status_code_for(StorageIOError("bad")) == 503
        assert status_code_for(DailyLifeError("bad")) == 500


class TestEntryIds:
    """Test id handling on the entry endpoints."""

    @pytest.fixture
    def odd_client(self, api_client: TestClient):
        entries = [
            {"id": entry_id, "date": "2025-06-01T09:00:00.000Z", "content": entry_id, "mood": "neutral"}
            for entry_id in ["1", "1?x", "a/b"]
        ]
        assert api_client.post("/api/entries", json=entries).status_code == 200
        return api_client

    def test_delete_encoded_id(self, odd_client: TestClient):
        assert odd_client.delete(f"/api/entries/{quote('1?x', safe='')}").status_code == 200
        assert [e["id"] for e in odd_client.get("/api/entries").json()] == ["1", "a/b"]

    def test_update_id_with_slash(self, odd_client: TestClient):
        response = odd_client.put(f"/api/entries/{quote('a/b', safe='')}", json={"content": "edited"})
        assert response.status_code == 200
        contents = {e["id"]: e["content"] for e in odd_client.get("/api/entries").json()}
        assert contents == {"1": "1", "1?x": "1?x", "a/b": "edited"}

    def test_replace_rejects_duplicate_ids(self, seeded_client: TestClient):
        entries = [
            {"id": "7", "date": "2025-06-01T09:00:00.000Z", "content": "a"},
            {"id": "7", "date": "2025-06-02T09:00:00.000Z", "content": "b"},
        ]
        response = seeded_client.post("/api/entries", json=entries)
        assert response.status_code == 400
        assert response.json()["error_code"] == "DUPLICATE_ID"
        assert [e["id"] for e in seeded_client.get("/api/entries").json()] == ["3", "2", "1"]

    def test_import_rejects_duplicate_ids(self, seeded_client: TestClient):
        backup = {"entries": [
            {"id": "7", "date": "2025-06-01T09:00:00.000Z", "content": "a"},
            {"id": "7", "date": "2025-06-02T09:00:00.000Z", "content": "b"},
        ]}
        response = seeded_client.post("/api/import", json=backup)
        assert response.status_code == 400
        assert response.json()["error_code"] == "MALFORMED_IMPORT"
        assert len(seeded_client.get("/api/entries").json()) == 3
