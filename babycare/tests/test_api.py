"""
Tests for the HTTP API
"""

import json

import pytest
from fastapi.testclient import TestClient

from babycare.main import create_app


@pytest.fixture
def client(session):
    with TestClient(create_app(session)) as client:
        yield client


@pytest.fixture
def child(client):
    response = client.post(
        "/api/v1/children",
        params={"seed_milestones": "false"},
        json={"id": "c1", "name": "Mei", "date_of_birth": "2024-01-15", "gender": "female"},
    )
    assert response.status_code == 200
    return response.json()


class TestChildren:
    """Test child endpoints"""

    def test_create_and_get_child(self, client, child):
        assert child["id"] == "c1"
        assert child["age_months"] >= 0

        response = client.get("/api/v1/children/c1")
        assert response.status_code == 200
        assert response.json()["name"] == "Mei"

        response = client.get("/api/v1/children")
        assert [item["id"] for item in response.json()] == ["c1"]

    def test_create_seeds_milestones_by_default(self, client):
        response = client.post("/api/v1/children", json={"id": "c2", "name": "Kai", "date_of_birth": "2023-11-02"})
        assert response.status_code == 200

        response = client.get("/api/v1/children/c2/records/milestones")
        assert len(response.json()) == 32

    def test_duplicate_child_conflicts(self, client, child):
        response = client.post(
            "/api/v1/children",
            params={"seed_milestones": "false"},
            json={"id": "c1", "name": "Other", "date_of_birth": "2024-01-15"},
        )
        assert response.status_code == 409

    def test_invalid_birth_date(self, client):
        response = client.post("/api/v1/children", json={"name": "Mei", "date_of_birth": "someday"})
        assert response.status_code == 422

    def test_unknown_child(self, client):
        assert client.get("/api/v1/children/nobody").status_code == 404
        assert client.delete("/api/v1/children/nobody").status_code == 404

    def test_update_select_and_delete(self, client, child):
        response = client.put("/api/v1/children/c1", json={"name": "Mei Lin", "date_of_birth": "2024-01-15"})
        assert response.status_code == 200
        assert response.json()["name"] == "Mei Lin"

        assert client.post("/api/v1/children/c1/select").status_code == 200

        client.post("/api/v1/children/c1/records/diaper", json={"timestamp": "2024-06-01T09:00", "category": "wet"})
        response = client.delete("/api/v1/children/c1")
        assert response.status_code == 200
        assert response.json()["deleted_records"] == 1
        assert client.get("/api/v1/children/c1").status_code == 404


class TestRecords:
    """Test record endpoints"""

    def test_record_lifecycle(self, client, child):
        response = client.post(
            "/api/v1/children/c1/records/feeding",
            json={"start_time": "2024-06-01T08:30", "end_time": "2024-06-01T08:50", "feeding_type": "breast", "side": "left"},
        )
        assert response.status_code == 200
        created = response.json()
        assert created["start_time"] == "2024-06-01 08:30"
        assert created["duration_minutes"] == 20

        response = client.put(
            f"/api/v1/children/c1/records/feeding/{created['id']}",
            json={"end_time": "2024-06-01T09:00"},
        )
        assert response.status_code == 200
        assert response.json()["duration_minutes"] == 30

        response = client.get("/api/v1/children/c1/records/feeding", params={"day": "2024-06-01"})
        assert [record["id"] for record in response.json()] == [created["id"]]

        response = client.delete(f"/api/v1/children/c1/records/feeding/{created['id']}")
        assert response.status_code == 200
        assert client.get("/api/v1/children/c1/records/feeding").json() == []

    def test_unknown_collection(self, client, child):
        assert client.get("/api/v1/children/c1/records/naps").status_code == 404
        assert client.post("/api/v1/children/c1/records/children", json={}).status_code == 404

    def test_invalid_record(self, client, child):
        response = client.post(
            "/api/v1/children/c1/records/sleep",
            json={"start_time": "2024-06-01T13:00", "end_time": "2024-06-01T12:00"},
        )
        assert response.status_code == 422

    def test_update_missing_record(self, client, child):
        response = client.put("/api/v1/children/c1/records/diaper/999", json={"category": "dry"})
        assert response.status_code == 404

    def test_daily_summary(self, client, child):
        client.post("/api/v1/children/c1/records/diaper", json={"timestamp": "2024-06-01T09:00", "category": "wet"})
        response = client.get("/api/v1/children/c1/summary", params={"day": "2024-06-01"})
        assert response.status_code == 200
        assert response.json()["diaper_count"] == 1

    def test_delete_respects_owner(self, client, child):
        client.post("/api/v1/children", params={"seed_milestones": "false"}, json={"id": "c2", "name": "Kai", "date_of_birth": "2023-11-02"})
        created = client.post("/api/v1/children/c1/records/diaper", json={"timestamp": "2024-06-01T09:00", "category": "wet"}).json()

        assert client.delete(f"/api/v1/children/c2/records/diaper/{created['id']}").status_code == 404
        assert client.delete(f"/api/v1/children/nobody/records/diaper/{created['id']}").status_code == 404
        assert len(client.get("/api/v1/children/c1/records/diaper").json()) == 1

        assert client.delete(f"/api/v1/children/c1/records/diaper/{created['id']}").status_code == 200
        assert client.delete(f"/api/v1/children/c1/records/diaper/{created['id']}").status_code == 200
        assert client.get("/api/v1/children/c1/records/diaper").json() == []

    def test_numeric_time_value_is_rejected(self, client, child):
        response = client.post("/api/v1/children/c1/records/diaper", json={"timestamp": 1717201800000, "category": "wet"})
        assert response.status_code == 422
        assert client.get("/api/v1/children/c1/records/diaper").json() == []

    def test_trend_statistics_and_recent(self, client, child):
        client.post("/api/v1/children/c1/records/feeding", json={"start_time": "2024-06-05T08:00", "feeding_type": "formula"})
        client.post("/api/v1/children/c1/records/diaper", json={"timestamp": "2024-06-05T09:00", "category": "dirty"})

        response = client.get("/api/v1/children/c1/trend", params={"end_day": "2024-06-05"})
        assert response.status_code == 200
        days = response.json()["days"]
        assert len(days) == 7
        assert days[-1] == {"day": "2024-06-05", "feeding_count": 1, "sleep_hours": 0.0}

        response = client.get("/api/v1/children/c1/statistics", params={"range": "month", "today": "2024-06-10"})
        assert response.status_code == 200
        assert response.json()["feeding_by_type"]["formula"] == 1
        assert response.json()["diaper_by_category"]["dirty"] == 1
        assert client.get("/api/v1/children/c1/statistics", params={"range": "decade"}).status_code == 422

        response = client.get("/api/v1/children/c1/recent", params={"limit": 1})
        assert [record["collection"] for record in response.json()] == ["diaper"]
        assert client.get("/api/v1/children/c1/recent", params={"collection": "naps"}).status_code == 404


class TestSettings:
    """Test timezone settings endpoints"""

    def test_timezone_change_rerenders_records(self, client, child):
        response = client.get("/api/v1/settings/timezone")
        assert response.json() == {"timezone": "Asia/Taipei", "default_timezone": "Asia/Taipei"}

        client.post("/api/v1/children/c1/records/diaper", json={"timestamp": "2024-06-01T08:30", "category": "wet"})
        response = client.put("/api/v1/settings/timezone", json={"timezone": "UTC"})
        assert response.status_code == 200
        assert response.json()["timezone"] == "UTC"

        records = client.get("/api/v1/children/c1/records/diaper").json()
        assert records[0]["timestamp"] == "2024-06-01 00:30"

    def test_invalid_timezone(self, client):
        response = client.put("/api/v1/settings/timezone", json={"timezone": "Mars/Olympus"})
        assert response.status_code == 422
        assert client.get("/api/v1/settings/timezone").json()["timezone"] == "Asia/Taipei"


class TestBackup:
    """Test export, import and clear endpoints"""

    def test_export_import_and_clear(self, client, child):
        client.post("/api/v1/children/c1/records/diaper", json={"timestamp": "2024-06-01T08:30", "category": "wet"})

        response = client.get("/api/v1/backup/export")
        assert response.status_code == 200
        assert "attachment" in response.headers["content-disposition"]
        exported = response.json()
        assert len(exported["children"]) == 1
        assert len(exported["diaper"]) == 1

        response = client.delete("/api/v1/backup/data")
        assert response.status_code == 200
        assert "children" in response.json()["cleared"]
        assert client.get("/api/v1/children").json() == []

        response = client.post("/api/v1/backup/import", content=json.dumps(exported))
        assert response.status_code == 200
        assert response.json()["status"] == "success"
        assert [item["id"] for item in client.get("/api/v1/children").json()] == ["c1"]

    def test_import_malformed_payload(self, client):
        response = client.post("/api/v1/backup/import", content=b"{not json")
        assert response.status_code == 200
        assert response.json()["status"] == "failed"


def test_health_check(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
