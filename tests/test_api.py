"""
Warden - API Tests
==================

Tests for the read-only HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import GUILD_ID, MOD_ID, USER_ID
from warden.api.app import create_app
from warden.api.dependencies import set_core


@pytest.fixture
def client(core, test_db):
    test_db.insert_case(GUILD_ID, USER_ID, MOD_ID, "warn", "first", [], 100.0, case_id=1)
    test_db.insert_case(GUILD_ID, USER_ID, MOD_ID, "mute", "second", [], 200.0, duration_ms=60_000, expires_at=260.0)
    test_db.insert_case(GUILD_ID, USER_ID, MOD_ID, "warn", "third", ["https://e/1"], 300.0, case_id=2)

    with TestClient(create_app(core)) as test_client:
        yield test_client
    set_core(None)


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {"status": "healthy", "started": False, "pending_reversals": 0}


class TestCases:

    def test_list_newest_first(self, client):
        response = client.get(f"/cases/{GUILD_ID}/{USER_ID}")
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["total"] == 3
        assert [c["reason"] for c in data["cases"]] == ["third", "second", "first"]
        assert data["cases"][0]["case_id"] == 2
        assert data["cases"][0]["evidence"] == ["https://e/1"]
        assert data["cases"][1]["case_id"] is None
        assert data["cases"][1]["duration_ms"] == 60_000
        assert data["cases"][1]["user_id"] == str(USER_ID)

    def test_type_filter_and_limit(self, client):
        response = client.get(f"/cases/{GUILD_ID}/{USER_ID}", params={"type": "warn", "limit": 1})

        cases = response.json()["data"]["cases"]
        assert len(cases) == 1
        assert cases[0]["reason"] == "third"

    def test_unknown_type_is_bad_request(self, client):
        response = client.get(f"/cases/{GUILD_ID}/{USER_ID}", params={"type": "smite"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_negative_limit_rejected(self, client):
        response = client.get(f"/cases/{GUILD_ID}/{USER_ID}", params={"limit": -1})
        assert response.status_code == 422

    def test_stats(self, client):
        response = client.get(f"/cases/{GUILD_ID}/{USER_ID}/stats")
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["total_cases"] == 3
        assert data["counts_by_type"] == {"warn": 2, "mute": 1}
        assert data["most_recent_case"]["reason"] == "third"

    def test_stats_for_clean_user(self, client):
        data = client.get(f"/cases/{GUILD_ID}/999/stats").json()["data"]
        assert data["total_cases"] == 0
        assert data["most_recent_case"] is None


class TestWithoutCore:

    def test_cases_unavailable(self):
        set_core(None)
        with TestClient(create_app()) as test_client:
            assert test_client.get(f"/cases/{GUILD_ID}/{USER_ID}").status_code == 503
            assert test_client.get("/health").json()["data"]["started"] is False
