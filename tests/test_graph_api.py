"""
Tests for relationship graph API endpoints.
"""
import pytest

# These tests use TestClient which initializes the app (slow)
pytestmark = pytest.mark.slow
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from api.main import app
from api.routes.graph import get_warm_intro_service
from api.services.errors import StorageError
from api.services.intro_paths import WarmIntroService


@pytest.fixture
def seeded_store(temp_store, make_event, make_person):
    """me - alice - jane chain plus an unconnected person."""
    temp_store.add_user("user-1", person_id="me")
    for person in (
        make_person("me", "Me", is_me=True),
        make_person("alice", "Alice"),
        make_person("jane", "Jane"),
        make_person("zoe", "Zoe"),
    ):
        temp_store.add_person(person)
    temp_store.add_events([
        make_event(subject="me", obj="alice", days_ago=10),
        make_event(subject="me", obj="alice", days_ago=5),
        make_event(subject="alice", obj="jane", type="linkedin_connection", source="linkedin_archive", days_ago=0),
    ])
    return temp_store


@pytest.fixture
def client(seeded_store):
    """Create test client backed by the seeded store."""
    app.dependency_overrides[get_warm_intro_service] = lambda: WarmIntroService(store=seeded_store)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestPathsEndpoint:
    """Tests for GET /api/users/{user_id}/paths/{target_id}."""

    def test_returns_ranked_paths(self, client):
        response = client.get("/api/users/user-1/paths/jane", params={"max_hops": 3, "k": 5})
        assert response.status_code == 200

        data = response.json()
        assert data["count"] == 1
        path = data["paths"][0]
        assert path["path"] == ["me", "alice", "jane"]
        assert path["rank"] == 1
        assert path["hops"] == 2
        assert 0 < path["score"] <= 1
        assert path["introducer_id"] == "alice"
        assert path["explanation"].startswith("Connect via Alice")
        assert path["edges"][0]["last_interaction_at"].endswith("+00:00")
        assert set(path["edges"][0]["factors"]) == {"recency", "frequency", "reciprocity", "channel_diversity"}

    def test_unreachable_target_is_empty(self, client):
        response = client.get("/api/users/user-1/paths/zoe")
        assert response.status_code == 200
        assert response.json()["paths"] == []

    def test_self_path_is_bad_request(self, client):
        response = client.get("/api/users/user-1/paths/me")
        assert response.status_code == 400

    def test_unknown_user_is_bad_request(self, client):
        response = client.get("/api/users/nobody/paths/jane")
        assert response.status_code == 400
        assert "nobody" in response.json()["detail"]

    @pytest.mark.parametrize("params", [{"max_hops": 0}, {"k": 0}, {"max_hops": "many"}])
    def test_invalid_limits_are_bad_request(self, client, params):
        response = client.get("/api/users/user-1/paths/jane", params=params)
        assert response.status_code == 400


class TestEdgesEndpoint:
    """Tests for POST /api/users/{user_id}/edges."""

    def test_compute_edges(self, client, seeded_store):
        response = client.post("/api/users/user-1/edges")
        assert response.status_code == 200

        data = response.json()
        assert data["count"] == 4
        assert data["persisted"] is False
        assert seeded_store.get_edges("user-1") == []

    def test_edges_report_factor_breakdown(self, client):
        response = client.post("/api/users/user-1/edges")
        edges = {(e["from_id"], e["to_id"]): e for e in response.json()["edges"]}

        me_alice = edges[("me", "alice")]
        assert me_alice["factors"]["channel_diversity"] == 0.25
        # Both emails were sent by me, so the edge is one-way
        assert me_alice["factors"]["reciprocity"] < 0.25
        assert 0 < me_alice["confidence"] <= 1
        assert me_alice["strength"] > me_alice["factors"]["reciprocity"]

    def test_compute_and_persist(self, client, seeded_store):
        response = client.post("/api/users/user-1/edges", params={"persist": "true"})
        assert response.status_code == 200
        assert response.json()["persisted"] is True
        assert len(seeded_store.get_edges("user-1")) == 4


class TestStrengthEndpoint:
    """Tests for GET /api/users/{user_id}/strength."""

    def test_symmetric_strength(self, client):
        response = client.get("/api/users/user-1/strength", params={"a": "alice", "b": "me"})
        assert response.status_code == 200

        data = response.json()
        assert data["mode"] == "max"
        assert 0 < data["strength"] <= 1

    def test_unknown_mode_is_bad_request(self, client):
        response = client.get("/api/users/user-1/strength", params={"a": "alice", "b": "me", "mode": "median"})
        assert response.status_code == 400

    def test_missing_params_are_bad_request(self, client):
        response = client.get("/api/users/user-1/strength", params={"a": "alice"})
        assert response.status_code == 400


class TestStorageFailures:
    """Storage errors surface as 503."""

    def test_storage_error_is_service_unavailable(self):
        service = MagicMock()
        service.find_intro_paths.side_effect = StorageError("get_events_for_user", "database is locked")
        app.dependency_overrides[get_warm_intro_service] = lambda: service
        try:
            response = TestClient(app).get("/api/users/user-1/paths/jane")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
        assert "get_events_for_user" in response.json()["detail"]
