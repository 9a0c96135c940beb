"""
Tests for Admin API endpoints.
"""
from datetime import timedelta

import pytest

# These tests use TestClient which initializes the app (slow)
pytestmark = pytest.mark.slow
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from api.main import app
from api.routes.graph import get_warm_intro_service
from api.services.deduplicator import DeduplicationResult
from api.services.intro_paths import WarmIntroService


class TestAdminEndpoints:
    """Test admin API endpoints."""

    @pytest.fixture
    def store(self, temp_store, now, make_event):
        """Five copies of one observation plus one distinct event."""
        timestamp = now - timedelta(days=2)
        temp_store.add_events([make_event(timestamp=timestamp) for _ in range(5)])
        temp_store.add_event(make_event(obj="bob"))
        return temp_store

    @pytest.fixture
    def client(self, store):
        """Create test client."""
        app.dependency_overrides[get_warm_intro_service] = lambda: WarmIntroService(store=store)
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_preview_duplicates(self, client, store):
        """Preview should report duplicates without removing them."""
        response = client.get("/api/admin/evidence/duplicates")
        assert response.status_code == 200

        data = response.json()
        assert data["total_groups"] == 1
        assert data["total_duplicates"] == 4
        assert data["sample_groups"][0]["count"] == 5
        assert store.count() == 6

    def test_deduplicate_deletes(self, client, store):
        """Deduplicate should remove all but the earliest copy."""
        response = client.post("/api/admin/evidence/deduplicate")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "completed"
        assert data["mode"] == "delete"
        assert data["deleted_count"] == 4
        assert data["groups_cleaned"] == 1
        assert store.count() == 2

    def test_deduplicate_mark_mode(self, client, store):
        """Mark mode should hide duplicates from reads."""
        response = client.post("/api/admin/evidence/deduplicate", params={"mode": "mark"})
        assert response.status_code == 200
        assert response.json()["mode"] == "mark"
        assert store.count() == 2

    def test_unknown_mode_is_bad_request(self, client):
        response = client.post("/api/admin/evidence/deduplicate", params={"mode": "purge"})
        assert response.status_code == 400

    def test_partial_failure_reported(self):
        """Failed batches should be reported, not raised."""
        service = MagicMock()
        service.deduplicate.return_value = DeduplicationResult(
            deleted_count=49, groups_cleaned=0, failed_count=100, failed_batches=1,
            errors=["delete_by_ids: database is locked"],
        )
        app.dependency_overrides[get_warm_intro_service] = lambda: service
        try:
            response = TestClient(app).post("/api/admin/evidence/deduplicate")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "partial"
        assert data["failed_count"] == 100
