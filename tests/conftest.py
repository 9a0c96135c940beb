"""
Pytest configuration and shared fixtures for Warm Intro Graph tests.

Test Categories:
- unit: Fast tests with no external dependencies (< 100ms each)
- slow: Tests that start the FastAPI app or build large fixtures

Run categories:
- pytest -m unit              # Fast unit tests only
- pytest -m "not slow"        # Skip slow tests
- pytest                      # All tests
"""
import itertools
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "slow: Slow tests (FastAPI app, large fixtures)")


# Fixed reference instant so recency math is reproducible
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
USER_ID = "user-1"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def temp_store():
    """Create a temporary evidence store for testing."""
    from api.services.evidence_store import EvidenceStore

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        store = EvidenceStore(f.name)
        yield store
        Path(f.name).unlink(missing_ok=True)


@pytest.fixture
def make_event():
    """
    Factory for evidence events.

    Ids and created_at values increase with each call so creation order is
    deterministic.
    """
    from api.services.evidence import EvidenceEvent

    counter = itertools.count(1)

    def _make(
        subject="me",
        obj="alice",
        type="email_sent",
        source="gmail",
        days_ago=0.0,
        timestamp=None,
        user_id=USER_ID,
        event_id=None,
        created_at=None,
        metadata=None,
    ):
        n = next(counter)
        return EvidenceEvent(
            id=event_id or f"evt-{n:04d}",
            user_id=user_id,
            subject_person_id=subject,
            object_person_id=obj,
            type=type,
            source=source,
            timestamp=timestamp or NOW - timedelta(days=days_ago),
            metadata=metadata,
            created_at=created_at or NOW + timedelta(seconds=n),
        )

    return _make


@pytest.fixture
def make_person():
    """Factory for person records."""
    from api.services.person_catalog import Person

    def _make(person_id, name=None, user_id=USER_ID, is_me=False, **kwargs):
        return Person(
            id=person_id,
            user_id=user_id,
            names=[name] if name else [],
            is_me=is_me,
            **kwargs,
        )

    return _make
