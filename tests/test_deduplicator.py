"""
Tests for evidence deduplication.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from api.services.deduplicator import (
    EvidenceDeduplicator,
    MODE_MARK,
    deduplicate_events,
    find_duplicate_groups,
)
from api.services.errors import InvalidInputError, StorageError
from api.services.evidence import STATUS_DUPLICATE

pytestmark = pytest.mark.unit


class TestDeduplicateEvents:
    """Tests for in-memory deduplication."""

    def test_idempotent(self, make_event):
        events = [
            make_event(days_ago=1),
            make_event(days_ago=1),
            make_event(days_ago=2),
            make_event(obj="bob", days_ago=1),
            make_event(days_ago=1, source="manual"),
        ]

        once = deduplicate_events(events)
        twice = deduplicate_events(once)

        assert [e.id for e in once] == [e.id for e in twice]
        assert len(once) == 4

    def test_earliest_created_survives(self, now, make_event):
        late = make_event(event_id="late", created_at=now + timedelta(days=2))
        early = make_event(event_id="early", created_at=now + timedelta(days=1))

        survivors = deduplicate_events([late, early])
        assert [e.id for e in survivors] == ["early"]

    def test_created_at_tie_breaks_on_id(self, now, make_event):
        b = make_event(event_id="b", created_at=now)
        a = make_event(event_id="a", created_at=now)

        assert [e.id for e in deduplicate_events([b, a])] == ["a"]

    def test_identity_key_covers_all_fields(self, make_event):
        base = make_event(days_ago=1)
        variants = [
            make_event(days_ago=1, user_id="user-2"),
            make_event(days_ago=1, subject="alice", obj="me"),
            make_event(days_ago=1, obj="bob"),
            make_event(days_ago=1, type="email_received"),
            make_event(days_ago=1, source="manual"),
            make_event(days_ago=1.5),
        ]

        assert len(deduplicate_events([base] + variants)) == 7

    def test_same_instant_different_zone_is_duplicate(self, now, make_event):
        from datetime import timezone
        eastern = timezone(timedelta(hours=-5))
        a = make_event(timestamp=now)
        b = make_event(timestamp=now.astimezone(eastern))

        assert len(deduplicate_events([a, b])) == 1

    def test_preserves_input_order(self, make_event):
        events = [make_event(obj="carol"), make_event(obj="alice"), make_event(obj="bob")]
        assert [e.object_person_id for e in deduplicate_events(events)] == ["carol", "alice", "bob"]


class TestFindDuplicateGroups:
    """Tests for grouping by identity key."""

    def test_groups_only_include_duplicates(self, make_event):
        events = [make_event(days_ago=1), make_event(days_ago=1), make_event(days_ago=2)]
        groups = find_duplicate_groups(events)

        assert len(groups) == 1
        assert groups[0].count == 2
        assert groups[0].canonical.id == events[0].id
        assert groups[0].duplicate_ids == [events[1].id]


class TestEvidenceDeduplicator:
    """Tests for store-backed deduplication sweeps."""

    @pytest.fixture
    def duplicated_store(self, temp_store, now, make_event):
        """150 events sharing one identity key, plus one unrelated event."""
        timestamp = now - timedelta(days=3)
        events = [make_event(timestamp=timestamp) for _ in range(150)]
        events.append(make_event(obj="bob", days_ago=1))
        temp_store.add_events(events)
        return temp_store, events

    def test_preview_reports_groups(self, duplicated_store):
        store, events = duplicated_store
        preview = EvidenceDeduplicator(store).preview()

        assert preview.total_groups == 1
        assert preview.total_duplicates == 149
        assert preview.sample_groups[0].canonical_id == events[0].id
        assert preview.sample_groups[0].count == 150
        assert len(preview.sample_groups[0].sample_ids) == 3

    def test_preview_is_non_destructive(self, duplicated_store):
        store, _ = duplicated_store
        EvidenceDeduplicator(store).preview()
        assert store.count() == 151

    def test_delete_removes_exactly_duplicates(self, duplicated_store):
        store, events = duplicated_store
        result = EvidenceDeduplicator(store, batch_size=100).deduplicate()

        assert result.deleted_count == 149
        assert result.groups_cleaned == 1
        assert result.failed_count == 0
        assert store.count() == 2

        remaining = {e.id for e in store.get_all_events()}
        assert events[0].id in remaining
        assert events[-1].id in remaining

    def test_rerun_is_noop(self, duplicated_store):
        store, _ = duplicated_store
        deduplicator = EvidenceDeduplicator(store)
        deduplicator.deduplicate()

        second = deduplicator.deduplicate()
        assert second.deleted_count == 0
        assert deduplicator.preview().total_duplicates == 0

    def test_mark_mode_hides_duplicates(self, duplicated_store):
        store, events = duplicated_store
        result = EvidenceDeduplicator(store).deduplicate(mode=MODE_MARK)

        assert result.mode == MODE_MARK
        assert result.deleted_count == 149
        assert store.count() == 2
        assert [e.id for e in store.get_events_for_user(events[0].user_id)] == [events[0].id, events[-1].id]

    def test_unknown_mode_rejected(self, temp_store):
        with pytest.raises(InvalidInputError):
            EvidenceDeduplicator(temp_store).deduplicate(mode="purge")

    def test_invalid_batch_size_rejected(self, temp_store):
        with pytest.raises(InvalidInputError):
            EvidenceDeduplicator(temp_store, batch_size=0)

    def test_partial_batch_failure_continues(self, now, make_event):
        events = [make_event(timestamp=now) for _ in range(150)]
        store = MagicMock()
        store.get_all_events.return_value = events
        store.delete_by_ids.side_effect = [
            StorageError("delete_by_ids", "database is locked"),
            49,
        ]

        result = EvidenceDeduplicator(store, batch_size=100).deduplicate()

        assert store.delete_by_ids.call_count == 2
        assert result.deleted_count == 49
        assert result.failed_count == 100
        assert result.failed_batches == 1
        assert result.groups_cleaned == 0
        assert "database is locked" in result.errors[0]

    def test_mark_mode_uses_status_update(self, now, make_event):
        events = [make_event(timestamp=now) for _ in range(3)]
        store = MagicMock()
        store.get_all_events.return_value = events
        store.update_status.return_value = 2

        result = EvidenceDeduplicator(store).deduplicate(mode=MODE_MARK)

        store.update_status.assert_called_once_with([events[1].id, events[2].id], STATUS_DUPLICATE)
        store.delete_by_ids.assert_not_called()
        assert result.deleted_count == 2
