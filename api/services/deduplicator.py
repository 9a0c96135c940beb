"""
Evidence Deduplicator - Collapse repeated observations of the same event.

Two events are duplicates when their identity key matches:
    (user_id, subject_person_id, object_person_id, type, source, timestamp)

Within a group the earliest-created event survives (smallest id on ties).
Grouping is a single pass over the events keyed by identity, so a sweep is
O(n). Destructive sweeps remove duplicates in fixed-size batches; a failed
batch is recorded and the sweep moves on. Removed rows never reappear in
later scans, so an interrupted sweep can simply be run again.
"""
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

from api.services.errors import InvalidInputError, StorageError
from api.services.evidence import EvidenceEvent, STATUS_DUPLICATE
from config.settings import settings

if TYPE_CHECKING:
    from api.services.evidence_store import EvidenceStore

logger = logging.getLogger(__name__)

MODE_DELETE = "delete"
MODE_MARK = "mark"


def _creation_order(event: EvidenceEvent) -> tuple:
    return (event.created_at, event.id)


@dataclass
class DuplicateGroup:
    """Events sharing one identity key."""

    key: tuple
    canonical: EvidenceEvent
    duplicates: list[EvidenceEvent] = field(default_factory=list)

    @property
    def count(self) -> int:
        return 1 + len(self.duplicates)

    @property
    def duplicate_ids(self) -> list[str]:
        return [event.id for event in self.duplicates]


@dataclass
class DuplicateGroupSample:
    """Preview of one duplicate group."""

    user_id: str
    type: str
    source: str
    count: int
    duplicates_to_remove: int
    canonical_id: str
    sample_ids: list[str]

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "type": self.type,
            "source": self.source,
            "count": self.count,
            "duplicates_to_remove": self.duplicates_to_remove,
            "canonical_id": self.canonical_id,
            "sample_ids": list(self.sample_ids),
        }


@dataclass
class DuplicatePreview:
    """Non-destructive summary of what a sweep would remove."""

    total_duplicates: int
    total_groups: int
    sample_groups: list[DuplicateGroupSample] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_duplicates": self.total_duplicates,
            "total_groups": self.total_groups,
            "sample_groups": [g.to_dict() for g in self.sample_groups],
        }


@dataclass
class DeduplicationResult:
    """
    Outcome of a destructive sweep.

    deleted_count is the exact number of events taken out of the active set
    (deleted, or marked as duplicates in mark mode).
    """

    deleted_count: int = 0
    groups_cleaned: int = 0
    failed_count: int = 0
    failed_batches: int = 0
    errors: list[str] = field(default_factory=list)
    mode: str = MODE_DELETE

    def to_dict(self) -> dict:
        return {
            "deleted_count": self.deleted_count,
            "groups_cleaned": self.groups_cleaned,
            "failed_count": self.failed_count,
            "failed_batches": self.failed_batches,
            "errors": list(self.errors),
            "mode": self.mode,
        }


def identity_key(event: EvidenceEvent) -> tuple:
    """Identity key used to detect duplicate evidence."""
    return event.identity_key


def find_duplicate_groups(events: Iterable[EvidenceEvent]) -> list[DuplicateGroup]:
    """
    Group events by identity key and keep only groups with duplicates.

    Args:
        events: Evidence events in any order

    Returns:
        Groups with at least two events, ordered by their canonical event's
        creation time. Duplicates within a group are in creation order.
    """
    buckets: dict[tuple, list[EvidenceEvent]] = {}
    for event in events:
        buckets.setdefault(event.identity_key, []).append(event)

    groups = []
    for key, members in buckets.items():
        if len(members) < 2:
            continue
        members.sort(key=_creation_order)
        groups.append(DuplicateGroup(key=key, canonical=members[0], duplicates=members[1:]))

    groups.sort(key=lambda g: _creation_order(g.canonical))
    return groups


def deduplicate_events(events: Iterable[EvidenceEvent]) -> list[EvidenceEvent]:
    """
    Return the canonical event of every identity key, in input order.

    Idempotent: deduplicating an already-deduplicated list returns it unchanged.
    """
    events = list(events)
    survivors: dict[tuple, EvidenceEvent] = {}
    for event in events:
        key = event.identity_key
        current = survivors.get(key)
        if current is None or _creation_order(event) < _creation_order(current):
            survivors[key] = event

    keep = {id(event) for event in survivors.values()}
    return [event for event in events if id(event) in keep]


class EvidenceDeduplicator:
    """
    Runs deduplication sweeps against an EvidenceStore.

    The store is scanned once per call; nothing is cached between calls.
    """

    def __init__(
        self,
        store: "EvidenceStore",
        batch_size: Optional[int] = None,
        sample_groups: Optional[int] = None,
        sample_ids: Optional[int] = None,
    ):
        self.store = store
        self.batch_size = batch_size if batch_size is not None else settings.dedup_batch_size
        if self.batch_size < 1:
            raise InvalidInputError("batch_size must be at least 1", field="batch_size")
        self.sample_groups = sample_groups if sample_groups is not None else settings.dedup_sample_groups
        self.sample_ids = sample_ids if sample_ids is not None else settings.dedup_sample_ids

    def preview(self) -> DuplicatePreview:
        """
        Report duplicates without changing anything.

        Returns:
            Totals plus a sample of affected groups and ids
        """
        groups = find_duplicate_groups(self.store.get_all_events())
        samples = [
            DuplicateGroupSample(
                user_id=group.canonical.user_id,
                type=group.canonical.type.value,
                source=group.canonical.source.value,
                count=group.count,
                duplicates_to_remove=len(group.duplicates),
                canonical_id=group.canonical.id,
                sample_ids=group.duplicate_ids[: self.sample_ids],
            )
            for group in groups[: self.sample_groups]
        ]
        preview = DuplicatePreview(
            total_duplicates=sum(len(g.duplicates) for g in groups),
            total_groups=len(groups),
            sample_groups=samples,
        )
        logger.info(
            f"Found {preview.total_duplicates} duplicate evidence events "
            f"across {preview.total_groups} groups"
        )
        return preview

    def deduplicate(self, mode: str = MODE_DELETE) -> DeduplicationResult:
        """
        Remove duplicate events, keeping the earliest-created of each group.

        Args:
            mode: "delete" removes rows; "mark" sets their status to duplicate

        Returns:
            Exact counts of removed events, cleaned groups and failures
        """
        if mode not in (MODE_DELETE, MODE_MARK):
            raise InvalidInputError(f"Unknown deduplication mode '{mode}'", field="mode")

        result = DeduplicationResult(mode=mode)
        groups = find_duplicate_groups(self.store.get_all_events())
        if not groups:
            logger.info("No duplicate evidence events found")
            return result

        owner: dict[str, int] = {}
        ids_to_remove: list[str] = []
        for index, group in enumerate(groups):
            for event_id in group.duplicate_ids:
                owner[event_id] = index
                ids_to_remove.append(event_id)

        failed_groups: set[int] = set()
        for start in range(0, len(ids_to_remove), self.batch_size):
            batch = ids_to_remove[start:start + self.batch_size]
            try:
                if mode == MODE_DELETE:
                    affected = self.store.delete_by_ids(batch)
                else:
                    affected = self.store.update_status(batch, STATUS_DUPLICATE)
            except StorageError as e:
                result.failed_batches += 1
                result.failed_count += len(batch)
                result.errors.append(str(e))
                failed_groups.update(owner[event_id] for event_id in batch)
                logger.warning(f"Deduplication batch at offset {start} failed: {e}")
                continue
            result.deleted_count += affected

        result.groups_cleaned = len(groups) - len(failed_groups)
        logger.info(
            f"Deduplication ({mode}) removed {result.deleted_count} events "
            f"from {result.groups_cleaned} groups; {result.failed_count} failed"
        )
        return result
