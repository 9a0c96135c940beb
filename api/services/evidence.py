"""
Evidence events for the Warm Intro Graph.

An evidence event is a single observed interaction between two people,
owned by exactly one user. Events are produced by ingestion adapters
(Gmail, LinkedIn archives, calendar and CSV imports) and are the only input
to relationship scoring.

Metadata arrives as loose JSON from the adapters. It is validated here, at
the ingestion boundary, into one of the typed models below. Anything that
does not fit a typed model is kept as an opaque payload. The scoring engine
never reads metadata.
"""
import json
import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from api.services.errors import InvalidInputError
from api.utils.datetime_utils import make_aware as _make_aware, parse_timestamp, to_utc_iso

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Kinds of observed interaction."""

    EMAIL_SENT = "email_sent"
    EMAIL_RECEIVED = "email_received"
    EMAIL_EXCHANGED = "email_exchanged"
    MEETING_ATTENDED = "meeting_attended"
    LINKEDIN_CONNECTION = "linkedin_connection"
    LINKEDIN_MESSAGE_SENT = "linkedin_message_sent"
    LINKEDIN_MESSAGE_RECEIVED = "linkedin_message_received"
    MESSAGE_SENT = "message_sent"
    MESSAGE_RECEIVED = "message_received"
    CONTACT_IMPORTED = "contact_imported"


class EvidenceSource(str, Enum):
    """Where an event was observed."""

    GMAIL = "gmail"
    LINKEDIN_ARCHIVE = "linkedin_archive"
    CALENDAR = "calendar"
    CSV = "csv"
    MANUAL = "manual"


# Event status values (status updates are used by "mark" dedup sweeps)
STATUS_ACTIVE = "active"
STATUS_DUPLICATE = "duplicate"


# =============================================================================
# TYPED METADATA
# =============================================================================

class _TypedMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class EmailMetadata(_TypedMetadata):
    """Metadata for email evidence."""
    message_id: Optional[str] = None
    thread_id: Optional[str] = None
    subject: Optional[str] = None


class MeetingMetadata(_TypedMetadata):
    """Metadata for calendar meetings."""
    event_id: Optional[str] = None
    title: Optional[str] = None
    attendee_count: Optional[int] = Field(default=None, ge=0)


class LinkedInConnectionMetadata(_TypedMetadata):
    """Metadata for LinkedIn connection records."""
    connected_on: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None


class MessageMetadata(_TypedMetadata):
    """Metadata for direct messages (LinkedIn or other)."""
    conversation_id: Optional[str] = None
    content_length: Optional[int] = Field(default=None, ge=0)


class OpaqueMetadata(BaseModel):
    """Fallback for metadata that matches no typed model."""
    model_config = ConfigDict(frozen=True)

    payload: dict = Field(default_factory=dict)


EvidenceMetadata = Union[
    EmailMetadata,
    MeetingMetadata,
    LinkedInConnectionMetadata,
    MessageMetadata,
    OpaqueMetadata,
]

METADATA_MODELS: dict[EventType, type[_TypedMetadata]] = {
    EventType.EMAIL_SENT: EmailMetadata,
    EventType.EMAIL_RECEIVED: EmailMetadata,
    EventType.EMAIL_EXCHANGED: EmailMetadata,
    EventType.MEETING_ATTENDED: MeetingMetadata,
    EventType.LINKEDIN_CONNECTION: LinkedInConnectionMetadata,
    EventType.LINKEDIN_MESSAGE_SENT: MessageMetadata,
    EventType.LINKEDIN_MESSAGE_RECEIVED: MessageMetadata,
    EventType.MESSAGE_SENT: MessageMetadata,
    EventType.MESSAGE_RECEIVED: MessageMetadata,
}


def parse_metadata(event_type: "EventType", raw) -> EvidenceMetadata:
    """
    Validate raw adapter metadata into a typed model.

    Keys outside the typed model's fields route the whole payload to
    OpaqueMetadata. Known keys with bad values are rejected.

    Args:
        event_type: Type of the event the metadata belongs to
        raw: dict from the adapter, an existing metadata model, or None

    Returns:
        Typed metadata model

    Raises:
        InvalidInputError: If the metadata is not a mapping or has invalid values
    """
    if raw is None:
        return OpaqueMetadata()
    if isinstance(raw, BaseModel):
        return raw
    if not isinstance(raw, dict):
        raise InvalidInputError(
            f"Metadata must be a JSON object, got {type(raw).__name__}", field="metadata"
        )

    model = METADATA_MODELS.get(event_type)
    if model is None or not set(raw).issubset(model.model_fields):
        return OpaqueMetadata(payload=dict(raw))

    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid {event_type.value} metadata: {e}", field="metadata") from e


def dump_metadata(metadata: EvidenceMetadata) -> dict:
    """Convert typed metadata back to a plain dict for storage."""
    if isinstance(metadata, OpaqueMetadata):
        return dict(metadata.payload)
    return metadata.model_dump()


def _coerce_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        raise InvalidInputError(f"Unknown {field_name} '{value}'", field=field_name) from e


@dataclass
class EvidenceEvent:
    """
    A single observed interaction between two people.

    object_person_id is None for self-only signals. Events never cross
    users: every read and aggregation is scoped by user_id.
    """

    id: str
    user_id: str
    subject_person_id: str
    type: EventType
    source: EvidenceSource
    timestamp: datetime
    object_person_id: Optional[str] = None
    metadata: EvidenceMetadata = field(default_factory=OpaqueMetadata)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: str = STATUS_ACTIVE

    def __post_init__(self):
        for name in ("id", "user_id", "subject_person_id"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidInputError(f"{name} must be a non-empty string", field=name)
        if self.object_person_id is not None and (
            not isinstance(self.object_person_id, str) or not self.object_person_id.strip()
        ):
            raise InvalidInputError("object_person_id must be a non-empty string or None", field="object_person_id")

        self.type = _coerce_enum(EventType, self.type, "type")
        self.source = _coerce_enum(EvidenceSource, self.source, "source")
        self.timestamp = _make_aware(self.timestamp)
        self.created_at = _make_aware(self.created_at)
        self.metadata = parse_metadata(self.type, self.metadata)

    @property
    def identity_key(self) -> tuple:
        """Fields that make two events the same observation."""
        return (
            self.user_id,
            self.subject_person_id,
            self.object_person_id,
            self.type.value,
            self.source.value,
            self.timestamp,
        )

    @property
    def is_self_only(self) -> bool:
        return self.object_person_id is None or self.object_person_id == self.subject_person_id

    def involves(self, person_id: str) -> bool:
        return person_id in (self.subject_person_id, self.object_person_id)

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "subject_person_id": self.subject_person_id,
            "object_person_id": self.object_person_id,
            "type": self.type.value,
            "source": self.source.value,
            "timestamp": to_utc_iso(self.timestamp),
            "metadata": dump_metadata(self.metadata),
            "created_at": to_utc_iso(self.created_at),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EvidenceEvent":
        """Create EvidenceEvent from dict, validating metadata."""
        data = dict(data)
        data.setdefault("id", str(uuid.uuid4()))
        try:
            if data.get("timestamp") is not None:
                data["timestamp"] = parse_timestamp(data["timestamp"])
            if data.get("created_at") is not None:
                data["created_at"] = parse_timestamp(data["created_at"])
            else:
                data.pop("created_at", None)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(f"Invalid timestamp: {e}", field="timestamp") from e
        try:
            return cls(**data)
        except TypeError as e:
            raise InvalidInputError(f"Malformed evidence record: {e}") from e

    @classmethod
    def from_row(cls, row: tuple) -> "EvidenceEvent":
        """Create EvidenceEvent from SQLite row."""
        # Row order: id, user_id, subject_person_id, object_person_id, type,
        #            source, timestamp, metadata, created_at, status
        return cls(
            id=row[0],
            user_id=row[1],
            subject_person_id=row[2],
            object_person_id=row[3],
            type=row[4],
            source=row[5],
            timestamp=parse_timestamp(row[6]),
            metadata=json.loads(row[7]) if row[7] else None,
            created_at=parse_timestamp(row[8]),
            status=row[9] or STATUS_ACTIVE,
        )
