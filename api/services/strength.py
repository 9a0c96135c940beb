"""
Relationship Strength - Convert evidence into a [0, 1] strength score.

Each event contributes a recency value that decays exponentially:
    recency = exp(-max(0, days_since) / HALF_LIFE_DAYS)

Recencies are then combined by a configurable policy (see
config/relationship_weights.py). Every policy is:
- 0 for no evidence
- monotone non-decreasing when evidence is added
- bounded in [0, 1]
- decaying toward 0 as all evidence ages
- independent of the order evidence arrives in

get_strength_breakdown() adds a display-only factor breakdown (frequency,
reciprocity, channel diversity) and a confidence value per edge.
"""
import logging
import math
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from api.services.errors import InvalidInputError
from api.services.evidence import EvidenceEvent
from api.utils.datetime_utils import days_between
from config.relationship_weights import (
    CHANNEL_DIVERSITY_STEP,
    CONFIDENCE_RECENT_DAYS,
    CONFIDENCE_VOLUME_BOOST_MAX,
    CONFIDENCE_VOLUME_DIVISOR,
    DAYS_PER_MONTH,
    ONE_WAY_BASE,
    ONE_WAY_VOLUME_SCALE,
    POLICY_REINFORCED_MAX,
    POLICY_MAX,
    POLICY_CAPPED_SUM,
    RECIPROCITY_VOLUME_BOOST_MAX,
    get_event_weight,
)
from config.settings import settings

logger = logging.getLogger(__name__)


class StrengthPolicy(str, Enum):
    """How per-event recencies combine into one edge strength."""

    REINFORCED_MAX = POLICY_REINFORCED_MAX
    MAX = POLICY_MAX
    CAPPED_SUM = POLICY_CAPPED_SUM


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def compute_recency_score(
    timestamp: Optional[datetime],
    now: datetime,
    half_life_days: Optional[float] = None,
) -> float:
    """
    Compute recency score (0.0-1.0).

    Score is 1.0 for an interaction at `now` and decays continuously with
    elapsed time. Future timestamps clamp to exactly 1.0.

    Args:
        timestamp: Interaction timestamp
        now: Reference instant
        half_life_days: E-fold decay period (default from settings)

    Returns:
        Recency score between 0.0 and 1.0
    """
    if timestamp is None:
        return 0.0

    if half_life_days is None:
        half_life_days = settings.half_life_days

    elapsed = days_between(now, timestamp)
    if elapsed <= 0:
        return 1.0

    return _clamp(math.exp(-elapsed / half_life_days))


def compute_frequency_score(interaction_count: int, span_days: float) -> float:
    """
    Compute frequency score (0.0-1.0) from the monthly interaction rate.

    Formula: log10(per_month + 1) / 2, so ~1 per month scores 0.15,
    ~10 per month 0.52 and 99+ per month 1.0.

    Args:
        interaction_count: Number of interactions
        span_days: Days between the first and last interaction

    Returns:
        Frequency score between 0.0 and 1.0
    """
    if interaction_count <= 0 or span_days <= 0:
        return 0.0

    per_month = interaction_count / span_days * DAYS_PER_MONTH
    return _clamp(math.log10(per_month + 1) / 2)


def compute_reciprocity_score(sent: int, received: int) -> float:
    """
    Compute reciprocity score (0.0-1.0) from the balance of the two directions.

    One-way relationships stay in [0.10, 0.25] however busy they are.
    Balanced ones score their min/max ratio plus a small volume boost.
    """
    if sent < 0 or received < 0:
        raise InvalidInputError("sent and received counts must be non-negative", field="counts")
    if sent == 0 and received == 0:
        return 0.0

    if sent == 0 or received == 0:
        volume = max(sent, received)
        return ONE_WAY_BASE + min(1.0, math.log10(volume + 1) / 2) * ONE_WAY_VOLUME_SCALE

    ratio = min(sent, received) / max(sent, received)
    volume_boost = min(RECIPROCITY_VOLUME_BOOST_MAX, math.log10(sent + received + 1) / 20)
    return _clamp(ratio + volume_boost)


def compute_channel_diversity_score(channels: Iterable[str]) -> float:
    """Compute diversity score: 0.25 per distinct channel, capped at 1.0."""
    unique_channels = {c.strip().lower() for c in channels if c and c.strip()}
    return min(1.0, len(unique_channels) * CHANNEL_DIVERSITY_STEP)


def compute_confidence(
    interaction_count: int,
    sent: int,
    received: int,
    channels: Iterable[str],
    last_interaction_at: Optional[datetime],
    now: datetime,
) -> float:
    """
    How much evidence backs an edge (0.0-1.0).

    A quarter for each of: any interactions, any direction counts, any
    channels, a last interaction within a year. Volume adds up to 0.2.
    """
    signals = [
        interaction_count > 0,
        sent > 0 or received > 0,
        any(channels),
        last_interaction_at is not None
        and days_between(now, last_interaction_at) < CONFIDENCE_RECENT_DAYS,
    ]
    base = sum(signals) / len(signals)
    boost = min(CONFIDENCE_VOLUME_BOOST_MAX, interaction_count / CONFIDENCE_VOLUME_DIVISOR)
    return min(1.0, base + boost)


def get_strength_breakdown(
    from_id: str,
    events: list[EvidenceEvent],
    now: datetime,
    half_life_days: Optional[float] = None,
) -> dict:
    """
    Get the factor breakdown for the edge from_id -> other party.

    Useful for debugging and displaying in UI. None of these values feed
    into edge strength.

    Args:
        from_id: Person the edge starts at; events with this subject count as sent
        events: Evidence between the pair
        now: Reference instant
        half_life_days: Recency decay period (default from settings)

    Returns:
        Dict with "factors" (recency, frequency, reciprocity, channel_diversity)
        and "confidence"
    """
    if not events:
        return {
            "factors": {"recency": 0.0, "frequency": 0.0, "reciprocity": 0.0, "channel_diversity": 0.0},
            "confidence": 0.0,
        }

    timestamps = [event.timestamp for event in events]
    first, last = min(timestamps), max(timestamps)
    span_days = max(1.0, days_between(last, first))

    sent = sum(1 for event in events if event.subject_person_id == from_id)
    received = len(events) - sent
    channels = sorted({event.source.value for event in events})

    factors = {
        "recency": compute_recency_score(last, now, half_life_days),
        "frequency": compute_frequency_score(len(events), span_days),
        "reciprocity": compute_reciprocity_score(sent, received),
        "channel_diversity": compute_channel_diversity_score(channels),
    }
    return {
        "factors": factors,
        "confidence": compute_confidence(len(events), sent, received, channels, last, now),
    }


def combine_recencies(
    weighted: list[tuple[float, float]],
    policy: StrengthPolicy,
    reinforcement_factor: float,
) -> float:
    """
    Combine (recency, weight) pairs into one strength.

    Args:
        weighted: List of (recency, event type weight) pairs
        policy: Combination policy
        reinforcement_factor: Scale applied to supporting events (reinforced_max)

    Returns:
        Strength between 0.0 and 1.0
    """
    if not weighted:
        return 0.0

    # Canonical order: freshest first, lighter weight first among equal recency.
    # The result never depends on the order the evidence arrived in.
    weighted = sorted(weighted, key=lambda rw: (-rw[0], rw[1]))

    if policy == StrengthPolicy.MAX:
        return _clamp(weighted[0][0])

    if policy == StrengthPolicy.CAPPED_SUM:
        return _clamp(sum(r * w for r, w in weighted))

    # reinforced_max: the freshest event sets the floor, the rest reinforce it
    base, supporting = weighted[0], weighted[1:]
    remaining = 1.0 - base[0]
    for recency, weight in supporting:
        remaining *= 1.0 - _clamp(reinforcement_factor * weight * recency)
    return _clamp(1.0 - remaining)


class StrengthCalculator:
    """
    Strength scorer with a fixed configuration.

    Instances are immutable after construction and safe to share across
    requests.
    """

    def __init__(
        self,
        half_life_days: Optional[float] = None,
        policy: Optional[str] = None,
        reinforcement_factor: Optional[float] = None,
        weights: Optional[dict[str, float]] = None,
    ):
        self.half_life_days = half_life_days if half_life_days is not None else settings.half_life_days
        if self.half_life_days <= 0:
            raise InvalidInputError("half_life_days must be positive", field="half_life_days")

        policy_value = policy if policy is not None else settings.strength_policy
        try:
            self.policy = StrengthPolicy(policy_value)
        except ValueError as e:
            raise InvalidInputError(f"Unknown strength policy '{policy_value}'", field="policy") from e

        self.reinforcement_factor = (
            reinforcement_factor if reinforcement_factor is not None else settings.reinforcement_factor
        )
        self.weights = weights

    def strength(self, events: Iterable[EvidenceEvent], now: datetime) -> float:
        """
        Compute the strength of the relationship the events describe.

        Args:
            events: Evidence between one pair of people
            now: Reference instant

        Returns:
            Strength between 0.0 and 1.0 (0.0 without evidence)
        """
        weighted = [
            (
                compute_recency_score(event.timestamp, now, self.half_life_days),
                get_event_weight(event.type.value, self.weights),
            )
            for event in events
        ]
        return combine_recencies(weighted, self.policy, self.reinforcement_factor)


def compute_strength(events: Iterable[EvidenceEvent], now: datetime) -> float:
    """Compute strength with the configured default calculator."""
    return StrengthCalculator().strength(events, now)
