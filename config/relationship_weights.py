"""
Relationship Strength and Path Ranking Weights Configuration.

Central configuration for all weights used in:
- Evidence recency decay
- Event type weighting
- Path scoring and explanation thresholds

Edit this file to tune relationship scoring behavior.
"""
import json
import logging
from pathlib import Path

_logger = logging.getLogger(__name__)


# =============================================================================
# RECENCY DECAY
# =============================================================================
# Formula: recency = exp(-max(0, days_since) / HALF_LIFE_DAYS)
#
#   day 0   -> 1.00
#   day 30  -> 0.85
#   day 90  -> 0.61
#   day 180 -> 0.37
#   day 365 -> 0.13
#   day 730 -> 0.02

HALF_LIFE_DAYS = 180.0
SECONDS_PER_DAY = 86400.0


# =============================================================================
# COMBINATION POLICY
# =============================================================================
# reinforced_max: 1 - (1 - r_max) * prod(1 - REINFORCEMENT_FACTOR * w_i * r_i)
#                 over every event except the most recent one
# max:            max(r_i)
# capped_sum:     min(1, sum(w_i * r_i))

POLICY_REINFORCED_MAX = "reinforced_max"
POLICY_MAX = "max"
POLICY_CAPPED_SUM = "capped_sum"

DEFAULT_STRENGTH_POLICY = POLICY_REINFORCED_MAX
REINFORCEMENT_FACTOR = 0.5


# =============================================================================
# EVENT TYPE WEIGHTS
# =============================================================================
# Weight in [0, 1] applied to each supporting event.
#
# Rationale:
# - Synchronous contact (meetings) weighted highest
# - Outbound communication shows intent, weighted above inbound
# - LinkedIn connections and imported contacts are passive

EVENT_TYPE_WEIGHTS: dict[str, float] = {
    # Meetings (synchronous, high signal)
    "meeting_attended": 1.0,

    # Email
    "email_exchanged": 0.9,
    "email_sent": 0.8,
    "email_received": 0.6,

    # Direct messages
    "message_sent": 0.8,
    "message_received": 0.6,
    "linkedin_message_sent": 0.7,
    "linkedin_message_received": 0.5,

    # Static connections (not interactions)
    "linkedin_connection": 0.4,
    "contact_imported": 0.2,
}

# Default weight for unknown event types
DEFAULT_EVENT_WEIGHT = 0.5


# =============================================================================
# EDGE FACTOR BREAKDOWN (reported beside strength, never feeds into it)
# =============================================================================
# frequency:         log10(per_month + 1) / 2, per_month = count / span_days * 30
# reciprocity:       one-way  -> 0.10 + 0.15 * min(1, log10(volume + 1) / 2)
#                    two-way  -> min/max ratio + min(0.1, log10(total + 1) / 20)
# channel_diversity: 1 source -> 0.25, 2 -> 0.5, 3 -> 0.75, 4+ -> 1.0
# confidence:        share of {has events, has direction counts, has sources,
#                    last event within a year} + min(0.2, count / 100)

DAYS_PER_MONTH = 30.0
ONE_WAY_BASE = 0.1
ONE_WAY_VOLUME_SCALE = 0.15
RECIPROCITY_VOLUME_BOOST_MAX = 0.1
CHANNEL_DIVERSITY_STEP = 0.25
CONFIDENCE_RECENT_DAYS = 365.0
CONFIDENCE_VOLUME_BOOST_MAX = 0.2
CONFIDENCE_VOLUME_DIVISOR = 100.0


# =============================================================================
# PATH SCORING
# =============================================================================
# Formula: score = prod(edge strengths) * HOP_PENALTY ** (hops - 1)

HOP_PENALTY = 0.9
DEFAULT_MAX_HOPS = 3
DEFAULT_MAX_PATHS = 5


# =============================================================================
# EXPLANATIONS
# =============================================================================

STRONG_THRESHOLD = 0.8
MODERATE_THRESHOLD = 0.5
WEAK_LINK_THRESHOLD = 0.5

# Source -> outreach channel, in priority order for introductions
CHANNEL_PRIORITY: list[tuple[str, str]] = [
    ("gmail", "email"),
    ("linkedin_archive", "linkedin"),
    ("calendar", "meeting"),
    ("csv", "import"),
    ("manual", "manual"),
]
DEFAULT_CHANNEL = "email"


# =============================================================================
# WEIGHT OVERRIDES (loaded from config/relationship_weights.json)
# =============================================================================
# Per-deployment event type weights. Keys are event types, values in [0, 1].
#
# {"event_type_weights": {"linkedin_connection": 0.6}}

def _load_weight_overrides() -> dict[str, float]:
    """Load event type weight overrides from JSON config file."""
    config_path = Path(__file__).parent / "relationship_weights.json"
    overrides: dict[str, float] = {}

    if config_path.exists():
        try:
            with open(config_path) as f:
                config = json.load(f)
            overrides = {
                k: min(1.0, max(0.0, float(v)))
                for k, v in config.get("event_type_weights", {}).items()
            }
        except (OSError, ValueError, TypeError, AttributeError) as e:
            _logger.warning(f"Failed to load relationship weight overrides: {e}")

    return overrides


EVENT_TYPE_WEIGHTS.update(_load_weight_overrides())


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_event_weight(event_type: str, weights: dict[str, float] | None = None) -> float:
    """
    Get the weight for an evidence event type.

    Args:
        event_type: Event type value (e.g., "email_sent", "meeting_attended")
        weights: Optional weight table (default EVENT_TYPE_WEIGHTS)

    Returns:
        Weight between 0.0 and 1.0
    """
    table = EVENT_TYPE_WEIGHTS if weights is None else weights
    return table.get(event_type, DEFAULT_EVENT_WEIGHT)


def get_channel_for_sources(sources) -> str:
    """Pick the outreach channel for an edge from its contributing sources."""
    source_set = set(sources)
    for source, channel in CHANNEL_PRIORITY:
        if source in source_set:
            return channel
    return DEFAULT_CHANNEL
