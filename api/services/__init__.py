"""
Warm Intro Graph Services Package.

This package contains the scoring engine and its storage boundary.
Use this module to import commonly-used services.

Example:
    from api.services import WarmIntroService, get_evidence_store

    service = WarmIntroService(get_evidence_store())
    paths = service.find_intro_paths("user-1", "person-jane")

Key service modules:
- evidence: EvidenceEvent model and typed metadata
- evidence_store: SQLite storage boundary
- deduplicator: Duplicate evidence detection and cleanup
- strength: Recency-decayed relationship strength
- graph_builder: Per-user weighted graph assembly
- path_finder: Top-K bounded path search
- path_ranker: Ranking and explanations
- intro_paths: Per-request orchestration
"""

# ============================================================================
# Errors
# ============================================================================

from api.services.errors import (
    WarmIntroError,
    InvalidInputError,
    SelfPathError,
    UnknownUserError,
    TenantIsolationError,
    StorageError,
)

# ============================================================================
# Evidence & Storage
# ============================================================================

from api.services.evidence import (
    EvidenceEvent,
    EventType,
    EvidenceSource,
)

from api.services.person_catalog import (
    Person,
    PersonCatalog,
)

from api.services.evidence_store import (
    EvidenceStore,
    get_evidence_store,
)

# ============================================================================
# Scoring Engine
# ============================================================================

from api.services.deduplicator import (
    EvidenceDeduplicator,
    deduplicate_events,
)

from api.services.strength import (
    StrengthCalculator,
    compute_strength,
    get_strength_breakdown,
)

from api.services.graph_builder import (
    Edge,
    RelationshipGraph,
    build_graph,
)

from api.services.path_finder import (
    ScoredPath,
    find_paths,
)

from api.services.path_ranker import (
    RankedPath,
    rank_paths,
    explain_path,
)

from api.services.intro_paths import WarmIntroService


__all__ = [
    # Errors
    "WarmIntroError",
    "InvalidInputError",
    "SelfPathError",
    "UnknownUserError",
    "TenantIsolationError",
    "StorageError",
    # Evidence & storage
    "EvidenceEvent",
    "EventType",
    "EvidenceSource",
    "Person",
    "PersonCatalog",
    "EvidenceStore",
    "get_evidence_store",
    # Engine
    "EvidenceDeduplicator",
    "deduplicate_events",
    "StrengthCalculator",
    "compute_strength",
    "get_strength_breakdown",
    "Edge",
    "RelationshipGraph",
    "build_graph",
    "ScoredPath",
    "find_paths",
    "RankedPath",
    "rank_paths",
    "explain_path",
    "WarmIntroService",
]
