"""
Path Ranker - Order candidate paths and explain them.

Ranking uses the same composite score as the path finder, with ties broken
by fewer hops, then the lexicographically smaller node sequence. Ranking and
explanations are read-only and deterministic for identical input.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from api.services.graph_builder import Edge
from api.services.path_finder import ScoredPath
from config.relationship_weights import (
    STRONG_THRESHOLD,
    MODERATE_THRESHOLD,
    WEAK_LINK_THRESHOLD,
    get_channel_for_sources,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedPath:
    """A scored path with its final rank and explanation."""

    node_ids: tuple[str, ...]
    edges: tuple[Edge, ...]
    score: float
    rank: int
    explanation: str
    introducer_id: Optional[str] = None
    suggested_channel: Optional[str] = None

    @property
    def hops(self) -> int:
        return len(self.edges)

    def to_dict(self) -> dict:
        return {
            "path": list(self.node_ids),
            "score": self.score,
            "rank": self.rank,
            "explanation": self.explanation,
            "hops": self.hops,
            "introducer_id": self.introducer_id,
            "suggested_channel": self.suggested_channel,
            "edges": [edge.to_dict() for edge in self.edges],
        }


def strength_label(score: float) -> str:
    """Describe a score as strong, moderate or weak."""
    if score >= STRONG_THRESHOLD:
        return "strong"
    if score >= MODERATE_THRESHOLD:
        return "moderate"
    return "weak"


def _pct(value: float) -> str:
    return f"{value * 100:.0f}%"


def explain_path(path: ScoredPath, names: Optional[Mapping[str, str]] = None) -> str:
    """
    Generate a human-readable explanation for a path.

    Examples:
        Direct strong connection to Jane (92% connection)
        Connect via Alice (85% connection) → Jane (40% connection). Weak path (31%).
        Strongest link: Me → Alice (85%). Weak link: Alice → Jane (40%)

    Args:
        path: Scored path to explain
        names: Map of person id to display name (ids are used when missing)

    Returns:
        Explanation string
    """
    names = names or {}

    def name(person_id: str) -> str:
        return names.get(person_id, person_id)

    if not path.edges:
        return "Invalid path"

    target = name(path.node_ids[-1])
    label = strength_label(path.score)

    if len(path.edges) == 1:
        return f"Direct {label} connection to {target} ({_pct(path.edges[0].strength)} connection)"

    chain = " → ".join(
        f"{name(edge.to_id)} ({_pct(edge.strength)} connection)" for edge in path.edges
    )
    parts = [f"Connect via {chain}", f"{label.capitalize()} path ({_pct(path.score)})"]

    # First strongest edge wins ties
    strongest = max(path.edges, key=lambda edge: edge.strength)
    parts.append(
        f"Strongest link: {name(strongest.from_id)} → {name(strongest.to_id)} ({_pct(strongest.strength)})"
    )

    weak = [edge for edge in path.edges if edge.strength < WEAK_LINK_THRESHOLD]
    if weak:
        noun = "Weak link" if len(weak) == 1 else "Weak links"
        listed = ", ".join(
            f"{name(edge.from_id)} → {name(edge.to_id)} ({_pct(edge.strength)})" for edge in weak
        )
        parts.append(f"{noun}: {listed}")

    return ". ".join(parts)


def rank_paths(
    paths: Iterable[ScoredPath],
    names: Optional[Mapping[str, str]] = None,
    k: Optional[int] = None,
) -> list[RankedPath]:
    """
    Rank paths by score and attach explanations.

    Args:
        paths: Candidate paths from the path finder
        names: Map of person id to display name
        k: Maximum number of ranked paths to return (default: all)

    Returns:
        Ranked paths, rank 1 first
    """
    ordered = sorted(paths, key=lambda p: p.sort_key)
    if k is not None:
        ordered = ordered[:k]

    ranked = []
    for index, path in enumerate(ordered):
        first_edge = path.edges[0] if path.edges else None
        ranked.append(
            RankedPath(
                node_ids=path.node_ids,
                edges=path.edges,
                score=path.score,
                rank=index + 1,
                explanation=explain_path(path, names),
                introducer_id=path.node_ids[1] if path.hops >= 2 else None,
                suggested_channel=get_channel_for_sources(first_edge.sources) if first_edge else None,
            )
        )
    return ranked
