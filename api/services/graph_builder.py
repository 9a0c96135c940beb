"""
Graph Builder - Assemble a user's weighted relationship graph from evidence.

Edges are derived, never authored: the graph is a pure function of the
user's deduplicated evidence, the person catalog and the reference instant.
Building twice from the same input yields identical edges in identical order.

Direction policy:
- bidirectional (default): all evidence between A and B, whichever party is
  the subject, feeds one pool. A->B and B->A get identical statistics.
- directional: A->B only uses events whose subject is A and object is B.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

import networkx as nx

from api.services.deduplicator import deduplicate_events
from api.services.errors import InvalidInputError, TenantIsolationError
from api.services.evidence import EvidenceEvent
from api.services.person_catalog import Person, PersonCatalog
from api.services.strength import StrengthCalculator, get_strength_breakdown
from api.utils.datetime_utils import parse_timestamp, to_utc_iso
from config.settings import settings

logger = logging.getLogger(__name__)


class EdgeDirection(str, Enum):
    """Which evidence feeds a directed edge."""

    BIDIRECTIONAL = "bidirectional"
    DIRECTIONAL = "directional"


@dataclass(frozen=True)
class Edge:
    """A derived, directed relationship summary between two people."""

    from_id: str
    to_id: str
    strength: float
    interaction_count: int = 0
    sources: tuple[str, ...] = ()
    event_types: tuple[str, ...] = ()
    first_interaction_at: Optional[datetime] = None
    last_interaction_at: Optional[datetime] = None
    # Breakdown for display only; strength is computed independently
    factors: dict[str, float] = field(default_factory=dict, hash=False)
    confidence: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        return {
            "from_id": self.from_id,
            "to_id": self.to_id,
            "strength": self.strength,
            "interaction_count": self.interaction_count,
            "sources": list(self.sources),
            "event_types": list(self.event_types),
            "first_interaction_at": to_utc_iso(self.first_interaction_at) if self.first_interaction_at else None,
            "last_interaction_at": to_utc_iso(self.last_interaction_at) if self.last_interaction_at else None,
            "factors": dict(self.factors),
            "confidence": self.confidence,
        }

    @classmethod
    def from_row(cls, row: tuple) -> "Edge":
        """Create Edge from SQLite row."""
        # Row order: from, to, strength, interaction_count, sources, event_types, first, last,
        # factors, confidence
        return cls(
            from_id=row[0],
            to_id=row[1],
            strength=row[2],
            interaction_count=row[3],
            sources=tuple(json.loads(row[4])) if row[4] else (),
            event_types=tuple(json.loads(row[5])) if row[5] else (),
            first_interaction_at=parse_timestamp(row[6]) if row[6] else None,
            last_interaction_at=parse_timestamp(row[7]) if row[7] else None,
            factors=json.loads(row[8]) if row[8] else {},
            confidence=row[9] or 0.0,
        )


@dataclass(frozen=True)
class Node:
    """A person in the graph."""

    id: str
    name: str
    is_me: bool = False


@dataclass
class RelationshipGraph:
    """
    Adjacency-list graph for one user.

    Adjacency lists are sorted by target id.
    """

    user_id: str
    nodes: dict[str, Node] = field(default_factory=dict)
    adjacency: dict[str, list[Edge]] = field(default_factory=dict)

    def has_node(self, person_id: str) -> bool:
        return person_id in self.nodes

    def neighbors(self, person_id: str) -> list[Edge]:
        """Outgoing edges of a node (empty for unknown nodes)."""
        return self.adjacency.get(person_id, [])

    def get_edge(self, from_id: str, to_id: str) -> Optional[Edge]:
        for edge in self.adjacency.get(from_id, []):
            if edge.to_id == to_id:
                return edge
        return None

    def edges(self) -> list[Edge]:
        """All edges ordered by (from_id, to_id)."""
        return [edge for from_id in sorted(self.adjacency) for edge in self.adjacency[from_id]]

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self.adjacency.values())

    def node_names(self) -> dict[str, str]:
        return {node_id: node.name for node_id, node in self.nodes.items()}

    def symmetric_strength(self, a: str, b: str, mode: str = "max") -> float:
        """
        Undirected strength between two people for display.

        Args:
            a: One person id
            b: The other person id
            mode: "max" or "average" of the two directions (a missing direction counts as 0)

        Returns:
            Strength between 0.0 and 1.0
        """
        forward = self.get_edge(a, b)
        backward = self.get_edge(b, a)
        values = [
            forward.strength if forward else 0.0,
            backward.strength if backward else 0.0,
        ]
        if mode == "max":
            return max(values)
        if mode == "average":
            return sum(values) / 2
        raise InvalidInputError(f"Unknown symmetric mode '{mode}'", field="mode")

    def to_digraph(self, min_edge_strength: float = 0.0) -> nx.DiGraph:
        """
        Export as a networkx DiGraph for traversal.

        Every person becomes a node (with name and is_me attributes). Edges
        with zero strength or strength at or below min_edge_strength are
        left out; the rest carry their `strength` and the `edge` record.
        """
        G = nx.DiGraph(user_id=self.user_id)
        for node_id in sorted(self.nodes):
            node = self.nodes[node_id]
            G.add_node(node_id, name=node.name, is_me=node.is_me)
        for edge in self.edges():
            if edge.strength <= 0 or edge.strength <= min_edge_strength:
                continue
            G.add_edge(edge.from_id, edge.to_id, strength=edge.strength, edge=edge)
        return G

    def to_json(self) -> str:
        """Stable serialization of the edge set."""
        return json.dumps([edge.to_dict() for edge in self.edges()], sort_keys=True)


def _summarize(
    from_id: str,
    to_id: str,
    pool: list[EvidenceEvent],
    calculator: StrengthCalculator,
    now: datetime,
) -> Edge:
    timestamps = [event.timestamp for event in pool]
    breakdown = get_strength_breakdown(from_id, pool, now, calculator.half_life_days)
    return Edge(
        from_id=from_id,
        to_id=to_id,
        strength=calculator.strength(pool, now),
        interaction_count=len(pool),
        sources=tuple(sorted({event.source.value for event in pool})),
        event_types=tuple(sorted({event.type.value for event in pool})),
        first_interaction_at=min(timestamps),
        last_interaction_at=max(timestamps),
        factors=breakdown["factors"],
        confidence=breakdown["confidence"],
    )


def build_graph(
    user_id: str,
    events: Iterable[EvidenceEvent],
    people: Iterable[Person] = (),
    now: Optional[datetime] = None,
    direction: Optional[str] = None,
    calculator: Optional[StrengthCalculator] = None,
) -> RelationshipGraph:
    """
    Build the relationship graph for one user.

    Args:
        user_id: Owning user; every event must belong to this user
        events: Evidence events (deduplicated here if not already)
        people: Person catalog entries used to label nodes
        now: Reference instant for recency (default: current time)
        direction: "bidirectional" or "directional" (default from settings)
        calculator: Strength calculator (default from settings)

    Returns:
        RelationshipGraph with one edge per ordered pair that has evidence

    Raises:
        InvalidInputError: If user_id is blank or the direction policy is unknown
        TenantIsolationError: If any event belongs to a different user
    """
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidInputError("user_id must be a non-empty string", field="user_id")

    direction_value = direction if direction is not None else settings.edge_direction
    try:
        policy = EdgeDirection(direction_value)
    except ValueError as e:
        raise InvalidInputError(f"Unknown edge direction '{direction_value}'", field="direction") from e

    if now is None:
        now = datetime.now(timezone.utc)
    if calculator is None:
        calculator = StrengthCalculator()

    events = list(events)
    for event in events:
        if event.user_id != user_id:
            raise TenantIsolationError(user_id, event.user_id, event.id)

    canonical = deduplicate_events(events)
    catalog = people if isinstance(people, PersonCatalog) else PersonCatalog(people)

    # Pool evidence per pair
    pools: dict[tuple[str, str], list[EvidenceEvent]] = {}
    referenced: set[str] = set()
    for event in canonical:
        referenced.add(event.subject_person_id)
        if event.is_self_only:
            continue
        referenced.add(event.object_person_id)
        if policy == EdgeDirection.BIDIRECTIONAL:
            key = tuple(sorted((event.subject_person_id, event.object_person_id)))
        else:
            key = (event.subject_person_id, event.object_person_id)
        pools.setdefault(key, []).append(event)

    graph = RelationshipGraph(user_id=user_id)
    for person in catalog:
        graph.nodes[person.id] = Node(id=person.id, name=person.display_name, is_me=person.is_me)
    for person_id in sorted(referenced - set(graph.nodes)):
        graph.nodes[person_id] = Node(id=person_id, name=catalog.name_for(person_id))

    for (a, b) in sorted(pools):
        pool = sorted(pools[(a, b)], key=lambda event: (event.timestamp, event.id))
        graph.adjacency.setdefault(a, []).append(_summarize(a, b, pool, calculator, now))
        if policy == EdgeDirection.BIDIRECTIONAL:
            graph.adjacency.setdefault(b, []).append(_summarize(b, a, pool, calculator, now))

    for from_id in graph.adjacency:
        graph.adjacency[from_id].sort(key=lambda edge: edge.to_id)

    logger.info(
        f"Built graph for user {user_id}: {len(graph.nodes)} nodes, "
        f"{graph.edge_count} edges from {len(canonical)} events ({policy.value})"
    )
    return graph
