"""
Path Finder - Top-K warm intro paths through a relationship graph.

Path score:
    score = product(edge strengths) * HOP_PENALTY ** (hops - 1)

Candidates are every simple path of at most max_hops edges
(networkx all_simple_paths with a cutoff), so no path revisits a node.
They are ranked by:
1. Higher score
2. Fewer hops
3. Smaller concatenation of node ids, then the node id sequence itself

and the first k are returned.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import networkx as nx

from api.services.errors import InvalidInputError, SelfPathError
from api.services.graph_builder import Edge, RelationshipGraph
from config.relationship_weights import HOP_PENALTY
from config.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoredPath:
    """A path from the source to the target with its score."""

    node_ids: tuple[str, ...]
    edges: tuple[Edge, ...]
    score: float

    @property
    def hops(self) -> int:
        return len(self.edges)

    @property
    def sort_key(self) -> tuple:
        """Best first: higher score, then fewer hops, then smaller joined node ids."""
        return (-self.score, self.hops, "".join(self.node_ids), self.node_ids)


def score_path(edges, hop_penalty: float = HOP_PENALTY) -> float:
    """
    Score a sequence of edges.

    Args:
        edges: Edges in traversal order
        hop_penalty: Multiplier applied per hop beyond the first

    Returns:
        Score between 0.0 and 1.0 (0.0 for an empty path)
    """
    if not edges:
        return 0.0

    score = 1.0
    for edge in edges:
        score *= edge.strength
    score *= hop_penalty ** (len(edges) - 1)

    return max(0.0, min(1.0, score))


def find_paths(
    graph: RelationshipGraph,
    source_id: str,
    target_id: str,
    max_hops: Optional[int] = None,
    k: Optional[int] = None,
    min_edge_strength: Optional[float] = None,
    hop_penalty: float = HOP_PENALTY,
) -> list[ScoredPath]:
    """
    Find up to k best paths from source to target.

    Args:
        graph: Relationship graph for one user
        source_id: Starting person (usually the user's own node)
        target_id: Person to reach
        max_hops: Maximum edges per path (default from settings)
        k: Maximum number of paths (default from settings)
        min_edge_strength: Edges at or below this strength are skipped
        hop_penalty: Per-hop multiplier, must be in (0, 1)

    Returns:
        Distinct paths, best first. Empty when either node is missing or
        the target is unreachable within max_hops.

    Raises:
        SelfPathError: If source and target are the same person
        InvalidInputError: If max_hops, k or hop_penalty are out of range
    """
    if max_hops is None:
        max_hops = settings.default_max_hops
    if k is None:
        k = settings.default_max_paths
    if min_edge_strength is None:
        min_edge_strength = settings.min_edge_strength

    if source_id == target_id:
        raise SelfPathError(source_id)
    if max_hops < 1:
        raise InvalidInputError("max_hops must be at least 1", field="max_hops")
    if k < 1:
        raise InvalidInputError("k must be at least 1", field="k")
    if not 0 < hop_penalty < 1:
        raise InvalidInputError("hop_penalty must be between 0 and 1", field="hop_penalty")

    if not graph.has_node(source_id) or not graph.has_node(target_id):
        logger.debug(f"Path search {source_id} -> {target_id}: endpoint not in graph")
        return []

    G = graph.to_digraph(min_edge_strength)

    candidates: list[ScoredPath] = []
    for node_path in nx.all_simple_paths(G, source_id, target_id, cutoff=max_hops):
        edges = tuple(G.edges[u, v]["edge"] for u, v in zip(node_path, node_path[1:]))
        candidates.append(
            ScoredPath(node_ids=tuple(node_path), edges=edges, score=score_path(edges, hop_penalty))
        )

    candidates.sort(key=lambda path: path.sort_key)
    results = candidates[:k]

    logger.debug(
        f"Path search {source_id} -> {target_id}: {len(results)} of {len(candidates)} paths "
        f"(max_hops={max_hops}, k={k})"
    )
    return results
