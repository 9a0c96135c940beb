"""
Warm Intro Service - per-request orchestration of the scoring engine.

Each call reads a fresh snapshot from the evidence store, builds a graph
locally, and discards it when the call returns. Nothing is cached between
calls, so concurrent requests never share graph state.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from api.services.deduplicator import (
    DeduplicationResult,
    DuplicatePreview,
    EvidenceDeduplicator,
    MODE_DELETE,
)
from api.services.errors import InvalidInputError, SelfPathError, UnknownUserError
from api.services.evidence_store import EvidenceStore, get_evidence_store
from api.services.graph_builder import Edge, RelationshipGraph, build_graph
from api.services.path_finder import find_paths
from api.services.path_ranker import RankedPath, rank_paths
from api.services.person_catalog import PersonCatalog
from api.services.strength import StrengthCalculator

logger = logging.getLogger(__name__)


def _require_id(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} must be a non-empty string", field=field)
    return value


class WarmIntroService:
    """
    Entry point for deduplication, edge computation and path discovery.

    Usage:
        service = WarmIntroService()
        paths = service.find_intro_paths("user-1", "person-jane", max_hops=3, k=5)
    """

    def __init__(
        self,
        store: Optional[EvidenceStore] = None,
        calculator: Optional[StrengthCalculator] = None,
        direction: Optional[str] = None,
    ):
        self.store = store or get_evidence_store()
        self.calculator = calculator or StrengthCalculator()
        self.direction = direction

    # ------------------------------------------------------------------
    # Deduplication
    # ------------------------------------------------------------------

    def preview_duplicates(self) -> DuplicatePreview:
        return EvidenceDeduplicator(self.store).preview()

    def deduplicate(self, mode: str = MODE_DELETE) -> DeduplicationResult:
        return EvidenceDeduplicator(self.store).deduplicate(mode)

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def _require_user(self, user_id) -> str:
        user_id = _require_id(user_id, "user_id")
        if not self.store.user_exists(user_id):
            raise UnknownUserError(user_id)
        return user_id

    def build_user_graph(self, user_id: str, now: Optional[datetime] = None) -> tuple[RelationshipGraph, PersonCatalog]:
        """
        Build a user's graph from a fresh store snapshot.

        Returns:
            Tuple of (graph, person catalog)
        """
        user_id = self._require_user(user_id)
        catalog = PersonCatalog(self.store.get_people(user_id))
        events = self.store.get_events_for_user(user_id)
        graph = build_graph(
            user_id,
            events,
            people=catalog,
            now=now or datetime.now(timezone.utc),
            direction=self.direction,
            calculator=self.calculator,
        )
        return graph, catalog

    def compute_edges(
        self, user_id: str, persist: bool = False, now: Optional[datetime] = None
    ) -> list[Edge]:
        """
        Recompute all edges for a user.

        Args:
            user_id: User whose graph to rebuild
            persist: Replace the user's stored edge snapshot with the result
            now: Reference instant for recency (default: current time)

        Returns:
            Edges ordered by (from_id, to_id)
        """
        graph, _ = self.build_user_graph(user_id, now=now)
        edges = graph.edges()
        if persist:
            self.store.replace_edges(user_id, edges)
        logger.info(f"Computed {len(edges)} edges for user {user_id} (persist={persist})")
        return edges

    def symmetric_strength(
        self, user_id: str, a: str, b: str, mode: str = "max", now: Optional[datetime] = None
    ) -> float:
        """Undirected strength between two people in a user's graph."""
        _require_id(a, "a")
        _require_id(b, "b")
        graph, _ = self.build_user_graph(user_id, now=now)
        return graph.symmetric_strength(a, b, mode)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _resolve_me(
        self, user_id: str, graph: RelationshipGraph, catalog: PersonCatalog
    ) -> Optional[str]:
        """The user's own node: the linked person if it is in the graph, else the catalog's is_me entry."""
        person_id = self.store.get_user_person_id(user_id)
        if person_id and graph.has_node(person_id):
            return person_id
        if person_id:
            logger.warning(f"Linked person {person_id} for user {user_id} is not in the graph")
        return catalog.find_me()

    def find_intro_paths(
        self,
        user_id: str,
        target_person_id: str,
        max_hops: Optional[int] = None,
        k: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[RankedPath]:
        """
        Find ranked warm intro paths from the user to a target person.

        Args:
            user_id: Requesting user
            target_person_id: Person to be introduced to
            max_hops: Maximum path length in edges (default from settings)
            k: Maximum number of paths (default from settings)
            now: Reference instant for recency (default: current time)

        Returns:
            Ranked paths, best first. Empty if the user has no own node, the
            target is not in the graph, or nothing connects them.

        Raises:
            UnknownUserError: If the user does not exist
            SelfPathError: If the target is the user's own node
            InvalidInputError: For malformed ids or out-of-range limits
        """
        target_person_id = _require_id(target_person_id, "target_person_id")
        graph, catalog = self.build_user_graph(user_id, now=now)

        me = self._resolve_me(user_id, graph, catalog)
        if me is None:
            logger.warning(f"User {user_id} has no linked person; no paths can start")
            return []
        if me == target_person_id:
            raise SelfPathError(target_person_id)

        paths = find_paths(graph, me, target_person_id, max_hops=max_hops, k=k)
        ranked = rank_paths(paths, names=graph.node_names(), k=k)
        logger.info(f"Found {len(ranked)} intro paths for user {user_id} to {target_person_id}")
        return ranked
