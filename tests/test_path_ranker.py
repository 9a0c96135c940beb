"""
Tests for path ranking and explanations.
"""
import pytest

from api.services.graph_builder import Edge
from api.services.path_finder import ScoredPath, score_path
from api.services.path_ranker import explain_path, rank_paths, strength_label

pytestmark = pytest.mark.unit

NAMES = {"me": "Me", "alice": "Alice", "bob": "Bob", "jane": "Jane"}


def make_path(*hops, sources=("gmail",)):
    """Build a ScoredPath from (from, to, strength) triples."""
    edges = tuple(Edge(from_id=a, to_id=b, strength=s, sources=sources) for a, b, s in hops)
    node_ids = (edges[0].from_id,) + tuple(edge.to_id for edge in edges)
    return ScoredPath(node_ids=node_ids, edges=edges, score=score_path(edges))


class TestStrengthLabel:
    """Tests for strength labels."""

    @pytest.mark.parametrize("score,label", [
        (0.95, "strong"),
        (0.8, "strong"),
        (0.79, "moderate"),
        (0.5, "moderate"),
        (0.49, "weak"),
        (0.0, "weak"),
    ])
    def test_thresholds(self, score, label):
        assert strength_label(score) == label


class TestExplainPath:
    """Tests for explanation strings."""

    def test_direct_connection(self):
        path = make_path(("me", "jane", 0.92))
        assert explain_path(path, NAMES) == "Direct strong connection to Jane (92% connection)"

    def test_two_hop_with_weak_link(self):
        path = make_path(("me", "alice", 0.85), ("alice", "jane", 0.40))

        assert explain_path(path, NAMES) == (
            "Connect via Alice (85% connection) → Jane (40% connection). "
            "Weak path (31%). "
            "Strongest link: Me → Alice (85%). "
            "Weak link: Alice → Jane (40%)"
        )

    def test_multiple_weak_links(self):
        path = make_path(("me", "alice", 0.3), ("alice", "bob", 0.9), ("bob", "jane", 0.2))
        explanation = explain_path(path, NAMES)

        assert "Weak links: Me → Alice (30%), Bob → Jane (20%)" in explanation
        assert "Strongest link: Alice → Bob (90%)" in explanation

    def test_no_weak_links_called_out_when_all_strong(self):
        path = make_path(("me", "alice", 0.9), ("alice", "jane", 0.9))
        assert "Weak link" not in explain_path(path, NAMES)

    def test_unknown_names_fall_back_to_ids(self):
        path = make_path(("me", "p-42", 0.6))
        assert explain_path(path) == "Direct moderate connection to p-42 (60% connection)"

    def test_deterministic(self):
        path = make_path(("me", "alice", 0.85), ("alice", "jane", 0.4))
        assert explain_path(path, NAMES) == explain_path(path, dict(NAMES))


class TestRankPaths:
    """Tests for rank_paths."""

    def test_ranks_are_one_based_and_ordered(self):
        weak = make_path(("me", "bob", 0.5), ("bob", "jane", 0.5))
        strong = make_path(("me", "alice", 0.9), ("alice", "jane", 0.9))

        ranked = rank_paths([weak, strong], NAMES)

        assert [r.rank for r in ranked] == [1, 2]
        assert ranked[0].node_ids == ("me", "alice", "jane")
        assert ranked[0].score > ranked[1].score

    def test_ties_prefer_fewer_hops_then_node_ids(self):
        a = ScoredPath(node_ids=("me", "zed", "jane"), edges=(Edge("me", "zed", 0.5), Edge("zed", "jane", 0.5)), score=0.4)
        b = ScoredPath(node_ids=("me", "amy", "jane"), edges=(Edge("me", "amy", 0.5), Edge("amy", "jane", 0.5)), score=0.4)
        c = ScoredPath(node_ids=("me", "jane"), edges=(Edge("me", "jane", 0.4),), score=0.4)

        ranked = rank_paths([a, b, c])
        assert [r.node_ids for r in ranked] == [("me", "jane"), ("me", "amy", "jane"), ("me", "zed", "jane")]

    def test_k_limits_results(self):
        paths = [make_path(("me", "jane", s)) for s in (0.3, 0.6, 0.9)]
        ranked = rank_paths(paths, k=2)
        assert [r.score for r in ranked] == [pytest.approx(0.9), pytest.approx(0.6)]

    def test_introducer_and_channel(self):
        intro = make_path(("me", "alice", 0.9), ("alice", "jane", 0.9), sources=("linkedin_archive", "gmail"))
        direct = make_path(("me", "jane", 0.5), sources=("calendar",))

        ranked = rank_paths([intro, direct], NAMES)

        assert ranked[0].introducer_id == "alice"
        assert ranked[0].suggested_channel == "email"
        assert ranked[1].introducer_id is None
        assert ranked[1].suggested_channel == "meeting"

    def test_to_dict(self):
        ranked = rank_paths([make_path(("me", "alice", 0.9), ("alice", "jane", 0.8))], NAMES)[0]
        data = ranked.to_dict()

        assert data["path"] == ["me", "alice", "jane"]
        assert data["rank"] == 1
        assert data["hops"] == 2
        assert data["explanation"].startswith("Connect via Alice")
        assert len(data["edges"]) == 2

    def test_ranking_does_not_mutate_input(self):
        paths = [make_path(("me", "jane", 0.3)), make_path(("me", "jane", 0.9))]
        before = list(paths)
        rank_paths(paths)
        assert paths == before
