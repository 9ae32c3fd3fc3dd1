"""Test personalized PageRank calculation."""
import pytest

from bsky_recommender.graph import FollowGraph
from bsky_recommender.rank import ActorRankCalculator


@pytest.fixture
def triangle_graph():
    """a follows b and c, both follow a back."""
    graph = FollowGraph(["a"])
    graph.add_follows("a", ["b", "c"])
    graph.add_follows("b", ["a"])
    graph.add_follows("c", ["a"])
    return graph


class TestInitialRanks:
    """Test the starting vector."""

    def test_start_actors_share_all_rank(self):
        graph = FollowGraph(["a", "b", "c"])
        graph.add_follows("a", ["x", "y"])

        ranks = ActorRankCalculator().create_initial_ranks(graph)

        assert ranks[:3] == [pytest.approx(1 / 3)] * 3
        assert ranks[3:] == [0.0, 0.0]
        assert sum(ranks) == pytest.approx(1.0)

    def test_no_start_actors_raises(self):
        graph = FollowGraph([])
        graph.add_follows("a", ["b"])

        with pytest.raises(ZeroDivisionError):
            ActorRankCalculator().calculate(graph)


class TestCalculate:
    """Test power iteration."""

    def test_start_actor_ranks_highest(self, triangle_graph):
        ranks = ActorRankCalculator(0.8, 100).calculate(triangle_graph)

        assert len(ranks) == 3
        assert ranks[0] > ranks[1]
        assert ranks[1] == pytest.approx(ranks[2])
        assert sum(ranks) == pytest.approx(1.0)

    def test_ranks_sum_to_one_after_every_iteration(self):
        graph = FollowGraph(["a", "b"])
        graph.add_follows("a", ["c", "d", "d"])
        graph.add_follows("c", ["e"])
        graph.add_follows("e", ["a", "c"])
        calculator = ActorRankCalculator(0.8, 1)

        ranks = calculator.create_initial_ranks(graph)
        in_edges = calculator.create_in_edges(graph)
        for _ in range(25):
            ranks = calculator.calculate_next_ranks(ranks, in_edges, graph.start_indices)
            assert sum(ranks) == pytest.approx(1.0)

    def test_dangling_rank_is_renormalized(self):
        """Rank flowing into a node without follows is compensated by normalization."""
        graph = FollowGraph(["a"])
        graph.add_follows("a", ["b"])

        ranks = ActorRankCalculator(0.8, 2).calculate(graph)

        # iteration 1: [0.2, 0.8]; iteration 2: [0.2, 0.16] / 0.36
        assert ranks == [pytest.approx(0.2 / 0.36), pytest.approx(0.16 / 0.36)]

    def test_duplicate_edges_weigh_in(self):
        graph = FollowGraph(["a"])
        graph.add_follows("a", ["b", "b", "c"])

        ranks = ActorRankCalculator(0.8, 1).calculate(graph)

        assert ranks[1] == pytest.approx(2 * ranks[2])
        assert ranks == [pytest.approx(0.2), pytest.approx(1.6 / 3), pytest.approx(0.8 / 3)]

    def test_zero_iterations_returns_initial_ranks(self, triangle_graph):
        ranks = ActorRankCalculator(0.8, 0).calculate(triangle_graph)

        assert ranks == [1.0, 0.0, 0.0]

    def test_unreachable_nodes_get_no_rank(self):
        graph = FollowGraph(["a"])
        graph.add_follows("x", ["a"])

        ranks = ActorRankCalculator().calculate(graph)

        assert ranks == [pytest.approx(1.0), 0.0]

    @pytest.mark.parametrize("damping_factor", [-0.1, 1.0, 1.5])
    def test_invalid_damping_factor(self, damping_factor):
        with pytest.raises(ValueError, match="damping_factor"):
            ActorRankCalculator(damping_factor, 10)

    def test_invalid_iteration_count(self):
        with pytest.raises(ValueError, match="iteration_count"):
            ActorRankCalculator(0.8, -1)
