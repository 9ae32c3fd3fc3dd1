"""Personalized PageRank over a sampled follow graph."""
import logging
from typing import List, Set, Tuple

from .graph import FollowGraph


logger = logging.getLogger(__name__)

DEFAULT_DAMPING_FACTOR = 0.8
DEFAULT_ITERATION_COUNT = 100


class ActorRankCalculator:
    """
    Power iteration with restarts concentrated on the start actors.

    Runs a fixed number of iterations, there is no convergence check. Rank
    held by nodes without out-edges is not redistributed explicitly; instead
    the vector is renormalized to sum to 1 after every iteration.
    """

    def __init__(
        self,
        damping_factor: float = DEFAULT_DAMPING_FACTOR,
        iteration_count: int = DEFAULT_ITERATION_COUNT
    ):
        if not 0.0 <= damping_factor < 1.0:
            raise ValueError(f"damping_factor must be in [0, 1), got {damping_factor}")
        if iteration_count < 0:
            raise ValueError(f"iteration_count must be >= 0, got {iteration_count}")
        self.damping_factor = damping_factor
        self.iteration_count = iteration_count

    def calculate(self, graph: FollowGraph) -> List[float]:
        """Return the rank of every node, indexed like ``graph.dids``."""
        ranks = self.create_initial_ranks(graph)
        in_edges = self.create_in_edges(graph)
        for _ in range(self.iteration_count):
            ranks = self.calculate_next_ranks(ranks, in_edges, graph.start_indices)

        if ranks:
            logger.debug(
                f"Ranked {len(ranks)} nodes / {graph.edge_count} edges: "
                f"max={max(ranks):.6f} min={min(ranks):.6f}"
            )
        return ranks

    def create_initial_ranks(self, graph: FollowGraph) -> List[float]:
        start_rank = 1.0 / len(graph.start_indices)
        return [
            start_rank if i in graph.start_indices else 0.0
            for i in range(graph.node_count)
        ]

    def create_in_edges(self, graph: FollowGraph) -> List[List[Tuple[int, float]]]:
        """For every node, the (source index, 1/out-degree of source) pairs pointing at it."""
        in_edges: List[List[Tuple[int, float]]] = [[] for _ in range(graph.node_count)]
        for i, followed in enumerate(graph.follows):
            if not followed:
                continue
            ratio = 1.0 / len(followed)
            for j in followed:
                in_edges[j].append((i, ratio))
        return in_edges

    def calculate_next_ranks(
        self,
        ranks: List[float],
        in_edges: List[List[Tuple[int, float]]],
        start_indices: Set[int]
    ) -> List[float]:
        restart_rank = (1.0 - self.damping_factor) / len(start_indices)
        next_ranks = []
        for i in range(len(ranks)):
            rank = restart_rank if i in start_indices else 0.0
            for j, ratio in in_edges[i]:
                rank += self.damping_factor * ranks[j] * ratio
            next_ranks.append(rank)

        total = sum(next_ranks)
        return [r / total for r in next_ranks]
