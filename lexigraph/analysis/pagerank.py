"""
Weighted PageRank over the feature affinity graph.

Contains:
- _pagerank_iterate: Power-iteration loop
- _pagerank_core: Pure algorithm on an adjacency map, for unit testing
- PageRankEngine: Configured entry point used by the vector space model
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Mapping, Optional, Tuple

from ..config import VsmConfig

logger = logging.getLogger(__name__)

Adjacency = Mapping[Hashable, Mapping[Hashable, float]]


@dataclass
class PageRankResult:
    """
    Outcome of one PageRank run.

    Attributes:
        scores: Node id -> rank. Ranks sum to 1 for a non-empty graph.
        iterations_run: Iterations executed before stopping
        converged: False when the iteration cap was reached first
    """
    scores: Dict[Hashable, float] = field(default_factory=dict)
    iterations_run: int = 0
    converged: bool = True


def _pagerank_iterate(
    nodes: List[Hashable],
    incoming: Dict[Hashable, List[Tuple[Hashable, float]]],
    outgoing_sum: Dict[Hashable, float],
    pagerank: Dict[Hashable, float],
    damping: float,
    iterations: int,
    tolerance: float
) -> Tuple[Dict[Hashable, float], int, bool]:
    """
    Core PageRank iteration loop.

    Nodes without outgoing weight (dangling) hand their rank to every node
    equally, so total rank stays 1.

    Args:
        nodes: Node ids to rank
        incoming: Map of node_id -> list of (source_id, weight) tuples
        outgoing_sum: Map of node_id -> sum of outgoing edge weights
        pagerank: Initial ranks
        damping: Probability of following an edge
        iterations: Maximum iterations
        tolerance: Convergence threshold on the largest per-node change

    Returns:
        Tuple of (final ranks, iterations run, converged)
    """
    n = len(nodes)
    dangling = [node for node in nodes if outgoing_sum.get(node, 0) <= 0]
    iterations_run = 0
    converged = False

    for iteration in range(iterations):
        iterations_run = iteration + 1
        dangling_share = sum(pagerank[node] for node in dangling) / n
        new_pagerank = {}
        max_diff = 0.0

        for node in nodes:
            incoming_sum = 0.0
            for source_id, weight in incoming.get(node, []):
                incoming_sum += pagerank[source_id] * weight / outgoing_sum[source_id]

            new_rank = (1 - damping) / n + damping * (incoming_sum + dangling_share)
            new_pagerank[node] = new_rank
            max_diff = max(max_diff, abs(new_rank - pagerank[node]))

        pagerank = new_pagerank

        if max_diff < tolerance:
            converged = True
            break

    return pagerank, iterations_run, converged


def _pagerank_core(
    graph: Adjacency,
    damping: float = 0.85,
    iterations: int = 100,
    tolerance: float = 1e-6
) -> PageRankResult:
    """
    Pure weighted PageRank on an adjacency map.

    Args:
        graph: Mapping of node_id -> {neighbor_id: weight}. Every node to be
               ranked must be a key, even with an empty neighbor map. Edges to
               ids that are not keys are ignored, as are non-positive weights.
        damping: Damping factor, must be in (0, 1)
        iterations: Maximum number of iterations
        tolerance: Convergence threshold

    Returns:
        PageRankResult with a score per key of ``graph``

    Raises:
        ValueError: If damping is not in (0, 1) or iterations < 1

    Example:
        >>> graph = {1: {2: 1}, 2: {1: 1, 3: 1}, 3: {1: 1}}
        >>> scores = _pagerank_core(graph).scores
        >>> assert scores[1] > scores[3]
    """
    if not (0 < damping < 1):
        raise ValueError(f"damping must be between 0 and 1, got {damping}")
    if iterations < 1:
        raise ValueError(f"iterations must be at least 1, got {iterations}")

    n = len(graph)
    if n == 0:
        return PageRankResult()

    nodes = list(graph.keys())
    pagerank = {node: 1.0 / n for node in nodes}

    incoming: Dict[Hashable, List[Tuple[Hashable, float]]] = defaultdict(list)
    outgoing_sum: Dict[Hashable, float] = defaultdict(float)

    for source, edges in graph.items():
        for target, weight in edges.items():
            if target in graph and weight > 0:
                incoming[target].append((source, float(weight)))
                outgoing_sum[source] += weight

    pagerank, iterations_run, converged = _pagerank_iterate(
        nodes=nodes,
        incoming=incoming,
        outgoing_sum=outgoing_sum,
        pagerank=pagerank,
        damping=damping,
        iterations=iterations,
        tolerance=tolerance
    )

    return PageRankResult(scores=pagerank, iterations_run=iterations_run, converged=converged)


class PageRankEngine:
    """
    PageRank with damping, tolerance and iteration cap taken from VsmConfig.
    """

    def __init__(self, config: Optional[VsmConfig] = None):
        self.config = config or VsmConfig()

    def rank_with_stats(self, adjacency: Adjacency) -> PageRankResult:
        result = _pagerank_core(
            adjacency,
            damping=self.config.pagerank_damping,
            iterations=self.config.pagerank_iterations,
            tolerance=self.config.pagerank_tolerance
        )
        if result.converged:
            logger.debug(
                f"PageRank converged in {result.iterations_run} iterations "
                f"over {len(result.scores)} nodes"
            )
        else:
            logger.warning(
                f"PageRank stopped at the {self.config.pagerank_iterations} iteration cap "
                f"without converging ({len(result.scores)} nodes)"
            )
        return result

    def rank(self, adjacency: Adjacency) -> Dict[Hashable, float]:
        """Score every node of ``adjacency``; see _pagerank_core."""
        return self.rank_with_stats(adjacency).scores
