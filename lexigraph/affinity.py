"""
Restricted affinity graph construction.

Features that co-occur are joined by HAS_AFFINITY edges weighted by
``matches``. For ranking, only the edges among a candidate set matter, so the
builder cuts the affinity graph down to that set.
"""

import logging
from typing import Dict, Iterable

from .constants import HAS_AFFINITY
from .graph import Direction, GraphStore

logger = logging.getLogger(__name__)


class AffinityGraphBuilder:
    """Builds per-query adjacency maps over a candidate feature set."""

    def __init__(self, store: GraphStore):
        self.store = store

    def build(self, candidates: Iterable[int]) -> Dict[int, Dict[int, int]]:
        """
        Adjacency among ``candidates`` over HAS_AFFINITY edges in both directions.

        Every candidate appears as a key, with an empty neighbor map when no
        qualifying edge exists. When two edges join the same pair, the one
        traversed last wins.

        Returns:
            Mapping of feature id -> {neighbor id: matches}

        Raises:
            NodeNotFoundError: If a candidate does not exist
        """
        candidate_list = list(dict.fromkeys(candidates))
        candidate_set = set(candidate_list)
        adjacency: Dict[int, Dict[int, int]] = {}

        with self.store.read_transaction():
            for feature_id in candidate_list:
                neighbors: Dict[int, int] = {}
                for edge in self.store.relationships(feature_id, HAS_AFFINITY, Direction.BOTH):
                    other = edge.other(feature_id)
                    if other in candidate_set:
                        neighbors[other] = edge.matches
                adjacency[feature_id] = neighbors

        edge_count = sum(len(neighbors) for neighbors in adjacency.values())
        logger.debug(f"Affinity graph: {len(adjacency)} nodes, {edge_count} edges")
        return adjacency
