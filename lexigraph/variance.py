"""
Variance-based confidence filter.

A feature that matches evenly across every class says little about any one
of them. The filter normalizes a feature's per-class match counts into a
distribution and keeps the feature only when the sample standard deviation
of that distribution exceeds the confidence interval.
"""

import logging
import statistics
from typing import Dict, Iterable, List, Optional

from .config import VsmConfig
from .constants import DEFAULT_VARIANCE, HAS_CLASS
from .graph import Direction, GraphStore

logger = logging.getLogger(__name__)


def _distribution_spread(matches: List[float]) -> float:
    """
    Sample standard deviation of ``matches`` normalized by their sum.

    Returns DEFAULT_VARIANCE (1.0) for fewer than two values and 0.0 when
    all values are zero.
    """
    if len(matches) < 2:
        return DEFAULT_VARIANCE

    total = sum(matches)
    if total == 0:
        return 0.0

    return statistics.stdev(m / total for m in matches)


class VarianceConfidenceFilter:
    """
    Decides which features are confident enough to rank with.

    Variances are read fresh from the store on every call.
    """

    def __init__(self, store: GraphStore, config: Optional[VsmConfig] = None):
        self.store = store
        self.config = config or VsmConfig()

    def match_distribution(self, feature_id: int) -> float:
        """
        Spread of a feature's matches across the classes it belongs to.

        Returns:
            Sample standard deviation of the normalized match counts, or
            exactly 1.0 when the feature has fewer than two classes

        Raises:
            NodeNotFoundError: If ``feature_id`` does not exist
        """
        with self.store.read_transaction():
            edges = self.store.relationships(feature_id, HAS_CLASS, Direction.OUTGOING)
            matches = [float(edge.matches) for edge in edges]
        return _distribution_spread(matches)

    def is_confident(self, feature_id: int) -> bool:
        return self.match_distribution(feature_id) > self.config.confidence_interval

    def variances(self, feature_ids: Iterable[int]) -> Dict[int, float]:
        """
        Variance per feature, in input order, read under one transaction.

        Raises:
            NodeNotFoundError: If any feature does not exist
        """
        with self.store.read_transaction():
            return {feature_id: self.match_distribution(feature_id) for feature_id in feature_ids}

    def filter_confident(self, feature_ids: Iterable[int]) -> List[int]:
        """Confident subset of ``feature_ids``, preserving order."""
        kept = [f for f in feature_ids if self.is_confident(f)]
        logger.debug(f"Confidence filter kept {len(kept)} features")
        return kept
