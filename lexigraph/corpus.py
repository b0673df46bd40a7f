"""
Corpus statistics: term frequency, document frequency, IDF and TF-IDF.

A "document" is a Class node and a "term" is a feature (Pattern node). The
HAS_CLASS edge from a feature to a class carries the term frequency in its
``matches`` property.

Contains:
- _idf_core: Pure IDF arithmetic for unit testing
- CorpusStatistics: Store-backed, memoized statistics
"""

import logging
import math
from typing import Dict, Optional

from .cache import CacheKind, MemoizationCache
from .config import VsmConfig
from .constants import HAS_CLASS
from .errors import FeatureNotObservedError
from .graph import Direction, GraphStore

logger = logging.getLogger(__name__)


def _idf_core(document_size: int, document_frequency: int) -> float:
    """
    Inverse document frequency ``ln(N / df)``.

    Degenerate inputs are not clamped: ``df == 0`` gives +inf (NaN when the
    corpus is empty too), and ``N == 0`` with ``df > 0`` gives -inf.

    Args:
        document_size: Number of documents (classes) in the corpus
        document_frequency: Number of documents containing the term

    Returns:
        IDF value

    Example:
        >>> _idf_core(10, 10)
        0.0
        >>> _idf_core(10, 1) > _idf_core(10, 5)
        True
    """
    if document_frequency == 0:
        return math.inf if document_size > 0 else math.nan
    if document_size == 0:
        return -math.inf
    return math.log(document_size / document_frequency)


class CorpusStatistics:
    """
    Term and document frequency statistics over the class graph.

    Every store read is memoized in the injected MemoizationCache, so repeated
    calls are served from memory until the cache is invalidated.

    Attributes:
        store: The graph to read
        cache: Memoization cache shared with the other components
        config: Model configuration (provides the class label)
    """

    def __init__(
        self,
        store: GraphStore,
        cache: MemoizationCache,
        config: Optional[VsmConfig] = None
    ):
        self.store = store
        self.cache = cache
        self.config = config or VsmConfig()

    def term_frequency_map(self, class_id: int) -> Dict[int, int]:
        """
        Map of feature id -> match count for one class.

        Built from the class's incoming HAS_CLASS edges.

        Raises:
            NodeNotFoundError: If ``class_id`` does not exist
        """
        return self.cache.get_or_compute(
            CacheKind.TERM_FREQUENCY_MAP,
            class_id,
            lambda: self._load_term_frequency_map(class_id)
        )

    def _load_term_frequency_map(self, class_id: int) -> Dict[int, int]:
        with self.store.read_transaction():
            edges = self.store.relationships(class_id, HAS_CLASS, Direction.INCOMING)
            return {edge.start_id: edge.matches for edge in edges}

    def term_frequency(self, feature_id: int, class_id: int) -> int:
        """
        Match count of a feature within a class.

        Raises:
            FeatureNotObservedError: If the class never observed the feature.
                Callers are expected to pass only features of that class.
        """
        frequencies = self.term_frequency_map(class_id)
        if feature_id not in frequencies:
            raise FeatureNotObservedError(
                f"Feature {feature_id} was never observed in class {class_id}",
                feature_id=feature_id,
                class_id=class_id
            )
        return frequencies[feature_id]

    def document_size(self) -> int:
        """Number of class nodes in the corpus."""
        return self.cache.get_or_compute(CacheKind.DOCUMENT_SIZE, None, self._count_classes)

    def _count_classes(self) -> int:
        with self.store.read_transaction():
            return len(self.store.nodes_with_label(self.config.class_label))

    def document_frequency(self, feature_id: int) -> int:
        """
        Number of classes a feature is connected to.

        Raises:
            NodeNotFoundError: If ``feature_id`` does not exist
        """
        return self.cache.get_or_compute(
            CacheKind.FEATURE_DOCUMENT_SIZE,
            feature_id,
            lambda: self._count_feature_classes(feature_id)
        )

    def _count_feature_classes(self, feature_id: int) -> int:
        with self.store.read_transaction():
            edges = self.store.relationships(feature_id, HAS_CLASS, Direction.OUTGOING)
            return len({edge.end_id for edge in edges})

    def idf(self, feature_id: int) -> float:
        """Inverse document frequency of a feature. See _idf_core."""
        return _idf_core(self.document_size(), self.document_frequency(feature_id))

    def tfidf(self, feature_id: int, class_id: int) -> float:
        """
        TF-IDF weight of a feature within a class.

        Raises:
            FeatureNotObservedError: If the class never observed the feature
        """
        return self.term_frequency(feature_id, class_id) * self.idf(feature_id)
