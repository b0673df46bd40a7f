"""
Weight vectors over the global feature index.

All vectors built here are aligned to one ordering, the feature index: every
confident feature in the corpus, highest ``threshold`` first. Position i of
any vector always refers to the same feature, so vectors from different
classes (or from input text) can be compared directly.

Vector variants:
- frequency: class match count per feature
- binary: 1.0 where the class observed the feature
- tfidf: TF-IDF weight per feature
- input: blended affinity weight for features matched in raw text
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .affinity import AffinityGraphBuilder
from .analysis.pagerank import PageRankEngine
from .cache import CacheKind, MemoizationCache
from .config import VsmConfig
from .constants import HAS_CLASS, PROP_NAME, PROP_THRESHOLD
from .corpus import CorpusStatistics
from .errors import ClassNotFoundError
from .graph import Direction, GraphStore, PatternMatcher
from .results import FeatureFrequency
from .variance import VarianceConfidenceFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassFeature:
    """A confident feature observed in a class, with its match count."""
    feature: int
    frequency: int


@dataclass(frozen=True)
class ClassEntry:
    """A class node id with its confident features."""
    class_id: int
    features: List[ClassFeature]


class VectorBuilder:
    """
    Builds aligned weight vectors for classes and input text.

    The feature index and class feature index are memoized in the cache.
    Input vectors are rebuilt on every call.
    """

    def __init__(
        self,
        store: GraphStore,
        matcher: PatternMatcher,
        statistics: CorpusStatistics,
        variance_filter: VarianceConfidenceFilter,
        affinity: AffinityGraphBuilder,
        pagerank: PageRankEngine,
        cache: MemoizationCache,
        config: Optional[VsmConfig] = None
    ):
        self.store = store
        self.matcher = matcher
        self.statistics = statistics
        self.variance_filter = variance_filter
        self.affinity = affinity
        self.pagerank = pagerank
        self.cache = cache
        self.config = config or VsmConfig()

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def feature_index_list(self) -> List[int]:
        """
        Global ordering of confident features.

        Feature nodes sorted by descending ``threshold`` (missing counts as
        0; ties keep store order), then filtered by the confidence filter.
        """
        return self.cache.get_or_compute(
            CacheKind.GLOBAL_FEATURE_INDEX, None, self._load_feature_index_list
        )

    def _load_feature_index_list(self) -> List[int]:
        with self.store.read_transaction():
            patterns = self.store.nodes_with_label(self.config.feature_label)
        patterns = sorted(patterns, key=lambda node: node.get(PROP_THRESHOLD) or 0, reverse=True)
        index = self.variance_filter.filter_confident(node.id for node in patterns)
        logger.debug(f"Feature index: {len(index)} of {len(patterns)} features confident")
        return index

    def class_feature_index(self) -> Dict[str, ClassEntry]:
        """
        Node id and confident features of every class, keyed by class name.

        Each class lists its features in the order the store returns the
        class's incoming HAS_CLASS edges. When two class nodes share a name,
        the first one in store order wins, matching ``GraphStore.find_node``.
        """
        return self.cache.get_or_compute(
            CacheKind.CLASS_FEATURE_INDEX, None, self._load_class_feature_index
        )

    def _load_class_feature_index(self) -> Dict[str, ClassEntry]:
        index: Dict[str, ClassEntry] = {}
        with self.store.read_transaction():
            for class_node in self.store.nodes_with_label(self.config.class_label):
                name = class_node.get(PROP_NAME)
                if name in index:
                    logger.warning(
                        f"Class {class_node.id} shares name {name!r} with class "
                        f"{index[name].class_id}; ignoring it"
                    )
                    continue
                features = []
                for edge in self.store.relationships(class_node.id, HAS_CLASS, Direction.INCOMING):
                    if self.variance_filter.is_confident(edge.start_id):
                        features.append(ClassFeature(feature=edge.start_id, frequency=edge.matches))
                index[name] = ClassEntry(class_id=class_node.id, features=features)
        return index

    def _class_entry(self, class_name: str) -> ClassEntry:
        index = self.class_feature_index()
        if class_name not in index:
            raise ClassNotFoundError(f"Class not found: {class_name}", class_name=class_name)
        return index[class_name]

    def class_features(self, class_name: str) -> List[ClassFeature]:
        """
        Confident features of one class.

        Raises:
            ClassNotFoundError: If no class has this name
        """
        return self._class_entry(class_name).features

    def class_id(self, class_name: str) -> int:
        """
        Node id of a class.

        Raises:
            ClassNotFoundError: If no class has this name
        """
        return self._class_entry(class_name).class_id

    # ------------------------------------------------------------------
    # Class vectors
    # ------------------------------------------------------------------

    def frequency_vector(self, class_name: str, index: Optional[List[int]] = None) -> List[float]:
        """Match count of each indexed feature in the class, 0.0 where absent."""
        index = self.feature_index_list() if index is None else index
        frequencies = {cf.feature: cf.frequency for cf in self.class_features(class_name)}
        return [float(frequencies[i]) if i in frequencies else 0.0 for i in index]

    def binary_vector(self, class_name: str, index: Optional[List[int]] = None) -> List[float]:
        """1.0 for each indexed feature present in the class, else 0.0."""
        index = self.feature_index_list() if index is None else index
        present = {cf.feature for cf in self.class_features(class_name)}
        return [1.0 if i in present else 0.0 for i in index]

    def tfidf_vector(self, class_name: str, index: Optional[List[int]] = None) -> List[float]:
        """TF-IDF of each indexed feature present in the class, else 0.0."""
        index = self.feature_index_list() if index is None else index
        entry = self._class_entry(class_name)
        present = {cf.feature for cf in entry.features}
        return [self.statistics.tfidf(i, entry.class_id) if i in present else 0.0 for i in index]

    # ------------------------------------------------------------------
    # Input text
    # ------------------------------------------------------------------

    def match_features(self, text: str) -> List[FeatureFrequency]:
        """
        Features matched in ``text`` with their counts and variances.

        Order follows the matcher's output.
        """
        matches = self.matcher.match_features(text)
        variances = self.variance_filter.variances(matches)
        return [
            FeatureFrequency(feature=feature_id, frequency=count, variance=variances[feature_id])
            for feature_id, count in matches.items()
        ]

    def input_feature_vector(self, text: str, index: Optional[List[int]] = None) -> List[float]:
        """
        Weight vector for raw text.

        Matched features above the confidence interval are ranked with
        PageRank over their mutual affinity graph. Each such feature gets
        ``((pagerank + variance) / 2) * affinity_scale``; every other
        position is 0.0.
        """
        index = self.feature_index_list() if index is None else index
        matched = self.match_features(text)
        variances = {
            match.feature: match.variance for match in matched
            if match.variance > self.config.confidence_interval
        }
        scores = self.pagerank.rank(self.affinity.build(variances))

        vector = [
            ((scores[i] + variances[i]) / 2.0) * self.config.affinity_scale if i in variances else 0.0
            for i in index
        ]
        logger.debug(f"Input vector: {len(variances)} confident of {len(matched)} matched features")
        return vector
