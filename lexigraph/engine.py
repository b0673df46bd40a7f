"""
Vector space model facade.

VectorSpaceModel wires the statistics components to one store, one pattern
matcher and one memoization cache, and exposes the public queries:

- feature_frequency_map: features matched in text, by frequency
- phrases: matched phrases with variance and affinity
- phrases_for_class: a class's phrases, by affinity
- cosine_similarity_matrix: pairwise class similarity
- similar_document_map_for_vector: classes similar to raw text
- similar_document_map_for_class: classes similar to another class

Example:
    store = InMemoryGraphStore.from_dict(corpus)
    model = VectorSpaceModel(store, matcher)
    for match in model.similar_document_map_for_vector("scored in extra time").classes:
        print(match.class_name, match.similarity)
"""

import logging
from typing import Any, Dict, List, Optional

from .affinity import AffinityGraphBuilder
from .analysis.pagerank import PageRankEngine
from .cache import CacheInvalidator, MemoizationCache
from .config import VsmConfig
from .constants import PROP_PHRASE
from .corpus import CorpusStatistics
from .graph import GraphStore, NodePropertyCache, PatternMatcher, StoreNodePropertyCache
from .observability import MetricsCollector, timed
from .results import (
    FeatureFrequency,
    PhraseAffinity,
    PhraseMatch,
    RankedList,
    SimilarityMatrix,
    SimilarityResult,
)
from .similarity import (
    cosine_similarity,
    order_class_names,
    rank_by_frequency,
    rank_by_score,
    similar_classes,
)
from .validation import validate_non_empty_string, validate_string
from .variance import VarianceConfidenceFilter
from .vectors import VectorBuilder

logger = logging.getLogger(__name__)


class VectorSpaceModel:
    """
    Read-only classification and similarity queries over a feature graph.

    Attributes:
        store: Graph the corpus lives in
        config: Model configuration
        cache: Memoization cache shared by every component
        statistics: CorpusStatistics
        variance_filter: VarianceConfidenceFilter
        affinity: AffinityGraphBuilder
        pagerank: PageRankEngine
        vectors: VectorBuilder
    """

    def __init__(
        self,
        store: GraphStore,
        matcher: PatternMatcher,
        config: Optional[VsmConfig] = None,
        cache: Optional[MemoizationCache] = None,
        property_cache: Optional[NodePropertyCache] = None,
        invalidate_on_mutation: bool = True,
        enable_metrics: bool = False
    ):
        """
        Args:
            store: Graph to read
            matcher: Pattern matcher turning text into feature counts
            config: Configuration; defaults to VsmConfig()
            cache: Memoization cache; a private one is created when None
            property_cache: Resolver for phrase display strings; defaults to
                a StoreNodePropertyCache over ``store``
            invalidate_on_mutation: Subscribe to store mutations and drop
                stale cache entries. When False, cached statistics live until
                evicted or invalidated by hand.
            enable_metrics: Record query timings and cache counters
        """
        self.store = store
        self.matcher = matcher
        self.config = config or VsmConfig()
        self._metrics = MetricsCollector(enabled=enable_metrics)
        self.cache = cache if cache is not None else MemoizationCache(
            max_size=self.config.cache_max_size, metrics=self._metrics
        )
        self.property_cache = property_cache if property_cache is not None else StoreNodePropertyCache(store)

        self.statistics = CorpusStatistics(store, self.cache, self.config)
        self.variance_filter = VarianceConfidenceFilter(store, self.config)
        self.affinity = AffinityGraphBuilder(store)
        self.pagerank = PageRankEngine(self.config)
        self.vectors = VectorBuilder(
            store=store,
            matcher=matcher,
            statistics=self.statistics,
            variance_filter=self.variance_filter,
            affinity=self.affinity,
            pagerank=self.pagerank,
            cache=self.cache,
            config=self.config
        )

        self.invalidator: Optional[CacheInvalidator] = None
        if invalidate_on_mutation:
            self.invalidator = CacheInvalidator(
                self.cache,
                class_label=self.config.class_label,
                feature_label=self.config.feature_label,
                property_cache=self.property_cache if hasattr(self.property_cache, 'invalidate') else None
            )
            self.invalidator.attach(store)

    def close(self) -> None:
        """Stop listening to store mutations."""
        if self.invalidator is not None:
            self.invalidator.detach()

    # ------------------------------------------------------------------
    # Feature and phrase rankings
    # ------------------------------------------------------------------

    @timed("feature_frequency_map")
    def feature_frequency_map(self, text: str) -> List[FeatureFrequency]:
        """
        Features matched in ``text``, most frequent first.

        Returns:
            FeatureFrequency records (feature id, frequency, variance)

        Raises:
            ValueError: If text is not a string
        """
        validate_string(text, "text")
        return rank_by_frequency(self.vectors.match_features(text))

    @timed("phrases")
    def phrases(self, text: str) -> List[PhraseMatch]:
        """
        Phrases matched in ``text``, most frequent first.

        Affinity is the PageRank of each phrase within the graph of all
        matched phrases, without any confidence filtering.

        Raises:
            ValueError: If text is not a string
        """
        validate_string(text, "text")
        matched = self.vectors.match_features(text)
        scores = self.pagerank.rank(self.affinity.build(match.feature for match in matched))

        records = [
            PhraseMatch(
                feature=self._phrase(match.feature),
                frequency=match.frequency,
                variance=match.variance,
                affinity=scores[match.feature]
            )
            for match in matched
        ]
        return rank_by_frequency(records)

    @timed("phrases_for_class")
    def phrases_for_class(self, class_name: str) -> RankedList:
        """
        A class's confident phrases, highest affinity first.

        Affinity is ``(pagerank + variance) / 2`` where PageRank runs over
        the affinity graph among the class's confident features.

        Returns:
            RankedList of PhraseAffinity records

        Raises:
            ValueError: If class_name is empty
            ClassNotFoundError: If no class has this name
        """
        validate_non_empty_string(class_name, "class_name")
        feature_ids = [cf.feature for cf in self.vectors.class_features(class_name)]
        scores = self.pagerank.rank(self.affinity.build(feature_ids))
        variances = self.variance_filter.variances(feature_ids)

        records = [
            PhraseAffinity(
                feature=self._phrase(feature_id),
                affinity=(scores[feature_id] + variances[feature_id]) / 2.0
            )
            for feature_id in feature_ids
        ]
        return rank_by_score(records, lambda record: record.affinity, epsilon=self.config.comparison_epsilon)

    def _phrase(self, feature_id: int) -> Any:
        return self.property_cache.resolve(feature_id).get(PROP_PHRASE)

    # ------------------------------------------------------------------
    # Similarity queries
    # ------------------------------------------------------------------

    @timed("cosine_similarity_matrix")
    def cosine_similarity_matrix(self) -> SimilarityMatrix:
        """
        Pairwise cosine similarity of every class's binary feature vector.

        Rows and columns follow case-insensitive class name order and values
        are rounded to ``config.similarity_precision`` places. A class with no
        confident features has an all-zero vector, so its row and column are
        NaN.
        """
        index = self.vectors.feature_index_list()
        names = order_class_names(self.vectors.class_feature_index().keys())
        class_vectors = [self.vectors.binary_vector(name, index) for name in names]

        precision = self.config.similarity_precision
        rows = [
            [round(cosine_similarity(v1, v2), precision) for v2 in class_vectors]
            for v1 in class_vectors
        ]
        return SimilarityMatrix(classes=names, vectors=rows)

    @timed("similar_document_map_for_vector")
    def similar_document_map_for_vector(self, text: str) -> SimilarityResult:
        """
        Classes whose TF-IDF vectors resemble the input text's vector.

        Raises:
            ValueError: If text is not a string
        """
        validate_string(text, "text")
        index = self.vectors.feature_index_list()
        query = self.vectors.input_feature_vector(text, index)
        class_vectors = {
            name: self.vectors.tfidf_vector(name, index)
            for name in self.vectors.class_feature_index()
        }
        return similar_classes(query, class_vectors, epsilon=self.config.comparison_epsilon)

    @timed("similar_document_map_for_class")
    def similar_document_map_for_class(self, class_name: str) -> SimilarityResult:
        """
        Other classes resembling ``class_name``.

        The class's frequency vector is compared with every other class's
        binary vector. The class itself never appears in the result.

        Raises:
            ValueError: If class_name is empty
            ClassNotFoundError: If no class has this name
        """
        validate_non_empty_string(class_name, "class_name")
        index = self.vectors.feature_index_list()
        query = self.vectors.frequency_vector(class_name, index)
        class_vectors = {
            name: self.vectors.binary_vector(name, index)
            for name in self.vectors.class_feature_index()
            if name != class_name
        }
        return similar_classes(
            query, class_vectors, exclude=class_name, epsilon=self.config.comparison_epsilon
        )

    # ------------------------------------------------------------------
    # Cache and metrics
    # ------------------------------------------------------------------

    def invalidate_cache(self) -> int:
        """
        Drop every memoized statistic.

        Returns:
            Number of entries removed
        """
        return self.cache.clear()

    def cache_stats(self) -> Dict[str, int]:
        return self.cache.stats()

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Timing and counter statistics for every recorded operation."""
        return self._metrics.get_all_stats()

    def get_metrics_summary(self) -> str:
        return self._metrics.get_summary()

    def reset_metrics(self) -> None:
        self._metrics.reset()
