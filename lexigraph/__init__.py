"""
lexigraph
=========

Statistics and ranking core for graph-backed text classification.

Given a corpus of lexical features (Pattern nodes) grouped into document
classes (Class nodes) in a property graph, lexigraph computes TF-IDF weights,
filters features by how unevenly they match across classes, scores features
by PageRank over their affinity graph, and ranks classes by cosine similarity.

Example:
    from lexigraph import InMemoryGraphStore, VectorSpaceModel

    store = InMemoryGraphStore.from_dict(corpus)
    model = VectorSpaceModel(store, matcher)
    result = model.similar_document_map_for_class("Sports")
    print(result.to_dict())
"""

from .config import VsmConfig, get_default_config
from .errors import (
    LexigraphError,
    VectorLengthMismatchError,
    FeatureNotObservedError,
    NodeNotFoundError,
    ClassNotFoundError,
    CacheTypeError,
)
from .graph import (
    Direction,
    Node,
    Relationship,
    GraphMutation,
    MutationKind,
    GraphStore,
    PatternMatcher,
    NodePropertyCache,
    StoreNodePropertyCache,
    InMemoryGraphStore,
)
from .cache import CacheKind, MemoizationCache, CacheInvalidator
from .corpus import CorpusStatistics
from .variance import VarianceConfidenceFilter
from .affinity import AffinityGraphBuilder
from .analysis import PageRankEngine, PageRankResult
from .vectors import VectorBuilder, ClassEntry, ClassFeature
from .similarity import cosine_similarity
from .results import (
    FeatureFrequency,
    PhraseAffinity,
    PhraseMatch,
    ClassSimilarity,
    RankedList,
    SimilarityResult,
    SimilarityMatrix,
)
from .engine import VectorSpaceModel
from .async_api import AsyncVectorSpaceModel

__version__ = "1.0.0"
__all__ = [
    "VectorSpaceModel",
    "AsyncVectorSpaceModel",
    "VsmConfig",
    "get_default_config",
    # Errors
    "LexigraphError",
    "VectorLengthMismatchError",
    "FeatureNotObservedError",
    "NodeNotFoundError",
    "ClassNotFoundError",
    "CacheTypeError",
    # Graph collaborators
    "Direction",
    "Node",
    "Relationship",
    "GraphMutation",
    "MutationKind",
    "GraphStore",
    "PatternMatcher",
    "NodePropertyCache",
    "StoreNodePropertyCache",
    "InMemoryGraphStore",
    # Components
    "CacheKind",
    "MemoizationCache",
    "CacheInvalidator",
    "CorpusStatistics",
    "VarianceConfidenceFilter",
    "AffinityGraphBuilder",
    "PageRankEngine",
    "PageRankResult",
    "VectorBuilder",
    "ClassEntry",
    "ClassFeature",
    "cosine_similarity",
    # Results
    "FeatureFrequency",
    "PhraseAffinity",
    "PhraseMatch",
    "ClassSimilarity",
    "RankedList",
    "SimilarityResult",
    "SimilarityMatrix",
]
