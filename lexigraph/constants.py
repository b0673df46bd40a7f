"""
Centralized constants for lexigraph.

Single source of truth for the graph vocabulary (labels, relationship types,
property names) and the fixed thresholds shared by the statistics modules.
"""

# =============================================================================
# GRAPH VOCABULARY
# =============================================================================

CLASS_LABEL: str = 'Class'
FEATURE_LABEL: str = 'Pattern'

HAS_CLASS: str = 'HAS_CLASS'
HAS_AFFINITY: str = 'HAS_AFFINITY'

PROP_MATCHES: str = 'matches'
PROP_NAME: str = 'name'
PROP_PHRASE: str = 'phrase'
PROP_THRESHOLD: str = 'threshold'

# =============================================================================
# STATISTICS
# =============================================================================

# A feature is confident when its match distribution variance exceeds this
CONFIDENCE_INTERVAL: float = 0.15

# Variance reported for features connected to fewer than two classes.
# Maximal, so such features always pass the confidence filter.
DEFAULT_VARIANCE: float = 1.0

# Multiplier applied to blended (pagerank + variance) / 2 input weights
AFFINITY_SCALE: float = 10.0

# Decimal places kept in the similarity matrix
SIMILARITY_PRECISION: int = 5

# Upper bound on cached entries; large enough to be unbounded in practice
CACHE_MAX_SIZE: int = 20_000_000
