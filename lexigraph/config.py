"""
Configuration Module
====================

Centralized configuration for the vector space model.

Example:
    from lexigraph import VectorSpaceModel, VsmConfig

    config = VsmConfig(pagerank_damping=0.9, pagerank_iterations=50)
    model = VectorSpaceModel(store, matcher, config=config)
"""

import math
from dataclasses import dataclass
from typing import Dict

from .constants import (
    AFFINITY_SCALE,
    CACHE_MAX_SIZE,
    CLASS_LABEL,
    CONFIDENCE_INTERVAL,
    FEATURE_LABEL,
    SIMILARITY_PRECISION,
)


@dataclass
class VsmConfig:
    """
    Configuration settings for the vector space model.

    Attributes:
        confidence_interval: Features whose match distribution variance is
            strictly above this value are kept as confident.
        pagerank_damping: Damping factor for affinity PageRank (0-1).
        pagerank_iterations: Hard cap on PageRank iterations. Guarantees
            termination on degenerate graphs.
        pagerank_tolerance: PageRank stops once the largest per-node change
            between iterations falls below this value.
        affinity_scale: Multiplier for blended input feature weights.
        similarity_precision: Decimal places kept in the similarity matrix.
        comparison_epsilon: Bucket width for ranking ties; scores (scaled
            x100) that round to the same multiple of it compare as equal.
        cache_max_size: Maximum number of memoized entries before LRU eviction.
        class_label: Node label of document classes.
        feature_label: Node label of features (patterns).
    """

    confidence_interval: float = CONFIDENCE_INTERVAL

    # PageRank settings
    pagerank_damping: float = 0.85
    pagerank_iterations: int = 100
    pagerank_tolerance: float = 1e-6

    # Vector and ranking settings
    affinity_scale: float = AFFINITY_SCALE
    similarity_precision: int = SIMILARITY_PRECISION
    comparison_epsilon: float = 1e-9

    # Cache settings
    cache_max_size: int = CACHE_MAX_SIZE

    # Graph vocabulary
    class_label: str = CLASS_LABEL
    feature_label: str = FEATURE_LABEL

    def __post_init__(self):
        """Validate configuration values after initialization."""
        self._validate()

    def _validate(self):
        """
        Validate configuration values are within acceptable ranges.

        Raises:
            ValueError: If any configuration value is invalid.
        """
        for name in ('pagerank_iterations', 'similarity_precision', 'cache_max_size'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{name} must be an integer, got {type(value).__name__}")

        if math.isnan(self.confidence_interval) or self.confidence_interval < 0:
            raise ValueError(
                f"confidence_interval must be non-negative, got {self.confidence_interval}"
            )

        if not (0 < self.pagerank_damping < 1):
            raise ValueError(
                f"pagerank_damping must be between 0 and 1, got {self.pagerank_damping}"
            )
        if self.pagerank_iterations < 1:
            raise ValueError(
                f"pagerank_iterations must be at least 1, got {self.pagerank_iterations}"
            )
        if self.pagerank_tolerance <= 0:
            raise ValueError(
                f"pagerank_tolerance must be positive, got {self.pagerank_tolerance}"
            )

        if math.isnan(self.affinity_scale) or math.isinf(self.affinity_scale):
            raise ValueError(
                f"affinity_scale must be a finite number, got {self.affinity_scale}"
            )
        if self.similarity_precision < 0:
            raise ValueError(
                f"similarity_precision must be non-negative, got {self.similarity_precision}"
            )
        if self.comparison_epsilon < 0:
            raise ValueError(
                f"comparison_epsilon must be non-negative, got {self.comparison_epsilon}"
            )

        if self.cache_max_size < 1:
            raise ValueError(
                f"cache_max_size must be at least 1, got {self.cache_max_size}"
            )

        if not self.class_label or not self.feature_label:
            raise ValueError("class_label and feature_label must be non-empty strings")

    def copy(self) -> 'VsmConfig':
        """
        Create a copy of this configuration.

        Returns:
            A new VsmConfig instance with the same values.
        """
        return VsmConfig(**self.to_dict())

    def to_dict(self) -> Dict:
        """
        Convert configuration to a dictionary for serialization.

        Returns:
            Dictionary representation of the configuration.
        """
        return {
            'confidence_interval': self.confidence_interval,
            'pagerank_damping': self.pagerank_damping,
            'pagerank_iterations': self.pagerank_iterations,
            'pagerank_tolerance': self.pagerank_tolerance,
            'affinity_scale': self.affinity_scale,
            'similarity_precision': self.similarity_precision,
            'comparison_epsilon': self.comparison_epsilon,
            'cache_max_size': self.cache_max_size,
            'class_label': self.class_label,
            'feature_label': self.feature_label,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'VsmConfig':
        """
        Create configuration from a dictionary.

        Args:
            data: Dictionary with configuration values.

        Returns:
            VsmConfig instance.
        """
        return cls(**data)


def get_default_config() -> VsmConfig:
    """
    Get a new instance of the default configuration.

    Returns:
        VsmConfig with default values.
    """
    return VsmConfig()
