"""
Test Fixtures
=============

Shared test data and utilities used across test categories.

Available fixtures:
- sports_corpus: Three-class corpus with hand-checked statistics

Usage:
    from tests.fixtures.sports_corpus import build_sports_store, StaticPatternMatcher
"""

from .sports_corpus import (
    FEATURE_INDEX,
    SAMPLE_TEXTS,
    SPORTS_CORPUS,
    StaticPatternMatcher,
    build_sports_store,
)

__all__ = [
    'FEATURE_INDEX',
    'SAMPLE_TEXTS',
    'SPORTS_CORPUS',
    'StaticPatternMatcher',
    'build_sports_store',
]
