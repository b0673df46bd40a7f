"""
Pytest Configuration and Shared Fixtures
=========================================

This module configures pytest for the lexigraph test suite.
It provides:
- Path setup for importing lexigraph modules
- Custom markers for test categorization
- Shared fixtures available to all tests

Test Categories (markers):
- @pytest.mark.unit: Fast, isolated unit tests
- @pytest.mark.integration: Component interaction tests
- @pytest.mark.slow: Tests that take > 5 seconds

Usage:
    # Run only unit tests
    pytest -m unit

    # Run everything except slow tests
    pytest -m "not slow"
"""

import os
import sys

import pytest


# =============================================================================
# PATH SETUP
# =============================================================================

# Ensure the lexigraph package is importable from any test directory
_repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _repo_root not in sys.path:
    sys.path.insert(0, _repo_root)


# =============================================================================
# PYTEST MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Fast, isolated unit tests (< 1s each)"
    )
    config.addinivalue_line(
        "markers", "integration: Component interaction tests"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take > 5 seconds"
    )


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def sports_store():
    """
    Function-scoped store loaded with the sports corpus.

    Fresh per test, so tests may mutate it.
    """
    from tests.fixtures.sports_corpus import build_sports_store
    return build_sports_store()


@pytest.fixture
def matcher():
    """Pattern matcher that knows the sample texts."""
    from tests.fixtures.sports_corpus import SAMPLE_TEXTS, StaticPatternMatcher
    return StaticPatternMatcher(SAMPLE_TEXTS)


@pytest.fixture
def model(sports_store, matcher):
    """VectorSpaceModel over the sports corpus, detached after the test."""
    from lexigraph import VectorSpaceModel
    vsm = VectorSpaceModel(sports_store, matcher)
    yield vsm
    vsm.close()


@pytest.fixture
def cache():
    """Fresh memoization cache with a small bound."""
    from lexigraph import MemoizationCache
    return MemoizationCache(max_size=1000)


# =============================================================================
# TEST COLLECTION HOOKS
# =============================================================================

def pytest_collection_modifyitems(config, items):
    """
    Automatically mark tests based on their location.

    Tests in tests/unit/ get @pytest.mark.unit, etc.
    """
    for item in items:
        test_path = str(item.fspath)

        if '/unit/' in test_path or '\\unit\\' in test_path:
            item.add_marker(pytest.mark.unit)
        elif '/integration/' in test_path or '\\integration\\' in test_path:
            item.add_marker(pytest.mark.integration)
