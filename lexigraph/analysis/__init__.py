"""
Analysis Module
===============

Graph algorithms over the feature affinity graph.

Contains:
- PageRank for scoring features by mutual affinity
"""

from .pagerank import (
    PageRankEngine,
    PageRankResult,
    _pagerank_core,
)

__all__ = [
    'PageRankEngine',
    'PageRankResult',
    '_pagerank_core',
]
