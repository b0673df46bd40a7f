"""
Cosine similarity and result ranking.

Contains:
- cosine_similarity: Dense vector cosine with explicit length validation
- rank_by_frequency / rank_by_score: Descending sorts for result records
- order_class_names: Case-insensitive class ordering for matrix axes
- similar_classes: One-vs-many similarity ranking
"""

import logging
import math
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from .errors import VectorLengthMismatchError
from .results import ClassSimilarity, RankedList, SimilarityResult

logger = logging.getLogger(__name__)

# Scores are compared after scaling by this factor (two decimal places)
SCORE_SCALE = 100.0


def _dot_product(v1: Sequence[float], v2: Sequence[float]) -> float:
    if len(v1) != len(v2):
        raise VectorLengthMismatchError(
            "Vectors must be of equal length.",
            left_length=len(v1),
            right_length=len(v2)
        )
    return sum(a * b for a, b in zip(v1, v2))


def _norm(vector: Sequence[float]) -> float:
    return math.sqrt(sum(x * x for x in vector))


def cosine_similarity(v1: Sequence[float], v2: Sequence[float]) -> float:
    """
    Cosine similarity of two dense vectors.

    There is no zero-vector guard: if either vector is all zeros the result
    is NaN, which ranking code treats as "not similar".

    Args:
        v1: First vector
        v2: Second vector, same length as ``v1``

    Returns:
        dot(v1, v2) / (|v1| * |v2|)

    Raises:
        VectorLengthMismatchError: If the vectors differ in length
    """
    dot = _dot_product(v1, v2)
    denominator = _norm(v1) * _norm(v2)
    if denominator == 0:
        return math.nan
    return dot / denominator


def _is_comparable(value: Any) -> bool:
    if value is None:
        return False
    try:
        return not math.isnan(value)
    except TypeError:
        return False


def _score_key(value: float, epsilon: float) -> Any:
    # Bucket index of the scaled score, negated for a descending sort
    scaled = value * SCORE_SCALE
    if epsilon == 0:
        return -scaled
    bucket = scaled / epsilon
    if math.isinf(bucket):
        return -bucket
    return -round(bucket)


def rank_by_frequency(records: Iterable[Any]) -> List[Any]:
    """Sort records by ``frequency``, highest first; ties keep input order."""
    return sorted(records, key=lambda record: record.frequency, reverse=True)


def rank_by_score(
    records: Iterable[Any],
    score: Callable[[Any], Optional[float]],
    epsilon: float = 1e-9
) -> RankedList:
    """
    Sort records by a float score, highest first.

    Scores are scaled by 100 and rounded to the nearest multiple of
    ``epsilon``; scores that round to the same multiple are ties, which keep
    input order. Records whose score is None or NaN cannot be ordered; they
    follow the sorted records in input order and the result is flagged
    ``is_sorted=False``.

    Args:
        records: Records to rank
        score: Function extracting the score from a record
        epsilon: Tie bucket width on the scaled scores; 0 compares exactly

    Returns:
        RankedList of records
    """
    comparable = []
    incomparable = []
    for record in records:
        (comparable if _is_comparable(score(record)) else incomparable).append(record)

    ordered = sorted(comparable, key=lambda record: _score_key(score(record), epsilon))

    if incomparable:
        logger.warning(f"{len(incomparable)} records had incomparable scores and were left unsorted")

    return RankedList(
        items=ordered + incomparable,
        is_sorted=not incomparable,
        incomparable=len(incomparable)
    )


def order_class_names(names: Iterable[str]) -> List[str]:
    """Class names in case-insensitive lexical order."""
    return sorted(names, key=str.lower)


def similar_classes(
    query: Sequence[float],
    class_vectors: Mapping[str, Sequence[float]],
    exclude: Optional[str] = None,
    epsilon: float = 1e-9
) -> SimilarityResult:
    """
    Rank classes by cosine similarity to a query vector.

    Args:
        query: Query weight vector
        class_vectors: Class name -> weight vector, all aligned with ``query``
        exclude: Class name to leave out (the query's own class)
        epsilon: Tie tolerance passed to rank_by_score

    Returns:
        SimilarityResult with only similarities strictly above zero

    Raises:
        VectorLengthMismatchError: If a class vector is not aligned with ``query``
    """
    matches = []
    for class_name, vector in class_vectors.items():
        if class_name == exclude:
            continue
        similarity = cosine_similarity(query, vector)
        if similarity > 0.0:
            matches.append(ClassSimilarity(class_name=class_name, similarity=similarity))

    ranked = rank_by_score(matches, lambda match: match.similarity, epsilon=epsilon)
    return SimilarityResult(classes=ranked.items, is_sorted=ranked.is_sorted)
