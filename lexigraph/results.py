"""
Result Dataclasses for lexigraph
================================

Typed containers for the public query results. Each exposes ``to_dict()``
producing the stable JSON shape callers serialize, with keys in a fixed
order.

Example:
    result = model.similar_document_map_for_class("Sports")
    for match in result.classes:
        print(f"{match.class_name}: {match.similarity:.3f}")
    payload = result.to_dict()   # {'classes': [{'class': ..., 'similarity': ...}]}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class FeatureFrequency:
    """
    A feature matched in input text.

    Attributes:
        feature: Feature id
        frequency: Matches of the feature in the text
        variance: Spread of the feature's matches across classes
    """
    feature: int
    frequency: int
    variance: float

    def to_dict(self) -> Dict[str, Any]:
        return {'feature': self.feature, 'frequency': self.frequency, 'variance': self.variance}


@dataclass(frozen=True)
class PhraseAffinity:
    """
    A class phrase scored by affinity, the mean of its PageRank and variance.
    """
    feature: str
    affinity: float

    def to_dict(self) -> Dict[str, Any]:
        return {'feature': self.feature, 'affinity': self.affinity}


@dataclass(frozen=True)
class PhraseMatch:
    """
    A phrase matched in input text, with its frequency, variance and
    affinity within the matched set.
    """
    feature: str
    frequency: int
    variance: float
    affinity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'feature': self.feature,
            'frequency': self.frequency,
            'variance': self.variance,
            'affinity': self.affinity,
        }


@dataclass(frozen=True)
class ClassSimilarity:
    """
    Cosine similarity between a query and one class.

    Attributes:
        class_name: Class name (serialized under the key ``class``)
        similarity: Cosine similarity
    """
    class_name: str
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {'class': self.class_name, 'similarity': self.similarity}


@dataclass
class RankedList:
    """
    A ranked list of result records.

    Attributes:
        items: Records in rank order
        is_sorted: False when some records had incomparable scores (None or
            NaN); those are placed after the sorted records in input order
        incomparable: Number of such records
    """
    items: List[Any] = field(default_factory=list)
    is_sorted: bool = True
    incomparable: int = 0

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index):
        return self.items[index]

    def to_list(self) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in self.items]


@dataclass
class SimilarityResult:
    """
    Classes similar to a query, most similar first.

    Attributes:
        classes: ClassSimilarity records, similarities all > 0
        is_sorted: False when incomparable similarities prevented a full sort
    """
    classes: List[ClassSimilarity] = field(default_factory=list)
    is_sorted: bool = True

    def class_names(self) -> List[str]:
        return [match.class_name for match in self.classes]

    def to_dict(self) -> Dict[str, Any]:
        return {'classes': [match.to_dict() for match in self.classes]}


@dataclass
class SimilarityMatrix:
    """
    Pairwise class similarities.

    Attributes:
        classes: Class names in case-insensitive order
        vectors: ``vectors[i][j]`` is the rounded similarity of classes i and j
    """
    classes: List[str] = field(default_factory=list)
    vectors: List[List[float]] = field(default_factory=list)

    def similarity(self, first: str, second: str) -> float:
        """
        Look up one cell by class names.

        Raises:
            ValueError: If either name is not in the matrix
        """
        return self.vectors[self.classes.index(first)][self.classes.index(second)]

    def to_dict(self) -> Dict[str, Any]:
        return {'classes': list(self.classes), 'vectors': [list(row) for row in self.vectors]}
