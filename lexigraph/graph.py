"""
Graph collaborator interfaces.

lexigraph reads a property graph it does not own. This module defines the
protocols it consumes (GraphStore, PatternMatcher, NodePropertyCache), the
value types those protocols exchange, and InMemoryGraphStore, a thread-safe
reference backend used by the test suite and by callers embedding the model
without an external database.

Graph shape:
    (:Pattern {phrase, threshold}) -[:HAS_CLASS {matches}]-> (:Class {name})
    (:Pattern) -[:HAS_AFFINITY {matches}]- (:Pattern)
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any, Callable, ContextManager, Dict, FrozenSet, Iterator, List, Optional, Protocol,
)

from .constants import (
    CLASS_LABEL,
    FEATURE_LABEL,
    HAS_AFFINITY,
    HAS_CLASS,
    PROP_MATCHES,
    PROP_NAME,
    PROP_PHRASE,
    PROP_THRESHOLD,
)
from .errors import NodeNotFoundError

logger = logging.getLogger(__name__)


class Direction(Enum):
    """Traversal direction relative to the start node."""
    OUTGOING = 'outgoing'
    INCOMING = 'incoming'
    BOTH = 'both'


@dataclass(frozen=True)
class Node:
    """A graph node: integer identity, labels and a property map."""
    id: int
    labels: FrozenSet[str]
    properties: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def get(self, key: str, default: Any = None) -> Any:
        return self.properties.get(key, default)

    def has_label(self, label: str) -> bool:
        return label in self.labels


@dataclass(frozen=True)
class Relationship:
    """A directed, typed edge with a property map."""
    id: int
    type: str
    start_id: int
    end_id: int
    properties: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    @property
    def matches(self) -> int:
        """Integer ``matches`` weight; absent reads as 0."""
        return int(self.properties.get(PROP_MATCHES, 0))

    def other(self, node_id: int) -> int:
        """Return the id at the opposite end from ``node_id``."""
        return self.end_id if node_id == self.start_id else self.start_id


class MutationKind(Enum):
    NODE_ADDED = 'node_added'
    PROPERTY_CHANGED = 'property_changed'
    RELATIONSHIP_ADDED = 'relationship_added'
    RELATIONSHIP_CHANGED = 'relationship_changed'


@dataclass(frozen=True)
class GraphMutation:
    """
    Notification published by a store after it changes.

    Attributes:
        kind: What changed
        node_id: Node added or whose property changed; start node for edges
        labels: Labels of the node involved (node events only)
        relationship_type: Edge type (edge events only)
        end_id: End node of the edge (edge events only)
        property_key: Changed property (property events only)
    """
    kind: MutationKind
    node_id: Optional[int] = None
    labels: FrozenSet[str] = frozenset()
    relationship_type: Optional[str] = None
    end_id: Optional[int] = None
    property_key: Optional[str] = None


MutationListener = Callable[[GraphMutation], None]


# =============================================================================
# PROTOCOLS
# =============================================================================


class GraphStore(Protocol):
    """
    Read interface over the external property graph.

    Implementations must be safe to call from several threads at once.
    """

    def read_transaction(self) -> ContextManager[Any]:
        """
        Open a short read scope.

        The returned context manager must release the scope on every exit
        path, including exceptions.
        """
        ...

    def get_node(self, node_id: int) -> Node:
        """
        Look up a node by id.

        Raises:
            NodeNotFoundError: If no node has this id
        """
        ...

    def nodes_with_label(self, label: str) -> List[Node]:
        """Return every node carrying ``label`` in a stable order."""
        ...

    def find_node(self, label: str, key: str, value: Any) -> Optional[Node]:
        """Return the first node with ``label`` whose ``key`` equals ``value``."""
        ...

    def relationships(
        self,
        node_id: int,
        relationship_type: str,
        direction: Direction
    ) -> List[Relationship]:
        """
        One-hop traversal from ``node_id`` over edges of one type.

        Raises:
            NodeNotFoundError: If no node has this id
        """
        ...

    def subscribe(self, listener: MutationListener) -> Callable[[], None]:
        """Register a mutation listener. Returns a callable that unsubscribes."""
        ...


class PatternMatcher(Protocol):
    """Turns raw text into feature match counts."""

    def match_features(self, text: str) -> Dict[int, int]:
        """
        Match ``text`` against the trained patterns.

        Returns:
            Mapping of feature id -> number of matches in ``text``
        """
        ...


class NodePropertyCache(Protocol):
    """Resolves display properties for a node."""

    def resolve(self, node_id: int) -> Dict[str, Any]:
        ...


class StoreNodePropertyCache:
    """
    NodePropertyCache backed by a GraphStore.

    Property maps are memoized per node id for the lifetime of the instance.
    """

    def __init__(self, store: GraphStore):
        self.store = store
        self._cache: Dict[int, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def resolve(self, node_id: int) -> Dict[str, Any]:
        with self._lock:
            cached = self._cache.get(node_id)
        if cached is not None:
            return cached

        with self.store.read_transaction():
            properties = dict(self.store.get_node(node_id).properties)

        with self._lock:
            self._cache[node_id] = properties
        return properties

    def invalidate(self, node_id: Optional[int] = None) -> None:
        """Drop one memoized node, or all of them when ``node_id`` is None."""
        with self._lock:
            if node_id is None:
                self._cache.clear()
            else:
                self._cache.pop(node_id, None)


# =============================================================================
# IN-MEMORY REFERENCE STORE
# =============================================================================


class InMemoryGraphStore:
    """
    Thread-safe in-memory GraphStore.

    Nodes and edges keep insertion order, so label scans and traversals are
    deterministic. Every write publishes a GraphMutation to subscribers after
    the store lock is released.

    Example:
        >>> store = InMemoryGraphStore()
        >>> sports = store.add_class("Sports")
        >>> goal = store.add_pattern("scored a goal", threshold=5)
        >>> store.add_has_class(goal, sports, matches=12)
    """

    def __init__(self):
        self._nodes: Dict[int, Node] = {}
        self._relationships: Dict[int, Relationship] = {}
        self._outgoing: Dict[int, List[int]] = {}
        self._incoming: Dict[int, List[int]] = {}
        self._next_node_id = 0
        self._next_relationship_id = 0
        self._lock = threading.RLock()
        self._listeners: List[MutationListener] = []
        self.open_transactions = 0
        self.transactions_started = 0

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    @contextmanager
    def read_transaction(self) -> Iterator['InMemoryGraphStore']:
        with self._lock:
            self.open_transactions += 1
            self.transactions_started += 1
        try:
            yield self
        finally:
            with self._lock:
                self.open_transactions -= 1

    def get_node(self, node_id: int) -> Node:
        with self._lock:
            node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"Node not found: {node_id}", node_id=node_id)
        return node

    def nodes_with_label(self, label: str) -> List[Node]:
        with self._lock:
            return [node for node in self._nodes.values() if label in node.labels]

    def find_node(self, label: str, key: str, value: Any) -> Optional[Node]:
        with self._lock:
            for node in self._nodes.values():
                if label in node.labels and node.properties.get(key) == value:
                    return node
        return None

    def relationships(
        self,
        node_id: int,
        relationship_type: str,
        direction: Direction
    ) -> List[Relationship]:
        with self._lock:
            if node_id not in self._nodes:
                raise NodeNotFoundError(f"Node not found: {node_id}", node_id=node_id)

            rel_ids: List[int] = []
            if direction in (Direction.OUTGOING, Direction.BOTH):
                rel_ids.extend(self._outgoing[node_id])
            if direction in (Direction.INCOMING, Direction.BOTH):
                seen = set(rel_ids)
                rel_ids.extend(r for r in self._incoming[node_id] if r not in seen)

            return [
                self._relationships[r] for r in rel_ids
                if self._relationships[r].type == relationship_type
            ]

    def subscribe(self, listener: MutationListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def add_node(self, labels, properties: Optional[Dict[str, Any]] = None,
                 node_id: Optional[int] = None) -> int:
        """
        Add a node.

        Args:
            labels: Iterable of label strings
            properties: Initial property map
            node_id: Explicit id; allocated automatically when None

        Returns:
            The node id

        Raises:
            ValueError: If ``node_id`` is already taken
        """
        with self._lock:
            if node_id is None:
                node_id = self._next_node_id
            elif node_id in self._nodes:
                raise ValueError(f"node_id {node_id} already exists")
            self._next_node_id = max(self._next_node_id, node_id + 1)

            node = Node(id=node_id, labels=frozenset(labels), properties=dict(properties or {}))
            self._nodes[node_id] = node
            self._outgoing[node_id] = []
            self._incoming[node_id] = []

        self._publish(GraphMutation(MutationKind.NODE_ADDED, node_id=node_id, labels=node.labels))
        return node_id

    def add_class(self, name: str, node_id: Optional[int] = None) -> int:
        return self.add_node([CLASS_LABEL], {PROP_NAME: name}, node_id=node_id)

    def add_pattern(self, phrase: str, threshold: int = 0, node_id: Optional[int] = None) -> int:
        return self.add_node(
            [FEATURE_LABEL],
            {PROP_PHRASE: phrase, PROP_THRESHOLD: threshold},
            node_id=node_id
        )

    def set_property(self, node_id: int, key: str, value: Any) -> None:
        with self._lock:
            node = self.get_node(node_id)
            properties = dict(node.properties)
            properties[key] = value
            self._nodes[node_id] = Node(id=node_id, labels=node.labels, properties=properties)

        self._publish(GraphMutation(
            MutationKind.PROPERTY_CHANGED,
            node_id=node_id,
            labels=node.labels,
            property_key=key
        ))

    def add_relationship(self, start_id: int, end_id: int, relationship_type: str,
                         matches: int) -> int:
        """
        Add an edge, or overwrite ``matches`` on an existing edge of the
        same type between the same ordered pair.

        Returns:
            The relationship id

        Raises:
            NodeNotFoundError: If either endpoint is missing
            ValueError: If ``matches`` is negative
        """
        if matches < 0:
            raise ValueError(f"matches must be non-negative, got {matches}")

        with self._lock:
            self.get_node(start_id)
            self.get_node(end_id)

            existing = next(
                (self._relationships[r] for r in self._outgoing[start_id]
                 if self._relationships[r].type == relationship_type
                 and self._relationships[r].end_id == end_id),
                None
            )
            if existing is not None:
                rel_id = existing.id
                kind = MutationKind.RELATIONSHIP_CHANGED
            else:
                rel_id = self._next_relationship_id
                self._next_relationship_id += 1
                self._outgoing[start_id].append(rel_id)
                self._incoming[end_id].append(rel_id)
                kind = MutationKind.RELATIONSHIP_ADDED

            self._relationships[rel_id] = Relationship(
                id=rel_id,
                type=relationship_type,
                start_id=start_id,
                end_id=end_id,
                properties={PROP_MATCHES: matches}
            )

        self._publish(GraphMutation(
            kind,
            node_id=start_id,
            relationship_type=relationship_type,
            end_id=end_id
        ))
        return rel_id

    def add_has_class(self, feature_id: int, class_id: int, matches: int) -> int:
        return self.add_relationship(feature_id, class_id, HAS_CLASS, matches)

    def add_affinity(self, feature_id: int, other_id: int, matches: int) -> int:
        return self.add_relationship(feature_id, other_id, HAS_AFFINITY, matches)

    def _publish(self, mutation: GraphMutation) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(mutation)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Export the corpus as plain data.

        Returns:
            Dict with ``classes``, ``patterns``, ``has_class`` and
            ``has_affinity`` lists
        """
        with self._lock:
            classes = [
                {'id': n.id, 'name': n.get(PROP_NAME)}
                for n in self._nodes.values() if CLASS_LABEL in n.labels
            ]
            patterns = [
                {'id': n.id, 'phrase': n.get(PROP_PHRASE), 'threshold': n.get(PROP_THRESHOLD, 0)}
                for n in self._nodes.values() if FEATURE_LABEL in n.labels
            ]
            has_class = [
                {'feature': r.start_id, 'class': r.end_id, 'matches': r.matches}
                for r in self._relationships.values() if r.type == HAS_CLASS
            ]
            has_affinity = [
                {'source': r.start_id, 'target': r.end_id, 'matches': r.matches}
                for r in self._relationships.values() if r.type == HAS_AFFINITY
            ]
        return {
            'classes': classes,
            'patterns': patterns,
            'has_class': has_class,
            'has_affinity': has_affinity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, List[Dict[str, Any]]]) -> 'InMemoryGraphStore':
        """
        Build a store from the ``to_dict`` format.

        Raises:
            KeyError: If a record misses a required field
        """
        store = cls()
        for record in data.get('classes', []):
            store.add_class(record['name'], node_id=record['id'])
        for record in data.get('patterns', []):
            store.add_pattern(record['phrase'], record.get('threshold', 0), node_id=record['id'])
        for record in data.get('has_class', []):
            store.add_has_class(record['feature'], record['class'], record['matches'])
        for record in data.get('has_affinity', []):
            store.add_affinity(record['source'], record['target'], record['matches'])
        logger.debug(
            f"Loaded store: {len(data.get('classes', []))} classes, "
            f"{len(data.get('patterns', []))} patterns"
        )
        return store
