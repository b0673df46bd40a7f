"""
Memoization cache for corpus statistics.

Every statistic lexigraph derives from the graph (document sizes, per-class
term frequencies, the feature and class indexes) is memoized here. The cache
is an owned object injected into each component rather than module state.

Each slot belongs to a CacheKind, and a kind fixes both the string key prefix
and the Python type of the value stored under it. Writing a value of the
wrong type raises CacheTypeError at the write, not later at a read.

Concurrent misses on the same key are single-flight: the first caller
computes, later callers block on the same Future and receive its result (or
its exception). Entries never expire on their own; they leave the cache by
LRU eviction once ``max_size`` is reached, or by explicit invalidation. A
CacheInvalidator attached to a store turns graph mutations into those
invalidations.
"""

import logging
import threading
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, TypeVar

from .constants import CACHE_MAX_SIZE, CLASS_LABEL, FEATURE_LABEL, HAS_CLASS, PROP_NAME, PROP_THRESHOLD
from .errors import CacheTypeError
from .graph import GraphMutation, GraphStore, MutationKind
from .observability import MetricsCollector

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CacheKind(Enum):
    """Cache slot kinds: (key prefix, value type)."""

    DOCUMENT_SIZE = ('GLOBAL_DOCUMENT_SIZE', int)
    TERM_FREQUENCY_MAP = ('TERM_DOCUMENT_FREQUENCY_', dict)
    FEATURE_DOCUMENT_SIZE = ('DOCUMENT_SIZE_FEATURE_', int)
    CLASS_FEATURE_INDEX = ('CLASS_FEATURE_INDEX', dict)
    GLOBAL_FEATURE_INDEX = ('GLOBAL_FEATURE_INDEX', list)

    def __init__(self, prefix: str, value_type: type):
        self.prefix = prefix
        self.value_type = value_type

    @property
    def keyed(self) -> bool:
        """True when slots of this kind are qualified by an id."""
        return self.prefix.endswith('_')

    def cache_key(self, key: Any = None) -> str:
        """
        Build the string key for a slot.

        Raises:
            ValueError: If a keyed kind gets no key or a singleton kind gets one
        """
        if self.keyed:
            if key is None:
                raise ValueError(f"{self.name} slots require a key")
            return f"{self.prefix}{key}"
        if key is not None:
            raise ValueError(f"{self.name} is a singleton slot and takes no key")
        return self.prefix


@dataclass
class _Entry:
    kind: CacheKind
    value: Any


class MemoizationCache:
    """
    Thread-safe, size-bounded, kind-typed memoization cache.

    Example:
        >>> cache = MemoizationCache()
        >>> cache.get_or_compute(CacheKind.DOCUMENT_SIZE, None, lambda: 3)
        3
        >>> cache.get(CacheKind.DOCUMENT_SIZE)
        3
    """

    def __init__(self, max_size: int = CACHE_MAX_SIZE, metrics: Optional[MetricsCollector] = None):
        """
        Args:
            max_size: Maximum number of entries before LRU eviction
            metrics: Optional collector for hit/miss counters

        Raises:
            ValueError: If max_size < 1
        """
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self._metrics = metrics
        self._entries: 'OrderedDict[str, _Entry]' = OrderedDict()
        self._in_flight: Dict[str, Tuple[CacheKind, Future]] = {}
        self._generations: Dict[CacheKind, int] = {kind: 0 for kind in CacheKind}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._shared = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, cache_key: str) -> bool:
        with self._lock:
            return cache_key in self._entries

    def get(self, kind: CacheKind, key: Any = None) -> Optional[Any]:
        """Return the cached value, or None on a miss."""
        cache_key = kind.cache_key(key)
        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is None:
                return None
            self._entries.move_to_end(cache_key)
            return entry.value

    def put(self, kind: CacheKind, key: Any, value: Any) -> None:
        """
        Store a value.

        Raises:
            CacheTypeError: If ``value`` is not an instance of ``kind.value_type``
        """
        _check_type(kind, value)
        cache_key = kind.cache_key(key)
        with self._lock:
            self._store(cache_key, kind, value)

    def get_or_compute(self, kind: CacheKind, key: Any, compute: Callable[[], T]) -> T:
        """
        Return the cached value, computing it once on a miss.

        Concurrent callers missing on the same key share a single call to
        ``compute``. A failure is raised to every waiting caller and nothing
        is cached. A value whose kind was invalidated while it was being
        computed is returned but not stored, and callers arriving after the
        invalidation start a new computation instead of waiting on it.

        Raises:
            CacheTypeError: If ``compute`` returns a value of the wrong type
        """
        cache_key = kind.cache_key(key)

        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is not None:
                self._entries.move_to_end(cache_key)
                self._hits += 1
                self._count('cache_hits')
                return entry.value

            in_flight = self._in_flight.get(cache_key)
            owner = in_flight is None
            if owner:
                future = Future()
                self._in_flight[cache_key] = (kind, future)
                generation = self._generations[kind]
                self._misses += 1
                self._count('cache_misses')
            else:
                future = in_flight[1]
                self._shared += 1
                self._count('cache_shared_computations')

        if not owner:
            return future.result()

        logger.debug(f"Cache miss: {cache_key}")
        try:
            value = compute()
            _check_type(kind, value)
        except BaseException as exc:
            with self._lock:
                self._release(cache_key, future)
            future.set_exception(exc)
            raise

        with self._lock:
            self._release(cache_key, future)
            if self._generations[kind] == generation:
                self._store(cache_key, kind, value)
            else:
                logger.debug(f"Discarding {cache_key}: invalidated during computation")
        future.set_result(value)
        return value

    def invalidate(self, kind: CacheKind, key: Any = None) -> int:
        """
        Drop cached values of one kind.

        Args:
            kind: Kind to invalidate
            key: For keyed kinds, only this slot; None drops every slot of the kind

        Returns:
            Number of entries removed
        """
        with self._lock:
            self._generations[kind] += 1
            if key is not None or not kind.keyed:
                doomed = [kind.cache_key(key)]
                abandoned = doomed
            else:
                doomed = [k for k, entry in self._entries.items() if entry.kind is kind]
                abandoned = [k for k, (k_kind, _) in self._in_flight.items() if k_kind is kind]

            removed = 0
            for cache_key in doomed:
                if self._entries.pop(cache_key, None) is not None:
                    removed += 1
            # Later callers start a fresh computation instead of joining a stale one.
            for cache_key in abandoned:
                self._in_flight.pop(cache_key, None)

        if removed:
            logger.info(f"Invalidated {removed} {kind.name} cache entries")
        return removed

    def clear(self) -> int:
        """
        Drop every entry.

        Returns:
            Number of entries removed
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._in_flight.clear()
            for kind in self._generations:
                self._generations[kind] += 1
        logger.info(f"Cleared {count} cache entries")
        return count

    def stats(self) -> Dict[str, int]:
        """Return hit, miss, shared, eviction and size counters."""
        with self._lock:
            return {
                'hits': self._hits,
                'misses': self._misses,
                'shared': self._shared,
                'evictions': self._evictions,
                'size': len(self._entries),
                'max_size': self.max_size,
            }

    def _store(self, cache_key: str, kind: CacheKind, value: Any) -> None:
        # Caller holds self._lock
        self._entries[cache_key] = _Entry(kind=kind, value=value)
        self._entries.move_to_end(cache_key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug(f"Evicted {evicted}")

    def _release(self, cache_key: str, future: Future) -> None:
        # Caller holds self._lock; a newer computation may own the slot by now
        in_flight = self._in_flight.get(cache_key)
        if in_flight is not None and in_flight[1] is future:
            del self._in_flight[cache_key]

    def _count(self, metric_name: str) -> None:
        if self._metrics is not None:
            self._metrics.record_count(metric_name)


def _check_type(kind: CacheKind, value: Any) -> None:
    if not isinstance(value, kind.value_type):
        raise CacheTypeError(
            f"{kind.name} expects {kind.value_type.__name__}, got {type(value).__name__}",
            kind=kind.name,
            value_type=type(value).__name__
        )


class CacheInvalidator:
    """
    Translates graph mutations into cache invalidations.

    Attach to a store to keep the cache in step with the corpus:

        >>> invalidator = CacheInvalidator(cache)
        >>> invalidator.attach(store)

    Mapping:
        - new class node: document size, class feature index
        - new feature node: global feature index
        - class ``name`` change: class feature index
        - feature ``threshold`` change: global feature index
        - HAS_CLASS added or changed: that class's term frequencies, that
          feature's document frequency, both indexes
        - HAS_AFFINITY changes: nothing (affinity graphs are never cached)
    """

    def __init__(
        self,
        cache: MemoizationCache,
        class_label: str = CLASS_LABEL,
        feature_label: str = FEATURE_LABEL,
        property_cache=None
    ):
        """
        Args:
            cache: Cache to invalidate
            class_label: Label identifying class nodes
            feature_label: Label identifying feature nodes
            property_cache: Optional node property cache exposing
                ``invalidate(node_id)``, refreshed on property changes
        """
        self.cache = cache
        self.class_label = class_label
        self.feature_label = feature_label
        self.property_cache = property_cache
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self, store: GraphStore) -> None:
        """Subscribe to ``store`` mutations, replacing any earlier subscription."""
        self.detach()
        self._unsubscribe = store.subscribe(self.handle)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def handle(self, mutation: GraphMutation) -> None:
        """Invalidate every slot ``mutation`` can make stale."""
        if mutation.kind is MutationKind.NODE_ADDED:
            if self.class_label in mutation.labels:
                self.cache.invalidate(CacheKind.DOCUMENT_SIZE)
                self.cache.invalidate(CacheKind.CLASS_FEATURE_INDEX)
            if self.feature_label in mutation.labels:
                self.cache.invalidate(CacheKind.GLOBAL_FEATURE_INDEX)

        elif mutation.kind is MutationKind.PROPERTY_CHANGED:
            if self.property_cache is not None:
                self.property_cache.invalidate(mutation.node_id)
            if self.class_label in mutation.labels and mutation.property_key == PROP_NAME:
                self.cache.invalidate(CacheKind.CLASS_FEATURE_INDEX)
            if self.feature_label in mutation.labels and mutation.property_key == PROP_THRESHOLD:
                self.cache.invalidate(CacheKind.GLOBAL_FEATURE_INDEX)

        elif mutation.relationship_type == HAS_CLASS:
            self.cache.invalidate(CacheKind.TERM_FREQUENCY_MAP, mutation.end_id)
            self.cache.invalidate(CacheKind.FEATURE_DOCUMENT_SIZE, mutation.node_id)
            self.cache.invalidate(CacheKind.CLASS_FEATURE_INDEX)
            self.cache.invalidate(CacheKind.GLOBAL_FEATURE_INDEX)
