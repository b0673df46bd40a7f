"""
Observability Module
====================

Timing hooks and counters for monitoring vector space model queries and
cache behaviour. Uses only Python's standard library.

Example:
    model = VectorSpaceModel(store, matcher, enable_metrics=True)
    model.similar_document_map_for_class("Sports")
    print(model.get_metrics_summary())

Logging Configuration:
    logging.getLogger('lexigraph.observability').setLevel(logging.DEBUG)
"""

import time
import functools
import logging
import threading
from typing import Dict, Any, Optional, Callable
from collections import defaultdict, deque

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    Collects and aggregates timing and count metrics for operations.

    Safe to share between threads; every mutation happens under one lock.

    Attributes:
        enabled: Whether metrics collection is active
        operations: Dict mapping operation names to timing/count data
        max_timing_history: Maximum timing entries to keep per operation
    """

    def __init__(self, enabled: bool = True, max_timing_history: int = 1000):
        """
        Initialize metrics collector.

        Args:
            enabled: Start with metrics collection enabled
            max_timing_history: Timings kept per operation for inspection.
                               Set to 0 to keep none.
        """
        self.enabled = enabled
        self.max_timing_history = max_timing_history
        max_history = max_timing_history
        self.operations: Dict[str, Dict[str, Any]] = defaultdict(lambda: {
            'count': 0,
            'total_ms': 0.0,
            'min_ms': float('inf'),
            'max_ms': 0.0,
            'timings': deque(maxlen=max_history if max_history > 0 else 0)
        })
        self._lock = threading.Lock()

    def record_timing(self, operation: str, duration_ms: float) -> None:
        """
        Record a timing measurement for an operation.

        Args:
            operation: Name of the operation (e.g., "phrases_for_class")
            duration_ms: Duration in milliseconds
        """
        if not self.enabled:
            return

        with self._lock:
            op_data = self.operations[operation]
            op_data['count'] += 1
            op_data['total_ms'] += duration_ms
            op_data['min_ms'] = min(op_data['min_ms'], duration_ms)
            op_data['max_ms'] = max(op_data['max_ms'], duration_ms)
            op_data['timings'].append(duration_ms)

    def record_count(self, metric_name: str, count: int = 1) -> None:
        """
        Record a simple count metric.

        Args:
            metric_name: Name of the metric (e.g., "cache_hits")
            count: Count to add (default 1)
        """
        if not self.enabled:
            return

        with self._lock:
            if metric_name not in self.operations:
                self.operations[metric_name] = {'count': 0}
            self.operations[metric_name]['count'] += count

    def get_operation_stats(self, operation: str) -> Dict[str, Any]:
        """
        Get statistics for a specific operation.

        Returns:
            Dict with count, and total_ms, avg_ms, min_ms, max_ms for timed
            operations. Empty dict for unknown operations.
        """
        with self._lock:
            if operation not in self.operations:
                return {}
            op_data = dict(self.operations[operation])

        stats = {'count': op_data['count']}
        if 'total_ms' in op_data:
            stats['total_ms'] = op_data['total_ms']
            stats['avg_ms'] = op_data['total_ms'] / op_data['count'] if op_data['count'] > 0 else 0.0
            stats['min_ms'] = op_data['min_ms'] if op_data['min_ms'] != float('inf') else 0.0
            stats['max_ms'] = op_data['max_ms']
        return stats

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get statistics for all operations."""
        with self._lock:
            names = list(self.operations.keys())
        return {op: self.get_operation_stats(op) for op in names}

    def reset(self) -> None:
        """Clear all collected metrics."""
        with self._lock:
            self.operations.clear()

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def get_summary(self) -> str:
        """
        Get a human-readable summary of all metrics.

        Returns:
            Formatted string with metrics table
        """
        all_stats = self.get_all_stats()
        if not all_stats:
            return "No metrics collected."

        lines = ["Metrics Summary", "=" * 80]
        timing_ops = [(name, s) for name, s in sorted(all_stats.items()) if 'total_ms' in s]
        count_ops = [(name, s) for name, s in sorted(all_stats.items()) if 'total_ms' not in s]

        if timing_ops:
            lines.append("\nTiming Operations:")
            lines.append(f"{'Operation':<36} {'Count':>8} {'Avg(ms)':>10} {'Min(ms)':>10} {'Max(ms)':>10}")
            lines.append("-" * 80)
            for op_name, stats in timing_ops:
                lines.append(
                    f"{op_name:<36} {stats['count']:>8} "
                    f"{stats['avg_ms']:>10.2f} {stats['min_ms']:>10.2f} {stats['max_ms']:>10.2f}"
                )

        if count_ops:
            lines.append("\nCount Metrics:")
            lines.append(f"{'Metric':<40} {'Count':>10}")
            lines.append("-" * 50)
            for op_name, stats in count_ops:
                lines.append(f"{op_name:<40} {stats['count']:>10}")

        return "\n".join(lines)


def timed(operation_name: Optional[str] = None):
    """
    Decorator for timing method calls and recording to the instance's metrics.

    The instance must expose its collector as ``self._metrics``; when it is
    missing or disabled the method runs untimed.

    Args:
        operation_name: Custom name for the operation (defaults to function name)
    """
    def decorator(func: Callable) -> Callable:
        op_name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            metrics = getattr(self, '_metrics', None)
            if not metrics or not metrics.enabled:
                return func(self, *args, **kwargs)

            start = time.perf_counter()
            try:
                return func(self, *args, **kwargs)
            finally:
                duration_ms = (time.perf_counter() - start) * 1000.0
                metrics.record_timing(op_name, duration_ms)
                logger.debug(f"{op_name} took {duration_ms:.2f}ms")

        return wrapper
    return decorator
