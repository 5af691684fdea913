"""Metrics service for tracking scoring latency.

Singleton service that counts recommend/rank calls and their latency.
"""

import threading
from typing import Dict


class _OperationStats:
    __slots__ = ("count", "errors", "total_ms", "min_ms", "max_ms")

    def __init__(self):
        self.count = 0
        self.errors = 0
        self.total_ms = 0.0
        self.min_ms = float("inf")
        self.max_ms = 0.0

    def as_dict(self) -> Dict:
        average = self.total_ms / self.count if self.count > 0 else 0.0
        return {
            "count": self.count,
            "errors": self.errors,
            "average_latency_ms": round(average, 2),
            "min_latency_ms": round(self.min_ms, 2) if self.count > 0 else 0.0,
            "max_latency_ms": round(self.max_ms, 2),
        }


class MetricsService:
    """Singleton service for tracking API metrics.

    Thread-safe per-operation counters and latency tracking.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._stats_lock = threading.Lock()
        self._operations: Dict[str, _OperationStats] = {}
        self._initialized = True

    def record(self, operation: str, latency_ms: float, failed: bool = False) -> None:
        """Record one call of ``operation``.

        Args:
            operation: Operation name, e.g. "recommend" or "rank"
            latency_ms: Latency in milliseconds
            failed: Whether the call ended with an error
        """
        with self._stats_lock:
            stats = self._operations.setdefault(operation, _OperationStats())
            stats.count += 1
            if failed:
                stats.errors += 1
            stats.total_ms += latency_ms
            stats.min_ms = min(stats.min_ms, latency_ms)
            stats.max_ms = max(stats.max_ms, latency_ms)

    def get_metrics(self) -> Dict[str, Dict]:
        """Get current metrics, keyed by operation name.

        Each entry has count, errors, average_latency_ms, min_latency_ms and
        max_latency_ms.
        """
        with self._stats_lock:
            return {
                operation: stats.as_dict()
                for operation, stats in sorted(self._operations.items())
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._stats_lock:
            self._operations.clear()


# Global singleton instance
metrics_service = MetricsService()
