"""Metrics service for the recommendation API.

Singleton service tracking forwarded batches, their latency, and unknown
product ids seen in requests.
"""

import threading
from typing import Dict


class MetricsService:
    """Singleton service for tracking API metrics.

    Thread-safe counters; request handlers run on a thread pool.
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
        """Initialize metrics counters."""
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._reset_counters()
        self._initialized = True

    def _reset_counters(self) -> None:
        self._forward_count = 0
        self._forward_failures = 0
        self._items_forwarded = 0
        self._total_latency_ms = 0.0
        self._min_latency_ms = float('inf')
        self._max_latency_ms = 0.0
        self._unknown_id_count = 0

    def record_forward(self, latency_ms: float, num_items: int, success: bool) -> None:
        """Record one forwarding attempt.

        Args:
            latency_ms: Time spent in the forward call in milliseconds
            num_items: Number of products in the batch
            success: Whether the aggregator accepted the connection and closed it
        """
        with self._lock:
            self._forward_count += 1
            if not success:
                self._forward_failures += 1
                return

            self._items_forwarded += num_items
            self._total_latency_ms += latency_ms
            self._min_latency_ms = min(self._min_latency_ms, latency_ms)
            self._max_latency_ms = max(self._max_latency_ms, latency_ms)

    def record_unknown_ids(self, count: int) -> None:
        """Record product ids that were requested but not found in the catalog."""
        with self._lock:
            self._unknown_id_count += count

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with metrics including:
            - forward_count: Total forwarding attempts
            - forward_failures: Attempts that raised a transport error
            - items_forwarded: Products delivered in successful attempts
            - average_latency_ms / min_latency_ms / max_latency_ms: over successes
            - unknown_id_count: Requested ids missing from the catalog
        """
        with self._lock:
            successes = self._forward_count - self._forward_failures
            avg_latency = self._total_latency_ms / successes if successes > 0 else 0.0

            return {
                "forward_count": self._forward_count,
                "forward_failures": self._forward_failures,
                "items_forwarded": self._items_forwarded,
                "average_latency_ms": round(avg_latency, 2),
                "min_latency_ms": round(self._min_latency_ms, 2) if successes > 0 else 0.0,
                "max_latency_ms": round(self._max_latency_ms, 2),
                "unknown_id_count": self._unknown_id_count,
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._reset_counters()


# Global singleton instance
metrics_service = MetricsService()
