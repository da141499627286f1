"""In-memory accumulation of received recommendation batches.

The store is append-only and grows for the life of the aggregator process.
There is no eviction and no size cap, so memory use is bounded only by how
much traffic the process receives before it is restarted.
"""

import threading
from typing import Iterable, Tuple

from src.recommender.catalog import Product


class AccumulationStore:
    """Thread-safe, append-only sequence of received products.

    A single lock guards the underlying list. ``append`` extends it with a
    whole batch under the lock and ``snapshot`` copies it under the same lock,
    so readers never see half of a batch.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items = []
        self._batch_count = 0

    def append(self, batch: Iterable[Product]) -> int:
        """Append every product of a batch as one atomic step.

        Args:
            batch: Products decoded from a single ingestion connection.

        Returns:
            Store size after the append.
        """
        batch = list(batch)
        with self._lock:
            self._items.extend(batch)
            self._batch_count += 1
            return len(self._items)

    def snapshot(self) -> Tuple[Product, ...]:
        """Return an isolated copy of everything received so far, in store order."""
        with self._lock:
            return tuple(self._items)

    @property
    def batch_count(self) -> int:
        with self._lock:
            return self._batch_count

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
