import threading
from typing import List
from avify.domain.models import BatchStats, TaskFailure, TaskOutcome, TaskSuccess


class Aggregator:
    """Thread-safe accumulator of task outcomes for one batch.

    Updates are commutative, so any completion order yields the same totals.
    Once closed, the aggregator is read-only.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._bytes_before = 0
        self._bytes_after = 0
        self._success_count = 0
        self._failures: List[TaskFailure] = []
        self._closed = False

    def record(self, outcome: TaskOutcome):
        with self._lock:
            if self._closed:
                raise RuntimeError("Aggregator is closed; the batch has already settled")
            if isinstance(outcome, TaskSuccess):
                self._bytes_before += outcome.bytes_in
                self._bytes_after += outcome.bytes_out
                self._success_count += 1
            elif isinstance(outcome, TaskFailure):
                self._failures.append(outcome)
            else:
                raise TypeError(f"Unsupported outcome: {outcome!r}")

    def close(self) -> BatchStats:
        with self._lock:
            self._closed = True
        return self.snapshot()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def snapshot(self) -> BatchStats:
        with self._lock:
            return BatchStats(
                total_bytes_before=self._bytes_before,
                total_bytes_after=self._bytes_after,
                success_count=self._success_count,
                failures=list(self._failures),
            )
