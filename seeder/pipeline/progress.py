"""Thread-safe progress accounting and the final throughput report."""
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class ProgressReport:
    """Snapshot of a finished (or running) load"""
    items_written: int
    batches_written: int
    batches_dropped: int
    items_dropped: int
    items_skipped: int
    elapsed_seconds: float

    @property
    def items_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.items_written / self.elapsed_seconds

    def to_dict(self) -> Dict:
        return {
            'items_written': self.items_written,
            'batches_written': self.batches_written,
            'batches_dropped': self.batches_dropped,
            'items_dropped': self.items_dropped,
            'items_skipped': self.items_skipped,
            'elapsed_seconds': round(self.elapsed_seconds, 3),
            'items_per_second': round(self.items_per_second, 2),
        }


class ProgressTracker:
    """
    Shared counters incremented concurrently by every worker.

    The numbers are descriptive only; nothing in the pipeline branches on them.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._started_at: Optional[float] = None
        self._finished_at: Optional[float] = None
        self._items_written = 0
        self._batches_written = 0
        self._batches_dropped = 0
        self._items_dropped = 0
        self._items_skipped = 0

    def start(self) -> None:
        """Capture the launch timestamp"""
        with self._lock:
            self._started_at = self._clock()
            self._finished_at = None

    def finish(self) -> None:
        """Freeze elapsed time at completion"""
        with self._lock:
            self._finished_at = self._clock()

    def record_written(self, count: int) -> None:
        with self._lock:
            self._items_written += count
            self._batches_written += 1

    def record_dropped(self, count: int) -> None:
        with self._lock:
            self._items_dropped += count
            self._batches_dropped += 1

    def record_skipped(self, count: int = 1) -> None:
        with self._lock:
            self._items_skipped += count

    @property
    def total(self) -> int:
        with self._lock:
            return self._items_written

    def report(self) -> ProgressReport:
        with self._lock:
            if self._started_at is None:
                elapsed = 0.0
            else:
                end = self._finished_at if self._finished_at is not None else self._clock()
                elapsed = max(end - self._started_at, 0.0)
            return ProgressReport(
                items_written=self._items_written,
                batches_written=self._batches_written,
                batches_dropped=self._batches_dropped,
                items_dropped=self._items_dropped,
                items_skipped=self._items_skipped,
                elapsed_seconds=elapsed,
            )
