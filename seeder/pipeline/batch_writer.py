"""
Batch writer with bounded retries and exponential backoff.
"""
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from common.errors import MarshalError, WriteError

from .progress import ProgressTracker


@dataclass
class BackoffPolicy:
    """
    Retry schedule for bulk writes.

    delay(attempt) = base_delay * multiplier ** attempt, so the defaults
    wait 1s, then 2s, between three attempts.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: Optional[float] = None
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the failed attempt number `attempt` (0-based)."""
        value = self.base_delay * (self.multiplier ** attempt)
        if self.max_delay is not None:
            value = min(value, self.max_delay)
        return value

    @classmethod
    def no_wait(cls, max_attempts: int = 3) -> 'BackoffPolicy':
        """Zero-delay policy for tests and dry runs."""
        return cls(max_attempts=max_attempts, base_delay=0.0, sleep=lambda _: None)


class BatchWriter:
    """
    Writes one batch to the store, retrying the whole batch on any failure.

    The store call is treated as all-or-nothing. After the last failed
    attempt the batch is logged as dropped and write() returns False;
    errors never propagate to the calling worker.
    """

    def __init__(self, store, tracker: ProgressTracker,
                 policy: Optional[BackoffPolicy] = None, logger=None):
        """
        Args:
            store: BulkStore implementation shared by all workers
            tracker: ProgressTracker receiving successful counts
            policy: BackoffPolicy (default: 3 attempts, 1s base, x2)
            logger: StructuredLogger
        """
        self.store = store
        self.tracker = tracker
        self.policy = policy or BackoffPolicy()
        self.logger = logger

    def _marshal(self, batch: Sequence[Any], log) -> List[Dict[str, Any]]:
        items = []
        for record in batch:
            try:
                items.append(self.store.serialize_item(record))
            except MarshalError as exc:
                self.tracker.record_skipped()
                if log:
                    log.error("marshal_failed", error=str(exc))
        return items

    def write(self, table_name: str, batch: Sequence[Any],
              worker_id: Optional[int] = None, batch_number: Optional[int] = None) -> bool:
        """
        Write a batch with retry.

        Args:
            table_name: Target table
            batch: Records (entities or attribute dicts), at most store.max_batch_size
            worker_id: Calling worker, for logging
            batch_number: Per-worker batch counter, for logging

        Returns:
            True if the batch (minus any unmarshalable items) was written,
            False if it was dropped after exhausting retries.
        """
        if not batch:
            raise ValueError("batch must not be empty")
        if len(batch) > self.store.max_batch_size:
            raise ValueError(
                f"batch of {len(batch)} exceeds store limit of {self.store.max_batch_size}"
            )

        log = self.logger.bind(worker=worker_id, batch=batch_number, table=table_name) if self.logger else None

        items = self._marshal(batch, log)
        if not items:
            if log:
                log.warn("batch_empty_after_marshal", size=len(batch))
            return False

        last_error: Optional[BaseException] = None
        for attempt in range(self.policy.max_attempts):
            try:
                self.store.bulk_write(table_name, items)
            except Exception as exc:
                last_error = exc
                if attempt == self.policy.max_attempts - 1:
                    break
                wait = self.policy.delay(attempt)
                if log:
                    log.warn("batch_retry", error=str(exc), attempt=attempt + 1,
                             max_attempts=self.policy.max_attempts, wait_seconds=wait)
                self.policy.sleep(wait)
                continue

            self.tracker.record_written(len(items))
            if log:
                log.debug("batch_written", items=len(items), attempts=attempt + 1)
            return True

        error = WriteError(table_name, len(items), self.policy.max_attempts, last_error)
        self.tracker.record_dropped(len(items))
        if log:
            log.error("batch_dropped", items=len(items), error=str(error))
        return False
