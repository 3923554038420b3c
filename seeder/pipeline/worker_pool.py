"""
Worker pool draining the backpressure channel into per-worker batches.
"""
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from common.errors import WorkerPoolError

from .batch_writer import BatchWriter
from .channel import BackpressureChannel


@dataclass
class WorkerStats:
    """Per-worker accounting, returned from WorkerPool.join()"""
    worker_id: int
    items: int = 0
    batches: int = 0
    batch_sizes: List[int] = field(default_factory=list)
    discarded: int = 0
    error: Optional[BaseException] = None


class WorkerPool:
    """
    N threads sharing one channel, each with a private batch buffer.

    A worker flushes whenever its buffer reaches batch_size and flushes its
    residual exactly once when the channel is closed and drained. Items of
    one symbol may land in different workers' batches; within a batch the
    generation order is kept.
    """

    def __init__(self, channel: BackpressureChannel, writer: BatchWriter,
                 table_name: str, batch_size: int, num_workers: int, logger=None):
        """
        Args:
            channel: Shared BackpressureChannel
            writer: BatchWriter used for every flush
            table_name: Target table for all flushed batches
            batch_size: Items per flush
            num_workers: Thread count
            logger: StructuredLogger
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if num_workers < 1:
            raise ValueError("num_workers must be at least 1")
        self.channel = channel
        self.writer = writer
        self.table_name = table_name
        self.batch_size = batch_size
        self.num_workers = num_workers
        self.logger = logger
        self.stats = [WorkerStats(worker_id=i) for i in range(num_workers)]
        self._threads: List[threading.Thread] = []

    def start(self) -> None:
        """Launch the worker threads"""
        if self._threads:
            raise RuntimeError("worker pool already started")
        for stats in self.stats:
            thread = threading.Thread(
                target=self._run,
                args=(stats,),
                name=f"worker-{stats.worker_id}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

    def join(self) -> List[WorkerStats]:
        """
        Wait for every worker to drain and flush.

        Raises:
            WorkerPoolError: if any worker died with an unexpected exception
        """
        for thread in self._threads:
            thread.join()
        errors = [s.error for s in self.stats if s.error is not None]
        if errors:
            raise WorkerPoolError(errors)
        return list(self.stats)

    def _flush(self, stats: WorkerStats, batch: list) -> None:
        self.writer.write(self.table_name, batch, worker_id=stats.worker_id, batch_number=stats.batches)
        stats.batches += 1
        stats.batch_sizes.append(len(batch))

    def _run(self, stats: WorkerStats) -> None:
        log = self.logger.bind(worker=stats.worker_id) if self.logger else None
        batch: list = []
        try:
            for item in self.channel:
                batch.append(item)
                stats.items += 1

                # When batch is full, process it
                if len(batch) >= self.batch_size:
                    self._flush(stats, batch)
                    batch = []

            # Process remaining items in the last batch
            if batch:
                self._flush(stats, batch)
                batch = []
        except Exception as exc:
            stats.error = exc
            if log:
                log.error("worker_failed", error=repr(exc), buffered=len(batch))
            # Keep consuming so the producer never blocks on a full channel
            for _ in self.channel:
                stats.discarded += 1
            return

        if log:
            log.info("worker_completed", items=stats.items, batches=stats.batches)
