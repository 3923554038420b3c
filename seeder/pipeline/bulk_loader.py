"""
Bulk-load pipeline
One producer, a bounded channel and N batching workers.

Flow: items -> BackpressureChannel -> WorkerPool -> BatchWriter -> store
State: IDLE -> STREAMING -> DRAINING -> COMPLETED
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from common.models.data_models import PipelineLifecycle, PipelineState

from .batch_writer import BackoffPolicy, BatchWriter
from .channel import BackpressureChannel
from .progress import ProgressReport, ProgressTracker
from .worker_pool import WorkerPool, WorkerStats


@dataclass
class PipelineResult:
    """Outcome of one completed pipeline run"""
    table_name: str
    produced: int
    report: ProgressReport
    worker_stats: List[WorkerStats] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'table': self.table_name,
            'produced': self.produced,
            **self.report.to_dict(),
            'workers': len(self.worker_stats),
        }


class BulkLoadPipeline:
    """
    Streams items into one table through a bounded producer/consumer pipeline.

    Memory stays bounded by the channel capacity plus one partial batch per
    worker. Nothing is checkpointed: a crash loses whatever is buffered.
    """

    def __init__(self, store, table_name: str, batch_size: int = 25, num_workers: int = 10,
                 policy: Optional[BackoffPolicy] = None, logger=None,
                 channel_capacity: Optional[int] = None):
        """
        Args:
            store: BulkStore implementation
            table_name: Target table
            batch_size: Items per bulk write (<= store.max_batch_size)
            num_workers: Number of worker threads
            policy: BackoffPolicy for the batch writer
            logger: StructuredLogger
            channel_capacity: Channel bound (default: batch_size * num_workers)
        """
        if batch_size > store.max_batch_size:
            raise ValueError(f"batch_size {batch_size} exceeds store limit {store.max_batch_size}")
        self.store = store
        self.table_name = table_name
        self.batch_size = batch_size
        self.num_workers = num_workers
        self.policy = policy or BackoffPolicy()
        self.logger = logger.bind(table=table_name) if logger else None
        self.capacity = channel_capacity or batch_size * num_workers

        self.lifecycle = PipelineLifecycle()
        self.tracker = ProgressTracker()
        self.channel = BackpressureChannel(self.capacity)
        self.writer = BatchWriter(store, self.tracker, self.policy, self.logger)
        self.pool = WorkerPool(self.channel, self.writer, table_name, batch_size, num_workers, self.logger)

    @property
    def state(self) -> PipelineState:
        return self.lifecycle.get_state()

    def run(self, items: Iterable[Any]) -> PipelineResult:
        """
        Produce every item into the pipeline and wait for completion.

        Producer exceptions are re-raised after the workers have drained.

        Raises:
            RuntimeError: if the pipeline was already run
            WorkerPoolError: if a worker crashed unexpectedly
        """
        if self.state is not PipelineState.IDLE:
            raise RuntimeError("pipeline can only be run once")

        if self.logger:
            self.logger.info("pipeline_started", workers=self.num_workers,
                             batch_size=self.batch_size, capacity=self.capacity)

        self.lifecycle.advance(PipelineState.STREAMING)
        self.tracker.start()
        self.pool.start()

        produced = 0
        try:
            for item in items:
                self.channel.put(item)
                produced += 1
        except Exception as exc:
            # Logged here so a worker failure raised from join() cannot hide it
            if self.logger:
                self.logger.error("producer_failed", error=repr(exc), produced=produced)
            raise
        finally:
            # Close the channel to signal workers to finish
            self.channel.close()
            self.lifecycle.advance(PipelineState.DRAINING)
            if self.logger:
                self.logger.info("pipeline_draining", produced=produced)
            # Wait for all workers to complete
            try:
                stats = self.pool.join()
            finally:
                self.tracker.finish()
            self.lifecycle.advance(PipelineState.COMPLETED)

        report = self.tracker.report()
        if self.logger:
            self.logger.info("pipeline_completed", produced=produced, **report.to_dict())
        return PipelineResult(
            table_name=self.table_name,
            produced=produced,
            report=report,
            worker_stats=stats,
        )
