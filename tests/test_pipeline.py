"""Test the worker pool and the end-to-end bulk-load pipeline."""
import threading
from datetime import date

import pytest

from common.errors import WorkerPoolError
from common.models.data_models import PipelineState
from seeder.generator.synthetic import generate_daily_bars
from seeder.pipeline.batch_writer import BackoffPolicy, BatchWriter
from seeder.pipeline.bulk_loader import BulkLoadPipeline
from seeder.pipeline.channel import BackpressureChannel
from seeder.pipeline.progress import ProgressTracker
from seeder.pipeline.worker_pool import WorkerPool
from storage.memory import InMemoryStore
from storage.interfaces import daily_bar_table
from tests.conftest import FailingStore, RecordingStore


def items(n):
    return [{'ticker': 'T', 'timestamp': i + 1, 'close': 10.0} for i in range(n)]


class TestWorkerPool:
    """Test batching inside worker threads."""

    def test_single_worker_batches(self, no_wait_policy):
        """Test full batches then one residual flush."""
        store = RecordingStore()
        channel = BackpressureChannel(100)
        writer = BatchWriter(store, ProgressTracker(), no_wait_policy)
        pool = WorkerPool(channel, writer, 't', batch_size=4, num_workers=1)

        for item in items(10):
            channel.put(item)
        channel.close()
        pool.start()
        stats = pool.join()

        assert store.batch_sizes == [4, 4, 2]
        assert stats[0].items == 10
        assert stats[0].batches == 3

    def test_batch_order_preserved(self, no_wait_policy):
        """Test a single worker keeps production order inside its batches."""
        store = RecordingStore()
        channel = BackpressureChannel(50)
        pool = WorkerPool(channel, BatchWriter(store, ProgressTracker(), no_wait_policy), 't', 3, 1)
        for item in items(7):
            channel.put(item)
        channel.close()
        pool.start()
        pool.join()
        stamps = [i['timestamp'] for batch in store.batches for i in batch]
        assert stamps == list(range(1, 8))

    def test_rejects_bad_sizes(self, no_wait_policy):
        """Test batch size and worker count must be positive."""
        writer = BatchWriter(RecordingStore(), ProgressTracker(), no_wait_policy)
        with pytest.raises(ValueError):
            WorkerPool(BackpressureChannel(1), writer, 't', 0, 1)
        with pytest.raises(ValueError):
            WorkerPool(BackpressureChannel(1), writer, 't', 1, 0)

    def test_crashed_worker_surfaces_at_join(self, no_wait_policy):
        """Test an unexpected exception is reported and the channel still drains."""

        class ExplodingWriter(BatchWriter):
            def write(self, table_name, batch, worker_id=None, batch_number=None):
                raise RuntimeError("boom")

        channel = BackpressureChannel(2)
        writer = ExplodingWriter(RecordingStore(), ProgressTracker(), no_wait_policy)
        pool = WorkerPool(channel, writer, 't', batch_size=1, num_workers=1)
        pool.start()

        # Far more items than capacity: the producer must not deadlock
        for item in items(20):
            channel.put(item)
        channel.close()

        with pytest.raises(WorkerPoolError) as exc_info:
            pool.join()
        assert isinstance(exc_info.value.errors[0], RuntimeError)
        assert pool.stats[0].discarded == 19


class TestBulkLoadPipeline:
    """Test end-to-end pipeline runs."""

    def test_single_worker_ten_items(self, no_wait_policy):
        """Test 10 items, batch 4, 1 worker: three calls totalling 10."""
        store = RecordingStore()
        pipeline = BulkLoadPipeline(store, 't', batch_size=4, num_workers=1, policy=no_wait_policy)
        result = pipeline.run(items(10))

        assert store.calls == 3
        assert store.total_items == 10
        assert sorted(store.batch_sizes) == [2, 4, 4]
        assert result.produced == 10
        assert result.report.items_written == 10
        assert pipeline.state is PipelineState.COMPLETED

    def test_two_workers_ten_generated_bars(self, no_wait_policy):
        """Test 1 symbol, 10 days, batch 4, 2 workers: at most one partial batch per worker."""
        store = RecordingStore()
        bars = generate_daily_bars(['TEST'], 10, 42, date(2020, 1, 6))
        pipeline = BulkLoadPipeline(store, 'stocks-data', batch_size=4, num_workers=2,
                                    policy=no_wait_policy)
        result = pipeline.run(bars)

        assert store.total_items == 10
        assert store.calls <= 4
        assert result.report.items_written == 10
        assert len(result.worker_stats) == 2
        for stats in result.worker_stats:
            assert all(0 < size <= 4 for size in stats.batch_sizes)
            assert sum(1 for size in stats.batch_sizes if size < 4) <= 1
            assert sum(stats.batch_sizes) == stats.items
        assert sum(s.items for s in result.worker_stats) == 10

    def test_failing_store_completes_with_zero(self):
        """Test a store that always fails yields total 0 and still completes."""
        store = FailingStore()
        policy = BackoffPolicy.no_wait(max_attempts=3)
        pipeline = BulkLoadPipeline(store, 't', batch_size=4, num_workers=1, policy=policy)
        result = pipeline.run(items(10))

        assert result.report.items_written == 0
        assert result.report.batches_dropped == 3
        assert result.report.items_dropped == 10
        assert store.attempts == 9
        assert pipeline.state is PipelineState.COMPLETED

    def test_many_workers_write_everything(self, no_wait_policy):
        """Test every produced item is written exactly once across workers."""
        store = RecordingStore()
        pipeline = BulkLoadPipeline(store, 't', batch_size=25, num_workers=10, policy=no_wait_policy)
        result = pipeline.run(items(1003))

        written = sorted(i['timestamp'] for batch in store.batches for i in batch)
        assert written == list(range(1, 1004))
        assert all(1 <= size <= 25 for size in store.batch_sizes)
        assert result.report.items_written == 1003
        assert len(result.worker_stats) == 10

    def test_backpressure_blocks_producer(self, no_wait_policy):
        """Test the producer stalls at capacity while writes are stalled."""
        gate = threading.Event()
        store = RecordingStore()
        original = store.bulk_write

        def slow_write(table_name, batch):
            gate.wait(5.0)
            original(table_name, batch)

        store.bulk_write = slow_write
        pipeline = BulkLoadPipeline(store, 't', batch_size=2, num_workers=1,
                                    policy=no_wait_policy, channel_capacity=3)
        produced = []
        produced_at_release = []

        def tracked():
            for item in items(30):
                produced.append(item)
                yield item

        def release():
            produced_at_release.append(len(produced))
            gate.set()

        timer = threading.Timer(0.5, release)
        timer.start()
        try:
            result = pipeline.run(tracked())
        finally:
            timer.cancel()

        # Worker batch + full channel + the one item held by the blocked put
        assert produced_at_release[0] <= 2 + 3 + 1
        assert result.report.items_written == 30

    def test_generated_bars_into_memory_store(self, no_wait_policy, logger, log_stream):
        """Test generated bars land keyed by (ticker, timestamp)."""
        store = InMemoryStore(max_batch_size=25)
        store.create_table(daily_bar_table('stocks-data'))
        bars = generate_daily_bars(['AAPL', 'MSFT'], 40, 42, date(2020, 1, 6))

        pipeline = BulkLoadPipeline(store, 'stocks-data', batch_size=25, num_workers=3,
                                    policy=no_wait_policy, logger=logger)
        result = pipeline.run(bars)

        assert result.produced == 80
        assert len(store.items('stocks-data')) == 80
        assert all(size <= 25 for _, size in store.write_calls)
        output = log_stream.getvalue()
        assert 'pipeline_completed' in output
        assert 'worker_completed' in output

    def test_run_twice_rejected(self, no_wait_policy):
        """Test a pipeline instance runs once."""
        pipeline = BulkLoadPipeline(RecordingStore(), 't', 4, 1, policy=no_wait_policy)
        pipeline.run(items(1))
        with pytest.raises(RuntimeError):
            pipeline.run(items(1))

    def test_producer_error_drains_first(self, no_wait_policy):
        """Test a failing producer still closes the channel and flushes buffered items."""
        store = RecordingStore()
        pipeline = BulkLoadPipeline(store, 't', batch_size=4, num_workers=2, policy=no_wait_policy)

        def broken():
            yield from items(5)
            raise KeyError("producer failed")

        with pytest.raises(KeyError):
            pipeline.run(broken())
        assert store.total_items == 5
        assert pipeline.state is PipelineState.COMPLETED

    def test_producer_error_logged_when_worker_crashes(self, no_wait_policy, logger, log_stream):
        """Test the producer error is still logged when join raises WorkerPoolError."""
        pipeline = BulkLoadPipeline(RecordingStore(), 't', batch_size=2, num_workers=1,
                                    policy=no_wait_policy, logger=logger)

        def crash(stats, batch):
            raise RuntimeError("boom")

        pipeline.pool._flush = crash

        def broken():
            yield from items(3)
            raise KeyError("producer failed")

        with pytest.raises(WorkerPoolError):
            pipeline.run(broken())
        output = log_stream.getvalue()
        assert 'producer_failed' in output
        assert 'producer failed' in output
        assert 'worker_failed' in output

    def test_batch_size_above_store_limit(self):
        """Test configuration errors surface before any thread starts."""
        with pytest.raises(ValueError):
            BulkLoadPipeline(RecordingStore(max_batch_size=25), 't', batch_size=26, num_workers=1)
