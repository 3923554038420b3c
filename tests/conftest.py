"""Test fixtures for seeder tests."""
import io
import threading
from datetime import date
from typing import Any, Dict, List

import pytest

from seeder.pipeline.batch_writer import BackoffPolicy
from seeder.utils.structured_logging import StructuredLogger
from storage.interfaces import TableSpec
from storage.marshal import record_to_item


# Mock stores (importable for direct instantiation in tests)
class RecordingStore:
    """BulkStore that records every successful batch."""

    def __init__(self, max_batch_size: int = 25):
        self.max_batch_size = max_batch_size
        self.batches: List[List[Dict[str, Any]]] = []
        self.calls = 0
        self.created: List[TableSpec] = []
        self.deleted: List[str] = []
        self.existing = set()
        self.closed = False
        self._lock = threading.Lock()

    def serialize_item(self, record: Any) -> Dict[str, Any]:
        return record_to_item(record)

    def bulk_write(self, table_name: str, items: List[Dict[str, Any]]) -> None:
        with self._lock:
            self.calls += 1
            self.batches.append(list(items))

    @property
    def total_items(self) -> int:
        return sum(len(b) for b in self.batches)

    @property
    def batch_sizes(self) -> List[int]:
        return [len(b) for b in self.batches]

    def table_exists(self, table_name: str) -> bool:
        return table_name in self.existing

    def create_table(self, spec: TableSpec) -> None:
        self.created.append(spec)
        self.existing.add(spec.name)

    def delete_table(self, table_name: str) -> None:
        self.deleted.append(table_name)
        self.existing.discard(table_name)

    def close(self) -> None:
        self.closed = True


class FlakyStore(RecordingStore):
    """Fails the first `failures` bulk writes, then succeeds."""

    def __init__(self, failures: int, max_batch_size: int = 25):
        super().__init__(max_batch_size)
        self.failures = failures
        self.attempts = 0

    def bulk_write(self, table_name: str, items: List[Dict[str, Any]]) -> None:
        with self._lock:
            self.attempts += 1
            if self.attempts <= self.failures:
                raise ConnectionError(f"transient failure {self.attempts}")
        super().bulk_write(table_name, items)


class FailingStore(RecordingStore):
    """Every bulk write fails."""

    def __init__(self, max_batch_size: int = 25):
        super().__init__(max_batch_size)
        self.attempts = 0

    def bulk_write(self, table_name: str, items: List[Dict[str, Any]]) -> None:
        with self._lock:
            self.attempts += 1
        raise ConnectionError("store unavailable")


@pytest.fixture
def recording_store():
    """Recording store fixture."""
    return RecordingStore()


@pytest.fixture
def no_wait_policy():
    """Zero-delay retry policy, records requested sleeps."""
    sleeps: List[float] = []
    policy = BackoffPolicy(max_attempts=3, base_delay=1.0, multiplier=2.0, sleep=sleeps.append)
    policy.sleeps = sleeps
    return policy


@pytest.fixture
def log_stream():
    """Captured output of the test logger."""
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    """Structured logger writing into log_stream."""
    return StructuredLogger('seeder-test', level='DEBUG', stream=log_stream)


@pytest.fixture
def start_date():
    """A Monday, so the first bar falls on the start date."""
    return date(2020, 1, 6)
