"""
Error taxonomy for the seeding system.

Setup errors are fatal and abort the run before any data is generated.
Marshal and write errors are recovered locally by the pipeline (logged,
skipped or dropped) and never surface as a pipeline-level failure.
"""
from typing import Optional


class SeederError(Exception):
    """Base class for all seeder errors."""


class SetupError(SeederError):
    """Configuration, credential or table provisioning failure."""


class ValidationError(SeederError):
    """An entity violates one of its invariants."""


class MarshalError(SeederError):
    """An item could not be converted to the store's wire representation."""

    def __init__(self, message: str, item: Optional[object] = None):
        super().__init__(message)
        self.item = item


class WriteError(SeederError):
    """A batch could not be written after all retry attempts."""

    def __init__(self, table_name: str, size: int, attempts: int, cause: Optional[BaseException] = None):
        super().__init__(
            f"failed to write {size} items to {table_name} after {attempts} attempts: {cause}"
        )
        self.table_name = table_name
        self.size = size
        self.attempts = attempts
        self.cause = cause


class ChannelClosedError(SeederError):
    """Raised on put() after close, or on get() once a closed channel is drained."""


class WorkerPoolError(SeederError):
    """One or more workers crashed with an unexpected exception."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} worker(s) failed: {self.errors[0]!r}")
