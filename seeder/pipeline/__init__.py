"""
Bounded producer/consumer pipeline for bulk loads
"""
from .batch_writer import BackoffPolicy, BatchWriter
from .bulk_loader import BulkLoadPipeline, PipelineResult
from .channel import BackpressureChannel
from .progress import ProgressReport, ProgressTracker
from .worker_pool import WorkerPool, WorkerStats

__all__ = [
    'BackpressureChannel',
    'ProgressTracker',
    'ProgressReport',
    'BackoffPolicy',
    'BatchWriter',
    'WorkerPool',
    'WorkerStats',
    'BulkLoadPipeline',
    'PipelineResult',
]
