"""Domain entities and pipeline state."""
from .data_models import DailyBar, PipelineLifecycle, PipelineState, TickerRecord

__all__ = ['DailyBar', 'TickerRecord', 'PipelineState', 'PipelineLifecycle']
