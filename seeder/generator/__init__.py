"""Deterministic synthetic market data."""
from .reference import SAMPLE_TICKERS, build_ticker_records
from .synthetic import DailyBarGenerator, generate_daily_bars, get_base_price

__all__ = [
    'DailyBarGenerator',
    'generate_daily_bars',
    'get_base_price',
    'SAMPLE_TICKERS',
    'build_ticker_records',
]
