"""
Synthetic daily bar generator.

Produces a deterministic random walk of OHLCV bars per symbol. Each
generator owns its random source, seeded from (seed, symbol), so the same
inputs always replay the same sequence and symbols never share state.
"""
import random
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Iterable, Iterator, Optional

from common.models.data_models import DailyBar

# Starting prices per ticker, for realistic ranges
BASE_PRICES = {
    # Tech Giants
    "AAPL": 175.0, "GOOGL": 140.0, "MSFT": 380.0, "TSLA": 240.0,
    "AMZN": 155.0, "NVDA": 850.0, "META": 485.0,

    # Financial & Healthcare
    "JPM": 195.0, "JNJ": 155.0, "UNH": 520.0, "PFE": 28.0,
    "ABBV": 165.0, "BAC": 37.0, "HD": 380.0, "PG": 155.0,
}

DEFAULT_BASE_PRICE = 100.0
MIN_CLOSE = 1.0


def get_base_price(symbol: str) -> float:
    """Starting price for a ticker, 100.0 for unknown symbols."""
    return BASE_PRICES.get(symbol, DEFAULT_BASE_PRICE)


def _skip_weekend(day: date) -> date:
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def _epoch_seconds(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp())


class DailyBarGenerator:
    """
    Lazy, finite, restartable stream of DailyBar values for one symbol.

    Iterating twice yields identical bars: the random source is rebuilt
    from the seed at the start of every iteration.
    """

    def __init__(self, symbol: str, base_price: float, trading_days: int,
                 seed: int, start_date: date, logger=None):
        """
        Args:
            symbol: Ticker symbol
            base_price: Previous close for the first generated day
            trading_days: Number of bars to emit (weekdays only)
            seed: Seed for this generator's random source
            start_date: First candidate calendar day (UTC)
            logger: Optional StructuredLogger
        """
        if not symbol:
            raise ValueError("symbol is required")
        if base_price <= 0:
            raise ValueError("base price must be positive")
        if trading_days < 0:
            raise ValueError("trading day count cannot be negative")
        self.symbol = symbol
        self.base_price = float(base_price)
        self.trading_days = trading_days
        self.seed = seed
        self.start_date = start_date
        self.logger = logger

    def __len__(self) -> int:
        return self.trading_days

    def _new_source(self) -> random.Random:
        # str seeds hash with sha512, so this is stable across processes
        return random.Random(f"{self.seed}:{self.symbol}")

    def __iter__(self) -> Iterator[DailyBar]:
        rng = self._new_source()
        previous_close = self.base_price
        day = self.start_date

        if self.logger:
            self.logger.debug("generator_started", symbol=self.symbol,
                              trading_days=self.trading_days, base_price=self.base_price)

        for _ in range(self.trading_days):
            day = _skip_weekend(day)
            bar = self._next_bar(rng, day, previous_close)
            yield bar
            previous_close = bar.close
            day += timedelta(days=1)

    def _next_bar(self, rng: random.Random, day: date, previous_close: float) -> DailyBar:
        # Daily change: -5% to +5%, plus trend and volatility components
        daily_change = rng.uniform(-0.05, 0.05)
        trend = rng.uniform(0.0, 0.02)
        volatility = rng.uniform(0.0, 0.03)
        change = daily_change + trend + volatility

        close = max(previous_close * (1 + change), MIN_CLOSE)

        open_ = previous_close * (1 + rng.uniform(-0.01, 0.01))
        high = max(open_, close) * (1 + rng.uniform(0.0, 0.03))
        low = min(open_, close) * (1 - rng.uniform(0.0, 0.03))

        # More volatile days trade more
        base_volume = 1_000_000 + rng.randrange(9_000_000)
        volume = int(base_volume * (1 + abs(change) * 10))

        vwap = (open_ + high + low + close) / 4
        transaction_count = 10_000 + rng.randrange(90_000)
        otc = rng.random() < 0.01

        return DailyBar(
            ticker=self.symbol,
            open=open_,
            high=high,
            low=low,
            close=close,
            volume=volume,
            timestamp=_epoch_seconds(day),
            transaction_count=transaction_count,
            otc=otc,
            vwap=vwap,
        )


def generate_daily_bars(symbols: Iterable[str], trading_days: int, seed: int,
                        start_date: date, logger=None,
                        progress: Optional[Callable[[Iterable[str]], Iterable[str]]] = None) -> Iterator[DailyBar]:
    """
    Chain one generator per symbol into a single serialized producer stream.

    Args:
        symbols: Tickers to generate, in order
        trading_days: Bars per ticker
        seed: Run seed shared by every per-symbol generator
        start_date: First candidate day
        logger: Optional StructuredLogger
        progress: Optional wrapper for the symbol iterable (e.g. tqdm)
    """
    symbol_iter = progress(symbols) if progress else symbols
    for symbol in symbol_iter:
        if logger:
            logger.info("generating_ticker", symbol=symbol, trading_days=trading_days)
        yield from DailyBarGenerator(
            symbol=symbol,
            base_price=get_base_price(symbol),
            trading_days=trading_days,
            seed=seed,
            start_date=start_date,
            logger=logger,
        )
