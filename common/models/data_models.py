"""
Data models for the seeding system.
"""
import math
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from common.errors import ValidationError


class PipelineState(Enum):
    """Bulk-load pipeline state machine"""
    IDLE = "IDLE"
    STREAMING = "STREAMING"
    DRAINING = "DRAINING"
    COMPLETED = "COMPLETED"


_STATE_ORDER = [
    PipelineState.IDLE,
    PipelineState.STREAMING,
    PipelineState.DRAINING,
    PipelineState.COMPLETED,
]


class PipelineLifecycle:
    """
    Forward-only pipeline state holder.
    Thread-safe state management.
    """

    def __init__(self):
        self.state = PipelineState.IDLE
        self._lock = threading.Lock()

    def advance(self, new_state: PipelineState):
        """Thread-safe transition to the next state"""
        with self._lock:
            current = _STATE_ORDER.index(self.state)
            if _STATE_ORDER.index(new_state) != current + 1:
                raise RuntimeError(
                    f"invalid pipeline transition {self.state.value} -> {new_state.value}"
                )
            self.state = new_state

    def get_state(self) -> PipelineState:
        """Thread-safe state getter"""
        with self._lock:
            return self.state


def _is_price(value: Any) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value > 0


@dataclass(frozen=True)
class DailyBar:
    """One symbol's OHLCV summary for one trading day"""
    ticker: str
    open: float
    high: float
    low: float
    close: float
    volume: int
    timestamp: int
    transaction_count: Optional[int] = None
    otc: bool = False
    vwap: Optional[float] = None

    def validate(self) -> None:
        """Raise ValidationError if the bar breaks an OHLCV invariant."""
        if not self.ticker:
            raise ValidationError("ticker is required")
        if self.timestamp <= 0:
            raise ValidationError("timestamp must be positive")
        if not all(_is_price(p) for p in (self.open, self.high, self.low, self.close)):
            raise ValidationError("prices must be positive")
        if self.high < self.low:
            raise ValidationError("high price cannot be less than low price")
        if self.high < max(self.open, self.close):
            raise ValidationError("high price must be >= open and close")
        if self.low > min(self.open, self.close):
            raise ValidationError("low price must be <= open and close")
        if self.volume < 0:
            raise ValidationError("volume cannot be negative")
        if self.transaction_count is not None and self.transaction_count <= 0:
            raise ValidationError("transaction count must be positive")
        if self.vwap is not None and not (self.low <= self.vwap <= self.high):
            raise ValidationError("VWAP must be between low and high prices")

    def to_item(self) -> Dict[str, Any]:
        """Store attribute map; empty optional attributes are omitted"""
        item: Dict[str, Any] = {
            'ticker': self.ticker,
            'close': self.close,
            'high': self.high,
            'low': self.low,
            'open': self.open,
            'volume': self.volume,
            'timestamp': self.timestamp,
        }
        if self.transaction_count:
            item['transactionCount'] = self.transaction_count
        if self.otc:
            item['otc'] = True
        if self.vwap:
            item['vwap'] = self.vwap
        return item


@dataclass(frozen=True)
class TickerRecord:
    """Static reference metadata for a symbol"""
    ticker: str
    name: str
    market: str
    locale: str
    primary_exchange: Optional[str] = None
    type: Optional[str] = None
    active: int = 1
    cik: Optional[str] = None
    composite_figi: Optional[str] = None
    share_class_figi: Optional[str] = None
    currency_name: Optional[str] = None
    delisted_utc: int = 0
    last_updated_utc: int = 0

    def validate(self) -> None:
        """Raise ValidationError if the record breaks an invariant."""
        if not self.ticker:
            raise ValidationError("ticker is required")
        if not self.name:
            raise ValidationError("name is required")
        if not self.locale:
            raise ValidationError("locale is required")
        if self.active not in (0, 1):
            raise ValidationError("active must be 0 or 1")
        if self.delisted_utc < 0 or self.last_updated_utc < 0:
            raise ValidationError("timestamps cannot be negative")

    def to_item(self) -> Dict[str, Any]:
        """Store attribute map; empty optional attributes are omitted"""
        item: Dict[str, Any] = {
            'ticker': self.ticker,
            'name': self.name,
            'market': self.market,
            'locale': self.locale,
        }
        optional = {
            'primaryExchange': self.primary_exchange,
            'shareClassFigi': self.share_class_figi,
            'type': self.type,
            'active': self.active,
            'cik': self.cik,
            'compositeFigi': self.composite_figi,
            'currencyName': self.currency_name,
            'delistedUTC': self.delisted_utc,
            'lastUpdatedUTC': self.last_updated_utc,
        }
        item.update({key: value for key, value in optional.items() if value})
        return item
