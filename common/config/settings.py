"""
Configuration settings for the seeding system.
Centralizes all configurable parameters for the generator, pipeline and stores.
"""
import os
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from dotenv import load_dotenv

from common.errors import SetupError

# Load environment variables
load_dotenv()

BACKENDS = ('dynamodb', 'timescale', 'memory')
TABLE_MODES = ('ensure', 'recreate')

# DynamoDB BatchWriteItem accepts at most 25 put requests
BACKEND_BATCH_LIMITS = {
    'dynamodb': 25,
    'timescale': 1000,
    'memory': 1000,
}

DEFAULT_TICKERS = [
    "AAPL", "GOOGL", "MSFT", "TSLA", "AMZN", "NVDA", "META",
    "JPM", "JNJ", "PG", "UNH", "HD", "BAC", "PFE", "ABBV",
]

# 5 years of weekdays
DEFAULT_TRADING_DAYS = 5 * 365 * 5 // 7


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise SetupError(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise SetupError(f"{name} must be a number, got {value!r}") from exc


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string, raising SetupError on bad input."""
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise SetupError(f"invalid date {value!r}, expected YYYY-MM-DD") from exc


def parse_tickers(value: str) -> List[str]:
    """Split a comma-separated ticker list, upper-casing and de-duplicating."""
    seen = set()
    tickers: List[str] = []
    for raw in value.split(','):
        symbol = raw.strip().upper()
        if symbol and symbol not in seen:
            seen.add(symbol)
            tickers.append(symbol)
    return tickers


@dataclass
class StoreConfig:
    """Backing store connection configuration"""
    backend: Optional[str] = None
    endpoint_url: Optional[str] = None
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    table_mode: Optional[str] = None
    create_timeout: int = 30

    def __post_init__(self):
        self.backend = (self.backend or os.getenv('STORE_BACKEND', 'dynamodb')).lower()
        self.endpoint_url = self.endpoint_url or os.getenv('AWS_ENDPOINT_URL', 'http://localhost:4566')
        self.region = self.region or os.getenv('AWS_REGION', 'us-east-1')
        if self.access_key_id is None:
            self.access_key_id = os.getenv('AWS_ACCESS_KEY_ID')
        if self.secret_access_key is None:
            self.secret_access_key = os.getenv('AWS_SECRET_ACCESS_KEY')
        self.table_mode = (self.table_mode or os.getenv('TABLE_MODE', 'ensure')).lower()


@dataclass
class DatabaseConfig:
    """Database configuration (TimescaleDB backend)"""
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self):
        self.host = self.host or os.getenv('DB_HOST', 'localhost')
        self.port = self.port or _env_int('DB_PORT', 5432)
        self.database = self.database or os.getenv('DB_NAME', 'trading')
        self.user = self.user or os.getenv('DB_USER', 'postgres')
        self.password = self.password or os.getenv('DB_PASSWORD')


@dataclass
class TableConfig:
    """Target table names"""
    tickers: Optional[str] = None
    daily: Optional[str] = None

    def __post_init__(self):
        self.tickers = self.tickers or os.getenv('TICKERS_TABLE', 'tickers')
        self.daily = self.daily or os.getenv('DAILY_TABLE', 'stocks-data')


@dataclass
class PipelineConfig:
    """Worker pool and batching configuration"""
    batch_size: int = 25
    num_workers: int = 10
    channel_capacity: int = 0  # 0 means batch_size * num_workers

    @classmethod
    def from_env(cls) -> 'PipelineConfig':
        return cls(
            batch_size=_env_int('SEED_BATCH_SIZE', 25),
            num_workers=_env_int('SEED_WORKERS', 10),
            channel_capacity=_env_int('SEED_CHANNEL_CAPACITY', 0),
        )

    @property
    def effective_capacity(self) -> int:
        return self.channel_capacity or self.batch_size * self.num_workers


@dataclass
class GeneratorConfig:
    """Synthetic data generation configuration"""
    tickers: List[str] = field(default_factory=lambda: list(DEFAULT_TICKERS))
    trading_days: int = DEFAULT_TRADING_DAYS
    seed: int = 42
    start_date: Optional[date] = None

    def __post_init__(self):
        if self.start_date is None:
            today = date.today()
            try:
                self.start_date = today.replace(year=today.year - 5)
            except ValueError:  # Feb 29
                self.start_date = today - timedelta(days=5 * 365)

    @classmethod
    def from_env(cls) -> 'GeneratorConfig':
        tickers = os.getenv('SEED_TICKERS')
        start = os.getenv('SEED_START_DATE')
        return cls(
            tickers=parse_tickers(tickers) if tickers else list(DEFAULT_TICKERS),
            trading_days=_env_int('SEED_TRADING_DAYS', DEFAULT_TRADING_DAYS),
            seed=_env_int('SEED_RANDOM_SEED', 42),
            start_date=parse_date(start) if start else None,
        )


@dataclass
class RetryConfig:
    """Bulk-write retry policy"""
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    @classmethod
    def from_env(cls) -> 'RetryConfig':
        return cls(
            max_attempts=_env_int('RETRY_MAX_ATTEMPTS', 3),
            base_delay=_env_float('RETRY_BASE_DELAY', 1.0),
            multiplier=_env_float('RETRY_MULTIPLIER', 2.0),
        )


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: Optional[str] = None
    environment: Optional[str] = None
    log_dir: Optional[str] = None

    def __post_init__(self):
        self.level = (self.level or os.getenv('LOG_LEVEL', 'INFO')).upper()
        self.environment = (self.environment or os.getenv('ENVIRONMENT', 'development')).lower()
        if self.log_dir is None:
            self.log_dir = os.getenv('LOG_DIR')


@dataclass
class SeederConfig:
    """Complete seeding system configuration"""
    store: StoreConfig
    database: DatabaseConfig
    tables: TableConfig
    pipeline: PipelineConfig
    generator: GeneratorConfig
    retry: RetryConfig
    logging: LoggingConfig

    @classmethod
    def default(cls):
        """Create default configuration from the environment"""
        return cls(
            store=StoreConfig(),
            database=DatabaseConfig(),
            tables=TableConfig(),
            pipeline=PipelineConfig.from_env(),
            generator=GeneratorConfig.from_env(),
            retry=RetryConfig.from_env(),
            logging=LoggingConfig(),
        )

    def validate(self) -> None:
        """Raise SetupError when the configuration cannot drive a run."""
        if self.store.backend not in BACKENDS:
            raise SetupError(f"unknown store backend {self.store.backend!r}; expected one of {BACKENDS}")
        if self.store.table_mode not in TABLE_MODES:
            raise SetupError(f"unknown table mode {self.store.table_mode!r}; expected one of {TABLE_MODES}")
        if self.pipeline.batch_size < 1:
            raise SetupError("batch size must be at least 1")
        limit = BACKEND_BATCH_LIMITS[self.store.backend]
        if self.pipeline.batch_size > limit:
            raise SetupError(
                f"batch size {self.pipeline.batch_size} exceeds the {self.store.backend} limit of {limit}"
            )
        if self.pipeline.num_workers < 1:
            raise SetupError("worker count must be at least 1")
        if self.pipeline.channel_capacity < 0:
            raise SetupError("channel capacity cannot be negative")
        if self.generator.trading_days < 0:
            raise SetupError("trading day count cannot be negative")
        if not self.generator.tickers:
            raise SetupError("at least one ticker is required")
        if self.retry.max_attempts < 1:
            raise SetupError("retry attempts must be at least 1")
        if self.retry.base_delay < 0 or self.retry.multiplier < 1:
            raise SetupError("retry delay must be >= 0 and multiplier >= 1")
        if self.tables.tickers == self.tables.daily:
            raise SetupError("tickers and daily tables must be distinct")
