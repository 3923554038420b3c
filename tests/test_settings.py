"""Test configuration loading and validation."""
from datetime import date

import pytest

from common.config.settings import (
    DEFAULT_TICKERS,
    DEFAULT_TRADING_DAYS,
    GeneratorConfig,
    PipelineConfig,
    RetryConfig,
    SeederConfig,
    StoreConfig,
    TableConfig,
    parse_date,
    parse_tickers,
)
from common.errors import SetupError

ENV_VARS = [
    'STORE_BACKEND', 'AWS_ENDPOINT_URL', 'AWS_REGION', 'TABLE_MODE',
    'TICKERS_TABLE', 'DAILY_TABLE', 'SEED_BATCH_SIZE', 'SEED_WORKERS',
    'SEED_CHANNEL_CAPACITY', 'SEED_TICKERS', 'SEED_TRADING_DAYS',
    'SEED_RANDOM_SEED', 'SEED_START_DATE', 'RETRY_MAX_ATTEMPTS',
    'RETRY_BASE_DELAY', 'RETRY_MULTIPLIER', 'LOG_LEVEL', 'ENVIRONMENT', 'LOG_DIR',
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Test defaults match the seeding tool's behaviour."""

    def test_default_config(self):
        config = SeederConfig.default()
        assert config.store.backend == 'dynamodb'
        assert config.store.endpoint_url == 'http://localhost:4566'
        assert config.store.region == 'us-east-1'
        assert config.store.table_mode == 'ensure'
        assert config.tables.tickers == 'tickers'
        assert config.tables.daily == 'stocks-data'
        assert config.pipeline.batch_size == 25
        assert config.pipeline.num_workers == 10
        assert config.pipeline.effective_capacity == 250
        assert config.generator.tickers == DEFAULT_TICKERS
        assert config.generator.trading_days == DEFAULT_TRADING_DAYS == 1303
        assert config.generator.seed == 42
        assert config.retry.max_attempts == 3
        config.validate()

    def test_start_date_defaults_to_five_years_back(self):
        config = GeneratorConfig()
        assert date.today().year - config.start_date.year == 5


class TestEnvironment:
    """Test environment overrides."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv('STORE_BACKEND', 'Memory')
        monkeypatch.setenv('SEED_BATCH_SIZE', '10')
        monkeypatch.setenv('SEED_WORKERS', '4')
        monkeypatch.setenv('SEED_TICKERS', 'aapl, msft,AAPL')
        monkeypatch.setenv('SEED_START_DATE', '2021-03-01')
        monkeypatch.setenv('DAILY_TABLE', 'bars')

        config = SeederConfig.default()
        assert config.store.backend == 'memory'
        assert config.pipeline.batch_size == 10
        assert config.pipeline.num_workers == 4
        assert config.generator.tickers == ['AAPL', 'MSFT']
        assert config.generator.start_date == date(2021, 3, 1)
        assert config.tables.daily == 'bars'

    def test_malformed_integer(self, monkeypatch):
        monkeypatch.setenv('SEED_WORKERS', 'many')
        with pytest.raises(SetupError):
            PipelineConfig.from_env()

    def test_malformed_float(self, monkeypatch):
        monkeypatch.setenv('RETRY_BASE_DELAY', 'soon')
        with pytest.raises(SetupError):
            RetryConfig.from_env()


class TestValidation:
    """Test SetupError on unusable configurations."""

    def _config(self, **store):
        return SeederConfig(
            store=StoreConfig(**store),
            database=None,
            tables=TableConfig(),
            pipeline=PipelineConfig(),
            generator=GeneratorConfig(tickers=['AAPL'], trading_days=5),
            retry=RetryConfig(),
            logging=None,
        )

    def test_batch_above_dynamodb_limit(self):
        config = self._config()
        config.pipeline.batch_size = 26
        with pytest.raises(SetupError):
            config.validate()

    def test_batch_above_limit_allowed_for_timescale(self):
        config = self._config(backend='timescale')
        config.pipeline.batch_size = 500
        config.validate()

    @pytest.mark.parametrize('mutate', [
        lambda c: setattr(c.store, 'backend', 'cassandra'),
        lambda c: setattr(c.store, 'table_mode', 'truncate'),
        lambda c: setattr(c.pipeline, 'batch_size', 0),
        lambda c: setattr(c.pipeline, 'num_workers', 0),
        lambda c: setattr(c.pipeline, 'channel_capacity', -1),
        lambda c: setattr(c.generator, 'trading_days', -1),
        lambda c: setattr(c.generator, 'tickers', []),
        lambda c: setattr(c.retry, 'max_attempts', 0),
        lambda c: setattr(c.retry, 'base_delay', -1.0),
        lambda c: setattr(c.tables, 'daily', 'tickers'),
    ])
    def test_invalid(self, mutate):
        config = self._config()
        mutate(config)
        with pytest.raises(SetupError):
            config.validate()


class TestParsers:
    """Test CLI/env value parsers."""

    def test_parse_tickers(self):
        assert parse_tickers(' tsla,,nvda , TSLA') == ['TSLA', 'NVDA']

    def test_parse_date(self):
        assert parse_date('2020-01-06') == date(2020, 1, 6)
        with pytest.raises(SetupError):
            parse_date('06/01/2020')
