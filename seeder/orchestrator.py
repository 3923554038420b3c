"""
Seed orchestrator
Provisions the target tables, then runs one bulk-load pipeline per phase.

Phases:
1. reference - static ticker metadata into the tickers table
2. daily     - generated daily bars for every ticker into the daily table
"""
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from tqdm import tqdm

from common.config.settings import SeederConfig
from common.errors import SetupError
from storage.interfaces import TableSpec, daily_bar_table, ticker_table

from .generator.reference import build_ticker_records
from .generator.synthetic import generate_daily_bars
from .pipeline.batch_writer import BackoffPolicy
from .pipeline.bulk_loader import BulkLoadPipeline, PipelineResult

PHASE_REFERENCE = 'reference'
PHASE_DAILY = 'daily'


@dataclass
class SeedSummary:
    """Results of every phase that ran"""
    phases: Dict[str, PipelineResult] = field(default_factory=dict)
    elapsed_seconds: float = 0.0
    num_workers: int = 0
    batch_size: int = 0

    @property
    def items_written(self) -> int:
        return sum(r.report.items_written for r in self.phases.values())

    @property
    def batches_dropped(self) -> int:
        return sum(r.report.batches_dropped for r in self.phases.values())

    @property
    def items_dropped(self) -> int:
        return sum(r.report.items_dropped for r in self.phases.values())

    @property
    def items_per_second(self) -> float:
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.items_written / self.elapsed_seconds

    def to_dict(self) -> Dict:
        return {
            'items_written': self.items_written,
            'elapsed_seconds': round(self.elapsed_seconds, 3),
            'items_per_second': round(self.items_per_second, 2),
            'workers': self.num_workers,
            'batch_size': self.batch_size,
            'batches_dropped': self.batches_dropped,
            'items_dropped': self.items_dropped,
            'phases': {name: r.to_dict() for name, r in self.phases.items()},
        }


class SeedOrchestrator:
    """
    Drives a complete seed run against one store.

    Tables are provisioned before any data is generated; a provisioning
    failure aborts the run with SetupError. Dropped batches do not fail
    the run, they are reported in the summary.
    """

    def __init__(self, config: SeederConfig, store, logger, show_progress: bool = True,
                 skip_reference: bool = False, skip_daily: bool = False,
                 policy: Optional[BackoffPolicy] = None):
        """
        Args:
            config: Validated SeederConfig
            store: BulkStore implementation
            logger: StructuredLogger
            show_progress: Show a tqdm bar over tickers in the daily phase
            skip_reference: Do not load the tickers table
            skip_daily: Do not load the daily table
            policy: Override the retry policy built from config.retry
        """
        self.config = config
        self.store = store
        self.logger = logger
        self.show_progress = show_progress
        self.skip_reference = skip_reference
        self.skip_daily = skip_daily
        self.policy = policy or BackoffPolicy(
            max_attempts=config.retry.max_attempts,
            base_delay=config.retry.base_delay,
            multiplier=config.retry.multiplier,
        )

    def table_specs(self) -> List[TableSpec]:
        """Tables needed by the phases that will run"""
        specs = []
        if not self.skip_reference:
            specs.append(ticker_table(self.config.tables.tickers))
        if not self.skip_daily:
            specs.append(daily_bar_table(self.config.tables.daily))
        return specs

    def provision(self) -> None:
        """
        Make every target table ready for writes.

        ensure:   create tables that are missing, keep existing ones
        recreate: delete existing tables, then create them fresh

        Raises:
            SetupError: if any store call fails
        """
        mode = self.config.store.table_mode
        for spec in self.table_specs():
            try:
                exists = self.store.table_exists(spec.name)
                if exists and mode == 'recreate':
                    self.logger.info("table_deleting", table=spec.name)
                    self.store.delete_table(spec.name)
                    exists = False
                if exists:
                    self.logger.info("table_exists", table=spec.name)
                    continue
                self.logger.info("table_creating", table=spec.name, mode=mode)
                self.store.create_table(spec)
            except SetupError:
                raise
            except Exception as e:
                raise SetupError(f"failed to provision table {spec.name}: {e}") from e
        self.logger.info("tables_ready", mode=mode, tables=[s.name for s in self.table_specs()])

    def _pipeline(self, table_name: str) -> BulkLoadPipeline:
        pipeline_config = self.config.pipeline
        return BulkLoadPipeline(
            store=self.store,
            table_name=table_name,
            batch_size=pipeline_config.batch_size,
            num_workers=pipeline_config.num_workers,
            policy=self.policy,
            logger=self.logger,
            channel_capacity=pipeline_config.effective_capacity,
        )

    def load_reference(self) -> PipelineResult:
        """Phase 1: ticker metadata"""
        records = build_ticker_records(self.config.generator.tickers)
        self.logger.info("phase_started", phase=PHASE_REFERENCE, tickers=len(records))
        result = self._pipeline(self.config.tables.tickers).run(records)
        self.logger.info("phase_completed", phase=PHASE_REFERENCE, **result.report.to_dict())
        return result

    def load_daily(self) -> PipelineResult:
        """Phase 2: generated daily bars"""
        generator_config = self.config.generator
        self.logger.info(
            "phase_started",
            phase=PHASE_DAILY,
            tickers=len(generator_config.tickers),
            trading_days=generator_config.trading_days,
            seed=generator_config.seed,
            start_date=generator_config.start_date.isoformat(),
        )

        def progress(symbols):
            return tqdm(symbols, desc="Daily Bars", unit="ticker", disable=not self.show_progress)

        bars = generate_daily_bars(
            symbols=generator_config.tickers,
            trading_days=generator_config.trading_days,
            seed=generator_config.seed,
            start_date=generator_config.start_date,
            logger=self.logger,
            progress=progress,
        )
        result = self._pipeline(self.config.tables.daily).run(bars)
        self.logger.info("phase_completed", phase=PHASE_DAILY, **result.report.to_dict())
        return result

    def run(self) -> SeedSummary:
        """
        Provision, then run every enabled phase in order.

        Raises:
            SetupError: provisioning failed; nothing was generated
        """
        self.provision()

        summary = SeedSummary(
            num_workers=self.config.pipeline.num_workers,
            batch_size=self.config.pipeline.batch_size,
        )
        started = time.monotonic()
        if not self.skip_reference:
            summary.phases[PHASE_REFERENCE] = self.load_reference()
        if not self.skip_daily:
            summary.phases[PHASE_DAILY] = self.load_daily()
        summary.elapsed_seconds = time.monotonic() - started
        return summary

    def log_summary(self, summary: SeedSummary) -> None:
        """Performance summary for the whole run"""
        self.logger.info(
            "performance_summary",
            total_items=summary.items_written,
            total_seconds=round(summary.elapsed_seconds, 2),
            items_per_second=round(summary.items_per_second, 2),
            workers=summary.num_workers,
            batch_size=summary.batch_size,
            batches_dropped=summary.batches_dropped,
            items_dropped=summary.items_dropped,
        )
        if summary.batches_dropped:
            self.logger.warn(
                "batches_dropped",
                batches=summary.batches_dropped,
                items=summary.items_dropped,
            )
