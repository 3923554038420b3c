#!/usr/bin/env python3
"""
Seed DB - CLI Entry Point

Generates synthetic daily bars and ticker metadata and bulk-loads them
into DynamoDB (LocalStack by default), TimescaleDB or an in-memory store.
Endpoint and credentials come from the environment / .env file.
"""
import argparse
import logging
import sys
from typing import List, Optional

from common.config.settings import (
    BACKENDS,
    TABLE_MODES,
    SeederConfig,
    parse_date,
    parse_tickers,
)
from common.errors import SetupError, WorkerPoolError
from seeder.orchestrator import SeedOrchestrator
from seeder.utils.structured_logging import get_logger
from storage.factory import create_store


def parse_args(argv: Optional[List[str]] = None):
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog='seed-db',
        description='Seed a store with synthetic stock market data',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Seed LocalStack DynamoDB with the defaults (15 tickers, ~5 years)
  %(prog)s

  # Quick dry run against the in-memory store
  %(prog)s --backend memory --tickers AAPL,MSFT --trading-days 20

  # Rebuild both tables from scratch
  %(prog)s --table-mode recreate
        """
    )

    parser.add_argument('--backend', choices=BACKENDS,
                        help='Store backend (default: $STORE_BACKEND or dynamodb)')
    parser.add_argument('--tickers', type=str, metavar='SYMBOLS',
                        help='Comma-separated ticker list (default: built-in 15 tickers)')
    parser.add_argument('--trading-days', type=int,
                        help='Daily bars per ticker (default: 1303)')
    parser.add_argument('--start-date', type=str, metavar='YYYY-MM-DD',
                        help='First candidate trading day (default: 5 years ago)')
    parser.add_argument('--seed', type=int,
                        help='Random seed (default: 42)')
    parser.add_argument('--batch-size', type=int,
                        help='Items per bulk write (default: 25)')
    parser.add_argument('--workers', type=int,
                        help='Concurrent writer threads (default: 10)')
    parser.add_argument('--max-attempts', type=int,
                        help='Write attempts per batch (default: 3)')
    parser.add_argument('--base-delay', type=float,
                        help='Seconds before the first retry, doubled each attempt (default: 1.0)')
    parser.add_argument('--table-mode', choices=TABLE_MODES,
                        help='ensure: create missing tables; recreate: drop and create (default: ensure)')
    parser.add_argument('--tickers-table', type=str,
                        help='Ticker metadata table (default: tickers)')
    parser.add_argument('--daily-table', type=str,
                        help='Daily bars table (default: stocks-data)')
    parser.add_argument('--skip-reference', action='store_true',
                        help='Do not load ticker metadata')
    parser.add_argument('--skip-daily', action='store_true',
                        help='Do not load daily bars')
    parser.add_argument('--no-progress', action='store_true',
                        help='Disable the progress bar')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARN', 'ERROR'],
                        help='Set logging level (default: $LOG_LEVEL or INFO)')

    return parser.parse_args(argv)


def build_config(args) -> SeederConfig:
    """
    Environment defaults overridden by CLI flags.

    Raises:
        SetupError: on malformed environment values or an invalid combination
    """
    config = SeederConfig.default()

    if args.backend:
        config.store.backend = args.backend
    if args.table_mode:
        config.store.table_mode = args.table_mode
    if args.tickers_table:
        config.tables.tickers = args.tickers_table
    if args.daily_table:
        config.tables.daily = args.daily_table
    if args.tickers:
        config.generator.tickers = parse_tickers(args.tickers)
    if args.trading_days is not None:
        config.generator.trading_days = args.trading_days
    if args.start_date:
        config.generator.start_date = parse_date(args.start_date)
    if args.seed is not None:
        config.generator.seed = args.seed
    if args.batch_size is not None:
        config.pipeline.batch_size = args.batch_size
    if args.workers is not None:
        config.pipeline.num_workers = args.workers
    if args.max_attempts is not None:
        config.retry.max_attempts = args.max_attempts
    if args.base_delay is not None:
        config.retry.base_delay = args.base_delay
    if args.log_level:
        config.logging.level = args.log_level

    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    # Bootstrap logger until the configuration is known
    logger = get_logger('seed_db', level=args.log_level or 'INFO')
    try:
        config = build_config(args)
    except SetupError as e:
        logger.error("invalid_configuration", error=str(e))
        return 1

    logger = get_logger(
        'seed_db',
        level=config.logging.level,
        environment=config.logging.environment,
        log_dir=config.logging.log_dir,
    )
    logging.basicConfig(
        level=logging.WARNING if config.logging.level != 'DEBUG' else logging.DEBUG,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    )

    logger.info(
        "seed_starting",
        backend=config.store.backend,
        table_mode=config.store.table_mode,
        tickers=len(config.generator.tickers),
        trading_days=config.generator.trading_days,
        workers=config.pipeline.num_workers,
        batch_size=config.pipeline.batch_size,
    )

    try:
        store = create_store(config)
    except SetupError as e:
        logger.error("store_unavailable", error=str(e))
        return 1

    try:
        orchestrator = SeedOrchestrator(
            config,
            store,
            logger,
            show_progress=not args.no_progress,
            skip_reference=args.skip_reference,
            skip_daily=args.skip_daily,
        )
        summary = orchestrator.run()
        orchestrator.log_summary(summary)
    except SetupError as e:
        logger.error("setup_failed", error=str(e))
        return 1
    except WorkerPoolError as e:
        logger.error("workers_failed", error=str(e), failed_workers=len(e.errors))
        return 1
    finally:
        store.close()

    logger.info("seed_completed")
    return 0


if __name__ == '__main__':
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        sys.exit(130)
