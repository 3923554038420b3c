"""Store construction from configuration."""
import logging

import psycopg2
from botocore.exceptions import BotoCoreError, ClientError

from common.config.settings import BACKEND_BATCH_LIMITS, SeederConfig
from common.errors import SetupError

from .dynamodb.store import DynamoDBStore
from .memory import InMemoryStore
from .timescale.pool import PostgresConnectionPool
from .timescale.store import TimescaleStore

logger = logging.getLogger(__name__)


def create_store(config: SeederConfig, check_connection: bool = True):
    """
    Build the configured BulkStore.

    Args:
        config: Complete seeder configuration
        check_connection: Issue one round trip before returning

    Raises:
        SetupError: unknown backend, bad credentials or unreachable store
    """
    backend = config.store.backend
    workers = config.pipeline.num_workers

    if backend == 'memory':
        return InMemoryStore(max_batch_size=BACKEND_BATCH_LIMITS['memory'])

    if backend == 'dynamodb':
        try:
            store = DynamoDBStore(
                endpoint_url=config.store.endpoint_url,
                region=config.store.region,
                access_key_id=config.store.access_key_id,
                secret_access_key=config.store.secret_access_key,
                create_timeout=config.store.create_timeout,
                max_pool_connections=max(10, workers + 2),
            )
            if check_connection:
                store.ping()
        except (BotoCoreError, ClientError, ValueError) as e:
            raise SetupError(f"cannot reach DynamoDB at {config.store.endpoint_url}: {e}") from e
        logger.info(f"Using DynamoDB store at {config.store.endpoint_url}")
        return store

    if backend == 'timescale':
        try:
            pool = PostgresConnectionPool.from_config(config.database, max_conn=workers + 2)
            store = TimescaleStore(pool)
            if check_connection:
                store.ping()
        except psycopg2.Error as e:
            raise SetupError(
                f"cannot reach TimescaleDB at {config.database.host}:{config.database.port}: {e}"
            ) from e
        logger.info(f"Using TimescaleDB store at {config.database.host}:{config.database.port}")
        return store

    raise SetupError(f"unknown store backend {backend!r}")
