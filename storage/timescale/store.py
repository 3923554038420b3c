"""TimescaleDB store - BulkStore over a psycopg2 connection pool."""
import logging
from typing import Any, Dict, List

from psycopg2 import extras, sql

from ..interfaces import TableSpec
from ..marshal import record_to_item
from .pool import PostgresConnectionPool
from .schema import SchemaManager

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 1000


def _columns_of(items: List[Dict[str, Any]]) -> List[str]:
    # Optional attributes are omitted from items; take the union in first-seen order
    columns: Dict[str, None] = {}
    for item in items:
        for key in item:
            columns.setdefault(key, None)
    return list(columns)


class TimescaleStore:
    """
    Facade delegating connections to PostgresConnectionPool and DDL to
    SchemaManager. One multi-row INSERT per batch, in its own transaction,
    so a batch either lands completely or not at all.
    """

    max_batch_size = MAX_BATCH_SIZE

    def __init__(self, pool: PostgresConnectionPool, use_hypertables: bool = True):
        self.pool = pool
        self.schema = SchemaManager(pool, use_hypertables=use_hypertables)

    def ping(self) -> None:
        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")

    def serialize_item(self, record: Any) -> Dict[str, Any]:
        return record_to_item(record)

    def bulk_write(self, table_name: str, items: List[Dict[str, Any]]) -> None:
        """
        Insert a batch; rows whose key already exists are left untouched.

        Raises:
            ValueError: if the batch exceeds max_batch_size
            psycopg2.Error: on any database failure (transaction rolled back)
        """
        if len(items) > self.max_batch_size:
            raise ValueError(f"batch of {len(items)} exceeds limit {self.max_batch_size}")
        if not items:
            return

        columns = _columns_of(items)
        query = sql.SQL('INSERT INTO {} ({}) VALUES %s ON CONFLICT DO NOTHING').format(
            sql.Identifier(table_name),
            sql.SQL(', ').join(sql.Identifier(c) for c in columns),
        )
        rows = [tuple(item.get(c) for c in columns) for item in items]

        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                extras.execute_values(cur, query, rows, page_size=len(rows))
        logger.debug(f"Wrote {len(rows)} rows to {table_name}")

    def table_exists(self, table_name: str) -> bool:
        return self.schema.table_exists(table_name)

    def create_table(self, spec: TableSpec) -> None:
        self.schema.create_table(spec)

    def delete_table(self, table_name: str) -> None:
        self.schema.drop_table(table_name)

    def close(self) -> None:
        self.pool.close()
