"""
Schema management for TimescaleDB.

Turns backend-neutral TableSpecs into DDL.
"""
import logging

from psycopg2 import sql

from ..interfaces import TableSpec

logger = logging.getLogger(__name__)

COLUMN_TYPES = {
    'S': 'TEXT',
    'N': 'DOUBLE PRECISION',
    'I': 'BIGINT',
    'B': 'BOOLEAN',
}


def _regclass_name(table_name: str) -> str:
    # Names such as stocks-data must be double-quoted to resolve as regclass
    return '"' + table_name.replace('"', '""') + '"'


class SchemaManager:
    """
    Creates and drops seed tables.

    Tables with an integer sort key become hypertables partitioned on it
    when the timescaledb extension is available.
    """

    # 30 days in seconds, for epoch-second time columns
    CHUNK_INTERVAL = 30 * 24 * 3600

    def __init__(self, pool, use_hypertables: bool = True):
        """
        Args:
            pool: PostgresConnectionPool instance
            use_hypertables: Convert time-keyed tables to hypertables
        """
        self.pool = pool
        self.use_hypertables = use_hypertables

    def table_exists(self, table_name: str) -> bool:
        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT to_regclass(%s)", (_regclass_name(table_name),))
                row = cur.fetchone()
        return bool(row and row[0])

    def create_table(self, spec: TableSpec) -> None:
        """Create the table for a spec, keyed on its partition/sort keys."""
        columns = dict(spec.columns)
        for key in (spec.partition_key, spec.sort_key):
            if key is not None and key.name not in columns:
                columns[key.name] = key.type

        column_defs = []
        for name, code in columns.items():
            not_null = sql.SQL(' NOT NULL') if name in spec.key_names else sql.SQL('')
            column_defs.append(sql.SQL('{} {}{}').format(
                sql.Identifier(name), sql.SQL(COLUMN_TYPES[code]), not_null
            ))

        ddl = sql.SQL('CREATE TABLE {} ({}, PRIMARY KEY ({}))').format(
            sql.Identifier(spec.name),
            sql.SQL(', ').join(column_defs),
            sql.SQL(', ').join(sql.Identifier(k) for k in spec.key_names),
        )

        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(ddl)
                if self._wants_hypertable(spec):
                    self._create_hypertable(cur, spec)
        logger.info(f"Table {spec.name} created")

    def drop_table(self, table_name: str) -> None:
        with self.pool.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(sql.SQL('DROP TABLE IF EXISTS {}').format(sql.Identifier(table_name)))
        logger.info(f"Dropped table {table_name}")

    def _wants_hypertable(self, spec: TableSpec) -> bool:
        if not self.use_hypertables or spec.sort_key is None:
            return False
        return spec.columns.get(spec.sort_key.name, spec.sort_key.type) == 'I'

    def _create_hypertable(self, cur, spec: TableSpec) -> None:
        cur.execute("SELECT 1 FROM pg_extension WHERE extname = 'timescaledb'")
        if not cur.fetchone():
            logger.warning(f"timescaledb extension missing, {spec.name} stays a plain table")
            return
        cur.execute(
            "SELECT create_hypertable(%s, %s, chunk_time_interval => %s, if_not_exists => TRUE)",
            (_regclass_name(spec.name), spec.sort_key.name, self.CHUNK_INTERVAL),
        )
        logger.debug(f"Converted {spec.name} to hypertable on {spec.sort_key.name}")
