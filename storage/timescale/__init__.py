"""TimescaleDB backend."""
from .pool import PostgresConnectionPool
from .schema import SchemaManager
from .store import TimescaleStore

__all__ = ['PostgresConnectionPool', 'SchemaManager', 'TimescaleStore']
