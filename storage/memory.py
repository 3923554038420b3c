"""In-memory store for dry runs and testing."""
import logging
import threading
from typing import Any, Dict, List, Tuple

from .interfaces import TableSpec
from .marshal import record_to_item

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Dict-backed BulkStore.
    Items are upserted by primary key, like the real backends.
    """

    def __init__(self, max_batch_size: int = 25):
        self.max_batch_size = max_batch_size
        self.tables: Dict[str, Dict[Tuple, Dict[str, Any]]] = {}
        self.specs: Dict[str, TableSpec] = {}
        self.write_calls: List[Tuple[str, int]] = []
        self._lock = threading.Lock()

    def serialize_item(self, record: Any) -> Dict[str, Any]:
        return record_to_item(record)

    def bulk_write(self, table_name: str, items: List[Dict[str, Any]]) -> None:
        with self._lock:
            if table_name not in self.tables:
                raise KeyError(f"table {table_name} does not exist")
            if len(items) > self.max_batch_size:
                raise ValueError(f"batch of {len(items)} exceeds limit {self.max_batch_size}")
            keys = self.specs[table_name].key_names
            table = self.tables[table_name]
            for item in items:
                table[tuple(item.get(k) for k in keys)] = item
            self.write_calls.append((table_name, len(items)))

    def table_exists(self, table_name: str) -> bool:
        with self._lock:
            return table_name in self.tables

    def create_table(self, spec: TableSpec) -> None:
        with self._lock:
            if spec.name in self.tables:
                raise ValueError(f"table {spec.name} already exists")
            self.tables[spec.name] = {}
            self.specs[spec.name] = spec
        logger.info(f"Table {spec.name} created (memory)")

    def delete_table(self, table_name: str) -> None:
        with self._lock:
            self.tables.pop(table_name, None)
            self.specs.pop(table_name, None)

    def items(self, table_name: str) -> List[Dict[str, Any]]:
        """All stored items of a table"""
        with self._lock:
            return list(self.tables.get(table_name, {}).values())

    def close(self) -> None:
        pass
