"""Storage interfaces using Protocol for duck typing."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

# Attribute type codes: S string, N number (float), I integer, B boolean
ATTRIBUTE_TYPES = ('S', 'N', 'I', 'B')


@dataclass(frozen=True)
class KeyAttribute:
    """One key attribute of a table"""
    name: str
    type: str = 'S'

    def __post_init__(self):
        if self.type not in ('S', 'N', 'I'):
            raise ValueError(f"key attribute {self.name} must be S, N or I, got {self.type}")


@dataclass(frozen=True)
class TableSpec:
    """
    Table definition shared by every backend.

    Key-value stores only use the key attributes; relational backends
    create one column per entry in `columns`.
    """
    name: str
    partition_key: KeyAttribute
    sort_key: Optional[KeyAttribute] = None
    columns: Dict[str, str] = field(default_factory=dict)

    @property
    def key_names(self) -> List[str]:
        keys = [self.partition_key.name]
        if self.sort_key:
            keys.append(self.sort_key.name)
        return keys


DAILY_BAR_COLUMNS = {
    'ticker': 'S',
    'timestamp': 'I',
    'open': 'N',
    'high': 'N',
    'low': 'N',
    'close': 'N',
    'volume': 'I',
    'transactionCount': 'I',
    'otc': 'B',
    'vwap': 'N',
}

TICKER_COLUMNS = {
    'ticker': 'S',
    'name': 'S',
    'market': 'S',
    'locale': 'S',
    'primaryExchange': 'S',
    'shareClassFigi': 'S',
    'type': 'S',
    'active': 'I',
    'cik': 'S',
    'compositeFigi': 'S',
    'currencyName': 'S',
    'delistedUTC': 'I',
    'lastUpdatedUTC': 'I',
}


def daily_bar_table(name: str) -> TableSpec:
    """Daily bars: partition key ticker, sort key timestamp"""
    return TableSpec(
        name=name,
        partition_key=KeyAttribute('ticker', 'S'),
        sort_key=KeyAttribute('timestamp', 'N'),
        columns=dict(DAILY_BAR_COLUMNS),
    )


def ticker_table(name: str) -> TableSpec:
    """Ticker metadata: partition key ticker only"""
    return TableSpec(
        name=name,
        partition_key=KeyAttribute('ticker', 'S'),
        columns=dict(TICKER_COLUMNS),
    )


@runtime_checkable
class BulkStore(Protocol):
    """
    Protocol defining the boundary of the backing store.

    Any backend (DynamoDB, TimescaleDB, in-memory) can implement this
    interface for use by the bulk-load pipeline. Clients must be safe for
    concurrent use by multiple worker threads.
    """

    max_batch_size: int

    def serialize_item(self, record: Any) -> Dict[str, Any]:
        """
        Convert a record to the store's wire representation.

        Raises:
            MarshalError: if the record is invalid or cannot be converted
        """
        ...

    def bulk_write(self, table_name: str, items: List[Dict[str, Any]]) -> None:
        """
        Write up to max_batch_size serialized items in one call.

        Succeeds for the whole batch or raises; no partial-success reporting.
        """
        ...

    def table_exists(self, table_name: str) -> bool:
        """Return True if the table exists."""
        ...

    def create_table(self, spec: TableSpec) -> None:
        """Create a table and wait until it accepts writes."""
        ...

    def delete_table(self, table_name: str) -> None:
        """Delete a table; no-op when it does not exist."""
        ...

    def close(self) -> None:
        """Close all connections and cleanup resources."""
        ...
