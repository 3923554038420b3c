"""Static ticker reference table for the metadata phase."""
import time
from typing import List, Optional

from common.models.data_models import TickerRecord

# symbol, name, primary exchange, CIK
SAMPLE_TICKERS = [
    ("AAPL", "Apple Inc.", "XNAS", "0000320193"),
    ("GOOGL", "Alphabet Inc. Class A", "XNAS", "0001652044"),
    ("MSFT", "Microsoft Corporation", "XNAS", "0000789019"),
    ("TSLA", "Tesla Inc.", "XNAS", "0001318605"),
    ("AMZN", "Amazon.com Inc.", "XNAS", "0001018724"),
    ("NVDA", "NVIDIA Corporation", "XNAS", "0001045810"),
    ("META", "Meta Platforms Inc.", "XNAS", "0001326801"),
    ("JPM", "JPMorgan Chase & Co.", "XNYS", "0000019617"),
    ("JNJ", "Johnson & Johnson", "XNYS", "0000200406"),
    ("PG", "The Procter & Gamble Company", "XNYS", "0000080424"),
    ("UNH", "UnitedHealth Group Incorporated", "XNYS", "0000731766"),
    ("HD", "The Home Depot Inc.", "XNYS", "0000354950"),
    ("BAC", "Bank of America Corporation", "XNYS", "0000070858"),
    ("PFE", "Pfizer Inc.", "XNYS", "0000078003"),
    ("ABBV", "AbbVie Inc.", "XNYS", "0001551152"),
]


def build_ticker_records(symbols: Optional[List[str]] = None,
                         updated_at: Optional[int] = None) -> List[TickerRecord]:
    """
    Reference records for the requested symbols.

    Symbols missing from SAMPLE_TICKERS get a placeholder record so every
    generated daily series has matching metadata.

    Args:
        symbols: Tickers to include (default: the full sample table)
        updated_at: lastUpdatedUTC for every record (default: now)
    """
    now = int(time.time()) if updated_at is None else updated_at
    known = {row[0]: row for row in SAMPLE_TICKERS}
    wanted = symbols if symbols is not None else [row[0] for row in SAMPLE_TICKERS]

    records = []
    for symbol in wanted:
        _, name, exchange, cik = known.get(symbol, (symbol, f"{symbol} Synthetic Corp.", "XNAS", None))
        records.append(TickerRecord(
            ticker=symbol,
            name=name,
            market="stocks",
            locale="us",
            primary_exchange=exchange,
            type="CS",
            active=1,
            cik=cik,
            currency_name="usd",
            last_updated_utc=now,
        ))
    return records
