"""Domain models for pt_importer — parsed brokerage rows and import sessions."""

from dataclasses import dataclass, field

from src.pt_ledger.domain.models import Transaction


@dataclass
class ParsedTrade:
    """One brokerage CSV row in the ledger's vocabulary."""
    date: str          # YYYY-MM-DD
    ticker: str
    type: str          # BUY | SELL
    quantity: float
    price: float
    exchange: str


@dataclass
class ImportRow:
    trade: ParsedTrade
    status: str                          # ImportRowStatus value
    csv_index: int
    matched: Transaction | None = None


@dataclass
class ImportSession:
    id: str
    account_holder_id: int
    rows: list[ImportRow] = field(default_factory=list)
    created_at: float = 0.0              # monotonic seconds
