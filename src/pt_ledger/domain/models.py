"""Domain models for pt_ledger — pure dataclasses, no SQLAlchemy dependency.

A BUY row is a *lot*: original_quantity is what was bought and
quantity_remaining is what has not been sold yet. A SELL row always points
at exactly one parent BUY through parent_buy_id.
"""

from dataclasses import dataclass, field


@dataclass
class Transaction:
    id: int
    ticker: str
    exchange: str
    transaction_type: str            # TransactionType value
    quantity: float
    price: float
    transaction_date: str            # YYYY-MM-DD
    account_holder_id: int
    original_quantity: float | None = None
    quantity_remaining: float | None = None
    parent_buy_id: int | None = None
    limit_price_up: float | None = None
    limit_up_expiration: str | None = None
    limit_price_down: float | None = None
    limit_down_expiration: str | None = None
    limit_price_up_2: float | None = None
    limit_up_expiration_2: str | None = None
    advice_source_id: int | None = None
    linked_journal_id: int | None = None
    source: str = "MANUAL"
    created_at: str | None = None

    @property
    def is_buy(self) -> bool:
        return self.transaction_type == "BUY"

    @property
    def cost_basis(self) -> float:
        """Cost of the unsold part of a lot."""
        return self.price * (self.quantity_remaining or 0.0)


@dataclass
class NewTransaction:
    """Values for an INSERT; ids and timestamps come from the database."""
    ticker: str
    exchange: str
    transaction_type: str
    quantity: float
    price: float
    transaction_date: str
    account_holder_id: int
    original_quantity: float | None = None
    quantity_remaining: float | None = None
    parent_buy_id: int | None = None
    limit_price_up: float | None = None
    limit_up_expiration: str | None = None
    limit_price_down: float | None = None
    limit_down_expiration: str | None = None
    limit_price_up_2: float | None = None
    limit_up_expiration_2: str | None = None
    advice_source_id: int | None = None
    linked_journal_id: int | None = None
    source: str = "MANUAL"


@dataclass
class LotAllocation:
    parent_buy_id: int
    quantity: float


@dataclass
class SellResult:
    """Rows written by one sell request and the P/L they realized."""
    sells: list[Transaction] = field(default_factory=list)
    realized_pl: float = 0.0
