"""Pydantic schemas for pt_ledger API.

Request fields are optional at the schema level: the service checks them
and answers with the ledger's own validation messages.
"""

from pydantic import BaseModel

from src.pt_common.formatting import format_accounting
from src.pt_ledger.domain.models import Transaction

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class LotSelection(BaseModel):
    parent_buy_id: int
    quantity_to_sell: float | None = None


class TransactionCreateRequest(BaseModel):
    transaction_type: str | None = None
    ticker: str | None = None
    exchange: str | None = None
    quantity: float | None = None
    price: float | None = None
    transaction_date: str | None = None
    account_holder_id: int | None = None
    parent_buy_id: int | None = None
    lots: list[LotSelection] | None = None
    limit_price_up: float | None = None
    limit_up_expiration: str | None = None
    limit_price_down: float | None = None
    limit_down_expiration: str | None = None
    limit_price_up_2: float | None = None
    limit_up_expiration_2: str | None = None
    advice_source_id: int | None = None
    linked_journal_id: int | None = None


class TransactionUpdateRequest(BaseModel):
    ticker: str | None = None
    exchange: str | None = None
    quantity: float | None = None
    price: float | None = None
    transaction_date: str | None = None
    account_holder_id: int | None = None
    limit_price_up: float | None = None
    limit_up_expiration: str | None = None
    limit_price_down: float | None = None
    limit_down_expiration: str | None = None
    limit_price_up_2: float | None = None
    limit_up_expiration_2: str | None = None
    linked_journal_id: int | None = None


class SplitRequest(BaseModel):
    ticker: str | None = None
    split_from: float | None = None
    split_to: float | None = None
    split_date: str | None = None
    account_holder_id: int | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    id: int
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
    source: str
    created_at: str | None = None

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionResponse":
        return cls(**tx.__dict__)


class CreateTransactionResponse(BaseModel):
    transactions: list[TransactionResponse]
    realized_pl: float | None = None
    realized_pl_display: str | None = None

    @classmethod
    def build(
        cls, rows: list[Transaction], realized: float | None = None
    ) -> "CreateTransactionResponse":
        return cls(
            transactions=[TransactionResponse.from_domain(r) for r in rows],
            realized_pl=realized,
            realized_pl_display=format_accounting(realized) if realized is not None else None,
        )


class SplitResponse(BaseModel):
    ticker: str
    ratio: float
    lots_adjusted: int
    split_transaction_id: int
