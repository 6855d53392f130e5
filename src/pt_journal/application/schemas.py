"""Pydantic schemas for pt_journal API."""

from pydantic import BaseModel, Field

from src.pt_journal.domain.models import JournalEntry


class LinkedDocument(BaseModel):
    url: str | None = None
    title: str | None = None
    type: str | None = None
    description: str | None = None


class JournalCreateRequest(BaseModel):
    account_holder_id: int | None = None
    advice_source_id: int | None = None
    ticker: str | None = None
    entry_date: str | None = None
    entry_price: float | None = None
    quantity: float | None = None
    exchange: str | None = None
    direction: str | None = None
    target_price: float | None = None
    target_price_2: float | None = None
    stop_loss_price: float | None = None
    advice_source_details: str | None = None
    entry_reason: str | None = None
    notes: str | None = None
    linked_document_urls: list[LinkedDocument] = Field(default_factory=list)


class JournalUpdateRequest(BaseModel):
    """Partial update: only the fields present in the body are written."""
    advice_source_id: int | None = None
    ticker: str | None = None
    entry_date: str | None = None
    entry_price: float | None = None
    quantity: float | None = None
    exchange: str | None = None
    direction: str | None = None
    target_price: float | None = None
    target_price_2: float | None = None
    stop_loss_price: float | None = None
    advice_source_details: str | None = None
    entry_reason: str | None = None
    notes: str | None = None
    status: str | None = None
    exit_date: str | None = None
    exit_price: float | None = None
    pnl: float | None = None


class JournalExecuteRequest(BaseModel):
    execution_date: str | None = None
    execution_price: float | None = None
    account_holder_id: int | None = None
    exchange: str | None = None


class JournalEntryResponse(BaseModel):
    id: int
    account_holder_id: int
    entry_date: str
    ticker: str
    exchange: str
    direction: str
    quantity: float
    entry_price: float
    status: str
    advice_source_id: int | None = None
    advice_source_name: str | None = None
    target_price: float | None = None
    target_price_2: float | None = None
    stop_loss_price: float | None = None
    advice_source_details: str | None = None
    entry_reason: str | None = None
    notes: str | None = None
    exit_date: str | None = None
    exit_price: float | None = None
    pnl: float | None = None
    execution_date: str | None = None
    execution_price: float | None = None
    linked_trade_id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_domain(cls, entry: JournalEntry) -> "JournalEntryResponse":
        return cls(**entry.__dict__)


class ExecuteJournalResponse(BaseModel):
    entry: JournalEntryResponse
    newTransactionId: int
