"""Pydantic schemas for pt_research API (watchlist, sources, notes, documents)."""

from typing import Any

from pydantic import BaseModel

from src.pt_research.domain.models import (
    AdviceSource,
    Document,
    SourceDetails,
    SourceNote,
    WatchlistItem,
)

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class WatchlistCreateRequest(BaseModel):
    account_holder_id: int | None = None
    ticker: str | None = None
    advice_source_id: int | None = None
    journal_entry_id: int | None = None
    rec_entry_low: float | None = None
    rec_entry_high: float | None = None
    rec_tp1: float | None = None
    rec_tp2: float | None = None
    rec_stop_loss: float | None = None


class AdviceSourceRequest(BaseModel):
    account_holder_id: int | None = None
    name: str | None = None
    type: str | None = None
    description: str | None = None
    url: str | None = None
    image_path: str | None = None
    details: dict[str, Any] | None = None
    is_active: bool | None = None


class NoteRequest(BaseModel):
    holderId: int | None = None
    note_content: str | None = None


class DocumentCreateRequest(BaseModel):
    account_holder_id: int | None = None
    journal_entry_id: int | None = None
    advice_source_id: int | None = None
    title: str | None = None
    document_type: str | None = None
    external_link: str | None = None
    description: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class WatchlistItemResponse(BaseModel):
    id: int
    account_holder_id: int
    ticker: str
    advice_source_id: int | None
    advice_source_name: str | None = None
    journal_entry_id: int | None = None
    rec_entry_low: float | None = None
    rec_entry_high: float | None = None
    rec_tp1: float | None = None
    rec_tp2: float | None = None
    rec_stop_loss: float | None = None
    status: str
    created_at: str | None = None

    @classmethod
    def from_domain(cls, item: WatchlistItem) -> "WatchlistItemResponse":
        return cls(**item.__dict__)


class AdviceSourceResponse(BaseModel):
    id: int
    account_holder_id: int
    name: str
    type: str
    description: str | None = None
    url: str | None = None
    image_path: str | None = None
    details: dict[str, Any] | None = None
    is_active: bool
    created_at: str | None = None

    @classmethod
    def from_domain(cls, source: AdviceSource) -> "AdviceSourceResponse":
        return cls(**source.__dict__)


class NoteResponse(BaseModel):
    id: int
    advice_source_id: int
    account_holder_id: int
    note_content: str
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_domain(cls, note: SourceNote) -> "NoteResponse":
        return cls(**note.__dict__)


class DocumentResponse(BaseModel):
    id: int
    external_link: str
    account_holder_id: int | None = None
    journal_entry_id: int | None = None
    advice_source_id: int | None = None
    title: str | None = None
    document_type: str | None = None
    description: str | None = None
    created_at: str | None = None

    @classmethod
    def from_domain(cls, doc: Document) -> "DocumentResponse":
        return cls(**doc.__dict__)


class SummaryStats(BaseModel):
    totalJournalEntries: int
    openWatchlistItems: int
    totalTransactions: int
    totalDocuments: int
    totalNotes: int


class SourceDetailsResponse(BaseModel):
    source: AdviceSourceResponse
    journalEntries: list[dict[str, Any]]
    watchlistItems: list[WatchlistItemResponse]
    linkedTransactions: list[dict[str, Any]]
    documents: list[DocumentResponse]
    sourceNotes: list[NoteResponse]
    summaryStats: SummaryStats

    @classmethod
    def from_domain(cls, details: SourceDetails) -> "SourceDetailsResponse":
        return cls(
            source=AdviceSourceResponse.from_domain(details.source),
            journalEntries=details.journal_entries,
            watchlistItems=[WatchlistItemResponse.from_domain(w) for w in details.watchlist_items],
            linkedTransactions=details.linked_transactions,
            documents=[DocumentResponse.from_domain(d) for d in details.documents],
            sourceNotes=[NoteResponse.from_domain(n) for n in details.notes],
            summaryStats=SummaryStats(
                totalJournalEntries=len(details.journal_entries),
                openWatchlistItems=len(details.watchlist_items),
                totalTransactions=len(details.linked_transactions),
                totalDocuments=len(details.documents),
                totalNotes=len(details.notes),
            ),
        )
