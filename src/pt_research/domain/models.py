"""Domain models for pt_research — advice sources and the ideas they produce."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AdviceSource:
    id: int
    account_holder_id: int
    name: str
    type: str
    description: str | None = None
    url: str | None = None
    image_path: str | None = None
    details: dict[str, Any] | None = None
    is_active: bool = True
    created_at: str | None = None


@dataclass
class WatchlistItem:
    """A trade idea: ticker plus the source's recommended entry/exit levels."""
    id: int
    account_holder_id: int
    ticker: str
    advice_source_id: int | None
    status: str
    journal_entry_id: int | None = None
    rec_entry_low: float | None = None
    rec_entry_high: float | None = None
    rec_tp1: float | None = None
    rec_tp2: float | None = None
    rec_stop_loss: float | None = None
    created_at: str | None = None
    advice_source_name: str | None = None


@dataclass
class Document:
    id: int
    external_link: str
    account_holder_id: int | None = None
    journal_entry_id: int | None = None
    advice_source_id: int | None = None
    title: str | None = None
    document_type: str | None = None
    description: str | None = None
    created_at: str | None = None


@dataclass
class SourceNote:
    id: int
    advice_source_id: int
    account_holder_id: int
    note_content: str
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class SourceDetails:
    """Everything linked to one advice source, as shown on its detail page."""
    source: AdviceSource
    journal_entries: list[dict[str, Any]] = field(default_factory=list)
    watchlist_items: list[WatchlistItem] = field(default_factory=list)
    linked_transactions: list[dict[str, Any]] = field(default_factory=list)
    documents: list[Document] = field(default_factory=list)
    notes: list[SourceNote] = field(default_factory=list)
