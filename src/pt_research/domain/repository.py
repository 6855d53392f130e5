"""Repository Protocols for watchlist, advice sources, documents and notes."""

from collections.abc import Sequence
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_research.domain.models import (
    AdviceSource,
    Document,
    SourceNote,
    WatchlistItem,
)


class WatchlistRepositoryProtocol(Protocol):
    async def list_open(self, db: AsyncSession, holder_id: int) -> list[WatchlistItem]: ...

    async def list_open_for_ticker(
        self, db: AsyncSession, holder_id: int, ticker: str
    ) -> list[WatchlistItem]: ...

    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> WatchlistItem: ...

    async def archive(self, db: AsyncSession, item_id: int) -> bool: ...

    async def archive_for_sources(
        self, db: AsyncSession, holder_id: int, ticker: str, source_ids: Sequence[int]
    ) -> int: ...


class AdviceSourceRepositoryProtocol(Protocol):
    async def list_sources(
        self, db: AsyncSession, holder_id: int | None, include_inactive: bool
    ) -> list[AdviceSource]: ...

    async def get(self, db: AsyncSession, source_id: int) -> AdviceSource | None: ...

    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> AdviceSource: ...

    async def update(
        self, db: AsyncSession, source_id: int, values: dict[str, Any]
    ) -> AdviceSource | None: ...

    async def set_active(
        self, db: AsyncSession, source_id: int, is_active: bool
    ) -> AdviceSource | None: ...

    async def count_links(self, db: AsyncSession, source_id: int) -> int: ...

    async def delete(self, db: AsyncSession, source_id: int) -> None: ...

    async def list_journal_entries(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[dict[str, Any]]: ...

    async def list_watchlist_items(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[WatchlistItem]: ...

    async def list_linked_transactions(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[dict[str, Any]]: ...


class DocumentRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> Document: ...

    async def delete(self, db: AsyncSession, document_id: int) -> bool: ...

    async def list_for_source(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[Document]: ...

    async def list_for_journal(self, db: AsyncSession, entry_id: int) -> list[Document]: ...

    async def delete_for_journal(self, db: AsyncSession, entry_id: int) -> None: ...


class SourceNoteRepositoryProtocol(Protocol):
    async def list_for_source(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> list[SourceNote]: ...

    async def insert(
        self, db: AsyncSession, source_id: int, holder_id: int, content: str
    ) -> SourceNote: ...

    async def update(
        self, db: AsyncSession, note_id: int, source_id: int, holder_id: int, content: str
    ) -> SourceNote | None: ...

    async def delete(
        self, db: AsyncSession, note_id: int, source_id: int, holder_id: int
    ) -> bool: ...
