"""Research services — watchlist ideas, advice sources, notes and documents."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.errors import (
    AdviceSourceInUseError,
    AdviceSourceNotFoundError,
    DocumentNotFoundError,
    InvalidResearchInputError,
    SourceNoteNotFoundError,
    WatchlistItemNotFoundError,
)
from src.pt_research.application.schemas import (
    AdviceSourceRequest,
    AdviceSourceResponse,
    DocumentCreateRequest,
    DocumentResponse,
    NoteRequest,
    NoteResponse,
    SourceDetailsResponse,
    WatchlistCreateRequest,
    WatchlistItemResponse,
)
from src.pt_research.domain.models import SourceDetails
from src.pt_research.domain.repository import (
    AdviceSourceRepositoryProtocol,
    DocumentRepositoryProtocol,
    SourceNoteRepositoryProtocol,
    WatchlistRepositoryProtocol,
)
from src.pt_research.infrastructure.persistence import (
    AdviceSourceRepository,
    DocumentRepository,
    SourceNoteRepository,
    WatchlistRepository,
)

logger = logging.getLogger(__name__)


def require_holder(holder_id: int | None) -> int:
    if holder_id is None:
        raise InvalidResearchInputError("A specific account holder is required.")
    return holder_id


class WatchlistService:
    def __init__(
        self,
        repo: WatchlistRepositoryProtocol | None = None,
        sources: AdviceSourceRepositoryProtocol | None = None,
    ) -> None:
        self._repo: WatchlistRepositoryProtocol = repo or WatchlistRepository()
        self._sources: AdviceSourceRepositoryProtocol = sources or AdviceSourceRepository()

    async def list_open(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[WatchlistItemResponse]:
        items = await self._repo.list_open(db, require_holder(holder_id))
        return [WatchlistItemResponse.from_domain(i) for i in items]

    async def add(self, db: AsyncSession, body: WatchlistCreateRequest) -> WatchlistItemResponse:
        ticker = (body.ticker or "").strip().upper()
        if not body.account_holder_id or not ticker or not body.advice_source_id:
            raise InvalidResearchInputError(
                "Account holder, ticker, and advice source are required."
            )
        if await self._sources.get(db, body.advice_source_id) is None:
            raise AdviceSourceNotFoundError(body.advice_source_id)
        values = body.model_dump()
        values["ticker"] = ticker
        try:
            item = await self._repo.insert(db, values)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return WatchlistItemResponse.from_domain(item)

    async def archive(self, db: AsyncSession, item_id: int) -> None:
        try:
            if not await self._repo.archive(db, item_id):
                raise WatchlistItemNotFoundError(item_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise


class AdviceSourceService:
    def __init__(
        self,
        repo: AdviceSourceRepositoryProtocol | None = None,
        documents: DocumentRepositoryProtocol | None = None,
        notes: SourceNoteRepositoryProtocol | None = None,
    ) -> None:
        self._repo: AdviceSourceRepositoryProtocol = repo or AdviceSourceRepository()
        self._documents: DocumentRepositoryProtocol = documents or DocumentRepository()
        self._notes: SourceNoteRepositoryProtocol = notes or SourceNoteRepository()

    async def list_sources(
        self, db: AsyncSession, holder_id: int | None, include_inactive: bool
    ) -> list[AdviceSourceResponse]:
        sources = await self._repo.list_sources(db, holder_id, include_inactive)
        return [AdviceSourceResponse.from_domain(s) for s in sources]

    async def create(self, db: AsyncSession, body: AdviceSourceRequest) -> AdviceSourceResponse:
        name = (body.name or "").strip()
        source_type = (body.type or "").strip()
        if not body.account_holder_id or not name or not source_type:
            raise InvalidResearchInputError("Account holder, name, and type are required.")
        values = body.model_dump()
        values.update(name=name, type=source_type,
                      is_active=True if body.is_active is None else body.is_active)
        try:
            source = await self._repo.insert(db, values)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Created advice source %d (%s)", source.id, source.name)
        return AdviceSourceResponse.from_domain(source)

    async def update(
        self, db: AsyncSession, source_id: int, body: AdviceSourceRequest
    ) -> AdviceSourceResponse:
        values = body.model_dump(exclude_unset=True, exclude={"account_holder_id"})
        for key in ("name", "type"):
            if key in values and not (values[key] or "").strip():
                raise InvalidResearchInputError(f"Advice source {key} cannot be empty.")
        try:
            source = await self._repo.update(db, source_id, values)
            if source is None:
                raise AdviceSourceNotFoundError(source_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return AdviceSourceResponse.from_domain(source)

    async def toggle_active(self, db: AsyncSession, source_id: int) -> AdviceSourceResponse:
        current = await self._repo.get(db, source_id)
        if current is None:
            raise AdviceSourceNotFoundError(source_id)
        try:
            source = await self._repo.set_active(db, source_id, not current.is_active)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return AdviceSourceResponse.from_domain(source)  # type: ignore[arg-type]

    async def delete(self, db: AsyncSession, source_id: int) -> None:
        if await self._repo.get(db, source_id) is None:
            raise AdviceSourceNotFoundError(source_id)
        if await self._repo.count_links(db, source_id) > 0:
            raise AdviceSourceInUseError()
        try:
            await self._repo.delete(db, source_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def details(
        self, db: AsyncSession, source_id: int, holder_id: int | None
    ) -> SourceDetailsResponse:
        source = await self._repo.get(db, source_id)
        if source is None:
            raise AdviceSourceNotFoundError(source_id)
        details = SourceDetails(
            source=source,
            journal_entries=await self._repo.list_journal_entries(db, source_id, holder_id),
            watchlist_items=await self._repo.list_watchlist_items(db, source_id, holder_id),
            linked_transactions=await self._repo.list_linked_transactions(
                db, source_id, holder_id
            ),
            documents=await self._documents.list_for_source(db, source_id, holder_id),
            notes=await self._notes.list_for_source(db, source_id, holder_id),
        )
        return SourceDetailsResponse.from_domain(details)

    # -- notes ----------------------------------------------------------

    @staticmethod
    def _note_fields(body: NoteRequest) -> tuple[int, str]:
        content = (body.note_content or "").strip()
        if not body.holderId or not content:
            raise InvalidResearchInputError(
                "Account Holder ID and note content are required."
            )
        return body.holderId, content

    async def add_note(
        self, db: AsyncSession, source_id: int, body: NoteRequest
    ) -> NoteResponse:
        holder_id, content = self._note_fields(body)
        if await self._repo.get(db, source_id) is None:
            raise AdviceSourceNotFoundError(source_id)
        try:
            note = await self._notes.insert(db, source_id, holder_id, content)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return NoteResponse.from_domain(note)

    async def update_note(
        self, db: AsyncSession, source_id: int, note_id: int, body: NoteRequest
    ) -> NoteResponse:
        holder_id, content = self._note_fields(body)
        try:
            note = await self._notes.update(db, note_id, source_id, holder_id, content)
            if note is None:
                raise SourceNoteNotFoundError(note_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return NoteResponse.from_domain(note)

    async def delete_note(
        self, db: AsyncSession, source_id: int, note_id: int, holder_id: int | None
    ) -> None:
        if not holder_id:
            raise InvalidResearchInputError("Account Holder ID is required.")
        try:
            if not await self._notes.delete(db, note_id, source_id, holder_id):
                raise SourceNoteNotFoundError(note_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise


class DocumentService:
    def __init__(self, repo: DocumentRepositoryProtocol | None = None) -> None:
        self._repo: DocumentRepositoryProtocol = repo or DocumentRepository()

    async def create(self, db: AsyncSession, body: DocumentCreateRequest) -> DocumentResponse:
        link = (body.external_link or "").strip()
        if not link:
            raise InvalidResearchInputError("A document link is required.")
        if (body.journal_entry_id is None) == (body.advice_source_id is None):
            raise InvalidResearchInputError(
                "A document must be linked to exactly one journal entry or advice source."
            )
        values = body.model_dump()
        values["external_link"] = link
        try:
            doc = await self._repo.insert(db, values)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return DocumentResponse.from_domain(doc)

    async def delete(self, db: AsyncSession, document_id: int) -> None:
        try:
            if not await self._repo.delete(db, document_id):
                raise DocumentNotFoundError(document_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
