"""pt_research REST API — watchlist ideas, advice sources with notes, documents."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.database import get_db_session
from src.pt_common.filters import parse_holder
from src.pt_common.response import ApiResponse, respond
from src.pt_research.application.schemas import (
    AdviceSourceRequest,
    DocumentCreateRequest,
    NoteRequest,
    WatchlistCreateRequest,
)
from src.pt_research.application.service import (
    AdviceSourceService,
    DocumentService,
    WatchlistService,
)

watchlist_router = APIRouter(prefix="/watchlist", tags=["watchlist"])
sources_router = APIRouter(prefix="/sources", tags=["sources"])
documents_router = APIRouter(prefix="/documents", tags=["documents"])

_watchlist = WatchlistService()
_sources = AdviceSourceService()
_documents = DocumentService()


# ---------------------------------------------------------------------------
# Watchlist
# ---------------------------------------------------------------------------


@watchlist_router.get("")
async def list_watchlist(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _watchlist.list_open(db, parse_holder(holder))
    return respond(request, [w.model_dump() for w in data])


@watchlist_router.post("", status_code=201)
async def add_watchlist_item(
    body: WatchlistCreateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _watchlist.add(db, body)
    return respond(request, data.model_dump())


@watchlist_router.delete("/{item_id}")
async def archive_watchlist_item(
    item_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _watchlist.archive(db, item_id)
    return respond(request, message="Watchlist item archived.")


# ---------------------------------------------------------------------------
# Advice sources
# ---------------------------------------------------------------------------


@sources_router.get("")
async def list_sources(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
    include_inactive: bool = Query(default=False),
) -> ApiResponse:
    data = await _sources.list_sources(db, parse_holder(holder), include_inactive)
    return respond(request, [s.model_dump() for s in data])


@sources_router.post("", status_code=201)
async def create_source(
    body: AdviceSourceRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _sources.create(db, body)
    return respond(request, data.model_dump())


@sources_router.put("/{source_id}")
async def update_source(
    source_id: int,
    body: AdviceSourceRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _sources.update(db, source_id, body)
    return respond(request, data.model_dump())


@sources_router.put("/{source_id}/toggle-active")
async def toggle_source(
    source_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _sources.toggle_active(db, source_id)
    return respond(request, data.model_dump())


@sources_router.delete("/{source_id}")
async def delete_source(
    source_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _sources.delete(db, source_id)
    return respond(request, message="Advice source deleted successfully.")


@sources_router.get("/{source_id}/details")
async def source_details(
    source_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _sources.details(db, source_id, parse_holder(holder))
    return respond(request, data.model_dump())


@sources_router.post("/{source_id}/notes", status_code=201)
async def add_note(
    source_id: int,
    body: NoteRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _sources.add_note(db, source_id, body)
    return respond(request, data.model_dump())


@sources_router.put("/{source_id}/notes/{note_id}")
async def update_note(
    source_id: int,
    note_id: int,
    body: NoteRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _sources.update_note(db, source_id, note_id, body)
    return respond(request, data.model_dump())


@sources_router.delete("/{source_id}/notes/{note_id}")
async def delete_note(
    source_id: int,
    note_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    await _sources.delete_note(db, source_id, note_id, parse_holder(holder))
    return respond(request, message="Note deleted successfully.")


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@documents_router.post("", status_code=201)
async def create_document(
    body: DocumentCreateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _documents.create(db, body)
    return respond(request, data.model_dump())


@documents_router.delete("/{document_id}")
async def delete_document(
    document_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _documents.delete(db, document_id)
    return respond(request, message="Document deleted successfully.")
