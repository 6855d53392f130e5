"""pt_journal REST API — paper-trade journal."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.database import get_db_session
from src.pt_common.filters import parse_holder
from src.pt_common.response import ApiResponse, respond
from src.pt_journal.application.schemas import (
    JournalCreateRequest,
    JournalExecuteRequest,
    JournalUpdateRequest,
)
from src.pt_journal.application.service import JournalApplicationService

router = APIRouter(prefix="/journal", tags=["journal"])

_service = JournalApplicationService()


@router.get("")
async def list_entries(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
    status: str | None = Query(default=None),
) -> ApiResponse:
    data = await _service.list_entries(db, parse_holder(holder), status)
    return respond(request, [e.model_dump() for e in data])


@router.post("", status_code=201)
async def create_entry(
    body: JournalCreateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create(db, body)
    return respond(request, data.model_dump())


@router.put("/{entry_id}")
async def update_entry(
    entry_id: int,
    body: JournalUpdateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update(db, entry_id, body)
    return respond(request, data.model_dump(), message="Journal entry updated successfully.")


@router.put("/{entry_id}/execute")
async def execute_entry(
    entry_id: int,
    body: JournalExecuteRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.execute(db, entry_id, body)
    return respond(request, data.model_dump(), message="Journal entry executed successfully!")


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete(db, entry_id)
    return respond(
        request, message="Journal entry and associated documents deleted successfully."
    )
