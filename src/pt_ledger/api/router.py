"""pt_ledger REST API — transactions, lot sells and stock splits."""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.database import get_db_session
from src.pt_common.enums import TransactionType
from src.pt_common.filters import parse_holder
from src.pt_common.response import ApiResponse, respond
from src.pt_ledger.application.schemas import (
    SplitRequest,
    TransactionCreateRequest,
    TransactionUpdateRequest,
)
from src.pt_ledger.application.service import TransactionApplicationService
from src.pt_pricing.application.service import PriceService, get_price_service
from src.pt_scheduler.jobs import capture_eod_prices

router = APIRouter(prefix="/transactions", tags=["transactions"])

_service = TransactionApplicationService()


@router.get("")
async def list_transactions(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _service.list_transactions(db, parse_holder(holder))
    return respond(request, [t.model_dump() for t in data])


@router.post("", status_code=201)
async def create_transaction(
    body: TransactionCreateRequest,
    background: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    prices: Annotated[PriceService, Depends(get_price_service)],
    request: Request,
) -> ApiResponse:
    data = await _service.create(db, body)
    if (body.transaction_type or "").upper() == TransactionType.SELL.value:
        background.add_task(capture_eod_prices, data.transactions[0].transaction_date, prices)
    return respond(request, data.model_dump(), message="Transaction recorded successfully.")


@router.post("/split", status_code=201)
async def record_split(
    body: SplitRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.record_split(db, body)
    return respond(request, data.model_dump(), message="Stock split applied.")


@router.put("/{tx_id}")
async def update_transaction(
    tx_id: int,
    body: TransactionUpdateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.update(db, tx_id, body)
    return respond(request, data.model_dump(), message="Transaction updated successfully.")


@router.delete("/{tx_id}")
async def delete_transaction(
    tx_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete(db, tx_id)
    return respond(request, message="Transaction deleted successfully.")
