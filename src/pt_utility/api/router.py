"""pt_utility REST API — batch prices, manual EOD capture, value snapshots."""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.database import get_db_session
from src.pt_common.datetime_utils import parse_trade_date
from src.pt_common.errors import RequestValidationFailedError
from src.pt_common.filters import parse_holder
from src.pt_common.response import ApiResponse, respond
from src.pt_pricing.application.service import PriceService, get_price_service
from src.pt_scheduler.jobs import capture_eod_prices
from src.pt_utility.application.schemas import BatchPriceRequest, SnapshotRequest
from src.pt_utility.application.service import UtilityService

router = APIRouter(prefix="/utility", tags=["utility"])

_service = UtilityService()


@router.post("/prices/batch")
async def batch_prices(
    body: BatchPriceRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    prices: Annotated[PriceService, Depends(get_price_service)],
    request: Request,
) -> ApiResponse:
    data = await _service.batch_prices(db, body, prices)
    return respond(request, data)


@router.post("/tasks/capture-eod/{day}", status_code=202)
async def trigger_eod_capture(
    day: str,
    background: BackgroundTasks,
    prices: Annotated[PriceService, Depends(get_price_service)],
    request: Request,
) -> ApiResponse:
    parsed = parse_trade_date(day)
    if parsed is None:
        raise RequestValidationFailedError(f"Invalid date: {day}")
    background.add_task(capture_eod_prices, parsed.isoformat(), prices)
    return respond(request, message=f"EOD process for {parsed.isoformat()} acknowledged.")


@router.get("/snapshots")
async def list_snapshots(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _service.list_snapshots(db, holder, parse_holder(holder))
    return respond(request, [s.model_dump() for s in data])


@router.post("/snapshots", status_code=201)
async def save_snapshot(
    body: SnapshotRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.save_snapshot(db, body)
    return respond(request, data.model_dump(), message="Snapshot saved.")


@router.delete("/snapshots/{snapshot_id}")
async def delete_snapshot(
    snapshot_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_snapshot(db, snapshot_id)
    return respond(request, message="Snapshot deleted successfully.")
