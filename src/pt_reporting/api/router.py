"""pt_reporting REST API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.database import get_db_session
from src.pt_common.filters import parse_holder
from src.pt_common.response import ApiResponse, respond
from src.pt_pricing.application.service import PriceService, get_price_service
from src.pt_reporting.application.schemas import RealizedPLRangeRequest
from src.pt_reporting.application.service import ReportingService

router = APIRouter(prefix="/reporting", tags=["reporting"])

_service = ReportingService()


@router.get("/daily_performance/{day}")
async def daily_performance(
    day: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    prices: Annotated[PriceService, Depends(get_price_service)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _service.daily_performance(db, day, parse_holder(holder), prices)
    return respond(request, data.model_dump())


@router.get("/positions/{day}")
async def positions(
    day: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _service.positions(db, day, parse_holder(holder))
    return respond(request, data.model_dump())


@router.get("/realized_pl/summary")
async def realized_pl_summary(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _service.realized_pl_summary(db, parse_holder(holder))
    return respond(request, data.model_dump())


@router.post("/realized_pl/summary")
async def realized_pl_range(
    body: RealizedPLRangeRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.realized_pl_range(db, body)
    return respond(request, data.model_dump())


@router.get("/portfolio/overview")
async def portfolio_overview(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _service.portfolio_overview(db, parse_holder(holder))
    return respond(request, [row.model_dump() for row in data])
