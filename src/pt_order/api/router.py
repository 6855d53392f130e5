"""pt_order REST API — pending orders and notifications."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.database import get_db_session
from src.pt_common.filters import parse_holder
from src.pt_common.response import ApiResponse, respond
from src.pt_order.application.schemas import PendingOrderCreateRequest, StatusUpdateRequest
from src.pt_order.application.service import OrderApplicationService

router = APIRouter(prefix="/orders", tags=["orders"])

_service = OrderApplicationService()


@router.get("/pending")
async def list_pending_orders(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _service.list_pending(db, parse_holder(holder))
    return respond(request, [o.model_dump() for o in data])


@router.post("/pending", status_code=201)
async def create_pending_order(
    body: PendingOrderCreateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_pending(db, body)
    return respond(request, data.model_dump(), message="Pending order created successfully.")


@router.put("/pending/{order_id}")
async def update_pending_order(
    order_id: int,
    body: StatusUpdateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.set_pending_status(db, order_id, body.status)
    return respond(request, data.model_dump(), message="Pending order status updated.")


@router.get("/notifications")
async def list_notifications(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    holder: str | None = Query(default=None),
) -> ApiResponse:
    data = await _service.list_notifications(db, parse_holder(holder))
    return respond(request, [n.model_dump() for n in data])


@router.put("/notifications/{notification_id}")
async def update_notification(
    notification_id: int,
    body: StatusUpdateRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.set_notification_status(db, notification_id, body.status)
    return respond(request, data.model_dump(), message="Notification status updated.")
