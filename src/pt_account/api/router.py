"""pt_account REST API — account holders, their source subscriptions, exchanges."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_account.application.schemas import NameRequest, SubscriptionsRequest
from src.pt_account.application.service import AccountApplicationService
from src.pt_common.database import get_db_session
from src.pt_common.response import ApiResponse, respond

router = APIRouter(prefix="/accounts", tags=["accounts"])

_service = AccountApplicationService()


@router.get("/holders")
async def list_holders(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_holders(db)
    return respond(request, [h.model_dump() for h in data])


@router.post("/holders", status_code=201)
async def create_holder(
    body: NameRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_holder(db, body.name)
    return respond(request, data.model_dump())


@router.put("/holders/{holder_id}")
async def rename_holder(
    holder_id: int,
    body: NameRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.rename_holder(db, holder_id, body.name)
    return respond(request, data.model_dump())


@router.delete("/holders/{holder_id}")
async def delete_holder(
    holder_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_holder(db, holder_id)
    return respond(request, message="Account holder deleted successfully.")


@router.get("/holders/{holder_id}/sources")
async def get_subscriptions(
    holder_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_subscriptions(db, holder_id)
    return respond(request, data.model_dump())


@router.put("/holders/{holder_id}/sources")
async def set_subscriptions(
    holder_id: int,
    body: SubscriptionsRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.set_subscriptions(db, holder_id, body.sourceIds)
    return respond(request, data.model_dump())


@router.get("/exchanges")
async def list_exchanges(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_exchanges(db)
    return respond(request, [e.model_dump() for e in data])


@router.post("/exchanges", status_code=201)
async def create_exchange(
    body: NameRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_exchange(db, body.name)
    return respond(request, data.model_dump())


@router.put("/exchanges/{exchange_id}")
async def rename_exchange(
    exchange_id: int,
    body: NameRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.rename_exchange(db, exchange_id, body.name)
    return respond(request, data.model_dump())


@router.delete("/exchanges/{exchange_id}")
async def delete_exchange(
    exchange_id: int,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    await _service.delete_exchange(db, exchange_id)
    return respond(request, message="Exchange deleted successfully.")
