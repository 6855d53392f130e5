"""pt_importer REST API — brokerage CSV upload and commit."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.database import get_db_session
from src.pt_common.response import ApiResponse, respond
from src.pt_importer.application.schemas import ImportRequest
from src.pt_importer.application.service import ImporterService

router = APIRouter(prefix="/importer", tags=["importer"])

_service = ImporterService()


@router.post("/upload")
async def upload_csv(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    csvfile: UploadFile | None = File(default=None),
    accountHolderId: str | None = Form(default=None),
    brokerageTemplate: str | None = Form(default=None),
) -> ApiResponse:
    content = await csvfile.read() if csvfile is not None else None
    data = await _service.upload(db, content, accountHolderId, brokerageTemplate)
    return respond(request, data.model_dump())


@router.post("/import", status_code=201)
async def commit_import(
    body: ImportRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.commit_import(db, body)
    total = result.created + result.replaced + result.notifications
    message = "Import completed successfully!" if total else "No changes were committed."
    return respond(request, result.model_dump(), message=message)
