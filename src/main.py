"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.pt_account.api.router import router as account_router
from src.pt_common.database import engine
from src.pt_common.errors import AppError, InternalError, RequestValidationFailedError
from src.pt_common.migrations import run_migrations
from src.pt_common.response import error_response
from src.pt_gateway.middleware.request_log import RequestLogMiddleware
from src.pt_importer.api.router import router as importer_router
from src.pt_journal.api.router import router as journal_router
from src.pt_ledger.api.router import router as ledger_router
from src.pt_order.api.router import router as order_router
from src.pt_pricing.application.service import close_price_service, get_price_service
from src.pt_reporting.api.router import router as reporting_router
from src.pt_research.api.router import documents_router, sources_router, watchlist_router
from src.pt_scheduler.scheduler import build_scheduler
from src.pt_utility.api.router import router as utility_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: migrate, verify DB, start cron jobs. Shutdown: stop and dispose."""
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        await run_migrations(engine)
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = build_scheduler(get_price_service())
        scheduler.start()
        logger.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    await close_price_service()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


def _error(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(status_code=exc.http_status, content=resp.model_dump())


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return _error(request, exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _error(request, RequestValidationFailedError())
    field = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
    detail = f"Invalid input: {field} {errors[0].get('msg', '')}".rstrip()
    return _error(request, RequestValidationFailedError(detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(request, InternalError())


app.include_router(account_router, prefix="/api")
app.include_router(ledger_router, prefix="/api")
app.include_router(reporting_router, prefix="/api")
app.include_router(order_router, prefix="/api")
app.include_router(journal_router, prefix="/api")
app.include_router(watchlist_router, prefix="/api")
app.include_router(sources_router, prefix="/api")
app.include_router(documents_router, prefix="/api")
app.include_router(importer_router, prefix="/api")
app.include_router(utility_router, prefix="/api")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
