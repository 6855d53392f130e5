"""UtilityService — batch prices and account value snapshots."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.datetime_utils import parse_trade_date
from src.pt_common.errors import RequestValidationFailedError, SnapshotNotFoundError
from src.pt_pricing.application.service import PRIORITY_BATCH_ENDPOINT, PriceService
from src.pt_pricing.infrastructure.persistence import HistoricalPriceRepository
from src.pt_utility.application.schemas import (
    BatchPriceRequest,
    BatchPriceResponse,
    SnapshotRequest,
    SnapshotResponse,
)
from src.pt_utility.infrastructure.persistence import SnapshotRepository


class UtilityService:
    def __init__(
        self,
        snapshots: SnapshotRepository | None = None,
        history: HistoricalPriceRepository | None = None,
    ) -> None:
        self._snapshots = snapshots or SnapshotRepository()
        self._history = history or HistoricalPriceRepository()

    async def batch_prices(
        self, db: AsyncSession, body: BatchPriceRequest, prices: PriceService
    ) -> BatchPriceResponse:
        """Stored closes for `date` win; everything else comes from the live quote."""
        if body.tickers is None:
            raise RequestValidationFailedError(
                'Invalid request body, expected a "tickers" array.'
            )
        tickers = list(dict.fromkeys(t.strip().upper() for t in body.tickers if t and t.strip()))
        result: BatchPriceResponse = {}

        day = parse_trade_date(body.date)
        if day is not None:
            result.update(await self._history.closes_for_date(db, tickers, day.isoformat()))

        missing = [t for t in tickers if t not in result]
        if missing:
            live = await prices.get_prices(missing, priority=PRIORITY_BATCH_ENDPOINT)
            for ticker in missing:
                entry = live.get(ticker)
                result[ticker] = entry.price if entry is not None else None
        return result

    async def list_snapshots(
        self, db: AsyncSession, holder: str | None, holder_id: int | None
    ) -> list[SnapshotResponse]:
        if holder is not None and holder.strip().lower() == "all":
            rows = await self._snapshots.aggregate_by_date(db)
        else:
            rows = await self._snapshots.list_snapshots(db, holder_id)
        return [SnapshotResponse.from_domain(r) for r in rows]

    async def save_snapshot(self, db: AsyncSession, body: SnapshotRequest) -> SnapshotResponse:
        if not body.account_holder_id:
            raise RequestValidationFailedError("Account holder is required.")
        exchange = (body.exchange or "").strip()
        day = parse_trade_date(body.snapshot_date)
        if not exchange or day is None or body.value is None:
            raise RequestValidationFailedError("Exchange, snapshot date and value are required.")
        try:
            snapshot = await self._snapshots.upsert(
                db, body.account_holder_id, exchange, day.isoformat(), body.value, body.notes
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return SnapshotResponse.from_domain(snapshot)

    async def delete_snapshot(self, db: AsyncSession, snapshot_id: int) -> None:
        try:
            if not await self._snapshots.delete(db, snapshot_id):
                raise SnapshotNotFoundError(snapshot_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
