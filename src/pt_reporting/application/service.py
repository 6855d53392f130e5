"""ReportingService — portfolio value, daily positions and realized P/L."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pt_common.datetime_utils import market_today, parse_trade_date, previous_day
from src.pt_common.enums import TransactionType
from src.pt_common.errors import RequestValidationFailedError
from src.pt_common.filters import parse_holder
from src.pt_ledger.domain.lots import realized_pl
from src.pt_pricing.application.service import PRIORITY_DAILY_PERFORMANCE, PriceService
from src.pt_pricing.infrastructure.persistence import HistoricalPriceRepository
from src.pt_reporting.application.schemas import (
    DailyPerformanceResponse,
    PortfolioOverviewRow,
    PositionsResponse,
    RealizedPLRangeRequest,
    RealizedPLSummary,
)
from src.pt_reporting.domain.valuation import portfolio_value, summarize_positions
from src.pt_reporting.infrastructure.persistence import ReportingRepository

logger = logging.getLogger(__name__)


def _require_date(value: str) -> str:
    parsed = parse_trade_date(value)
    if parsed is None:
        raise RequestValidationFailedError(f"Invalid date: {value}")
    return parsed.isoformat()


class ReportingService:
    def __init__(
        self,
        repo: ReportingRepository | None = None,
        history: HistoricalPriceRepository | None = None,
    ) -> None:
        self._repo = repo or ReportingRepository()
        self._history = history or HistoricalPriceRepository()

    async def daily_performance(
        self, db: AsyncSession, day: str, holder_id: int | None, prices: PriceService
    ) -> DailyPerformanceResponse:
        today = _require_date(day)
        yesterday = previous_day(today)
        lots_today = await self._repo.open_lots_as_of(db, today, holder_id)
        lots_yesterday = await self._repo.open_lots_as_of(db, yesterday, holder_id)

        # one batched quote call covers both days
        tickers = {lot.ticker for lot in lots_today} | {lot.ticker for lot in lots_yesterday}
        quotes = await prices.get_prices(sorted(tickers), priority=PRIORITY_DAILY_PERFORMANCE)
        logger.debug("Daily performance for %s priced %d tickers", today, len(quotes))

        current = portfolio_value(lots_today, quotes)
        previous = portfolio_value(lots_yesterday, quotes)
        return DailyPerformanceResponse(
            currentValue=current, previousValue=previous, dailyChange=current - previous
        )

    async def positions(
        self, db: AsyncSession, day: str, holder_id: int | None
    ) -> PositionsResponse:
        day = _require_date(day)
        daily = await self._repo.daily_transactions(db, day, holder_id)
        for tx in daily:
            if tx["transaction_type"] == TransactionType.SELL.value and tx["parent_buy_price"]:
                tx["realizedPL"] = realized_pl(tx["price"], tx["parent_buy_price"], tx["quantity"])
        eod = await self._repo.end_of_day_positions(db, day, holder_id)
        return PositionsResponse(dailyTransactions=daily, endOfDayPositions=eod)

    async def realized_pl_summary(
        self, db: AsyncSession, holder_id: int | None
    ) -> RealizedPLSummary:
        return RealizedPLSummary.build(await self._repo.realized_pl_by_exchange(db, holder_id))

    async def realized_pl_range(
        self, db: AsyncSession, body: RealizedPLRangeRequest
    ) -> RealizedPLSummary:
        start = parse_trade_date(body.startDate)
        end = parse_trade_date(body.endDate)
        if start is None or end is None:
            raise RequestValidationFailedError("Start date and end date are required.")
        rows = await self._repo.realized_pl_by_exchange(
            db, parse_holder(body.accountHolderId), start.isoformat(), end.isoformat()
        )
        return RealizedPLSummary.build(rows)

    async def portfolio_overview(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[PortfolioOverviewRow]:
        positions = summarize_positions(await self._repo.open_lots(db, holder_id))
        cutoff = previous_day(market_today(settings.SCHEDULER_TIMEZONE))
        rows = []
        for pos in positions:
            pos.previous_close = await self._history.latest_on_or_before(db, pos.ticker, cutoff)
            rows.append(PortfolioOverviewRow(**pos.__dict__))
        return rows
