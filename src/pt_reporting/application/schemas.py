"""Pydantic schemas for pt_reporting API."""

from typing import Any

from pydantic import BaseModel

from src.pt_common.formatting import format_accounting


class DailyPerformanceResponse(BaseModel):
    currentValue: float
    previousValue: float
    dailyChange: float


class PositionsResponse(BaseModel):
    dailyTransactions: list[dict[str, Any]]
    endOfDayPositions: list[dict[str, Any]]


class ExchangePL(BaseModel):
    exchange: str
    total_pl: float
    total_pl_display: str


class RealizedPLSummary(BaseModel):
    byExchange: list[ExchangePL]
    total: float
    total_display: str

    @classmethod
    def build(cls, rows: list[tuple[str, float]]) -> "RealizedPLSummary":
        total = sum(pl for _, pl in rows)
        return cls(
            byExchange=[
                ExchangePL(exchange=ex, total_pl=pl, total_pl_display=format_accounting(pl))
                for ex, pl in rows
            ],
            total=total,
            total_display=format_accounting(total),
        )


class RealizedPLRangeRequest(BaseModel):
    startDate: str | None = None
    endDate: str | None = None
    accountHolderId: int | str | None = None


class PortfolioOverviewRow(BaseModel):
    ticker: str
    total_quantity: float
    weighted_avg_cost: float | None
    previous_close: float | None = None
