"""ReportingRepository — read-only queries behind the reporting endpoints."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_ledger.domain.lots import QTY_EPSILON
from src.pt_reporting.domain.valuation import OpenLot

_OPEN_LOTS_AS_OF_SQL = text("""
    SELECT ticker, price AS cost_basis, COALESCE(quantity_remaining, 0) AS quantity_remaining
    FROM transactions
    WHERE transaction_type = 'BUY'
      AND date(transaction_date) <= date(:as_of)
      AND COALESCE(quantity_remaining, 0) > :eps
      AND (:holder_id IS NULL OR account_holder_id = :holder_id)
""")

_ALL_OPEN_LOTS_SQL = text("""
    SELECT ticker, price AS cost_basis, COALESCE(quantity_remaining, 0) AS quantity_remaining
    FROM transactions
    WHERE transaction_type = 'BUY'
      AND COALESCE(quantity_remaining, 0) > :eps
      AND (:holder_id IS NULL OR account_holder_id = :holder_id)
    ORDER BY ticker
""")

_DAILY_TRANSACTIONS_SQL = text("""
    SELECT d.id, d.ticker, d.exchange, d.transaction_type, d.quantity, d.price,
           d.transaction_date, d.parent_buy_id, d.account_holder_id, d.source,
           p.price AS parent_buy_price
    FROM transactions d
    LEFT JOIN transactions p ON p.id = d.parent_buy_id AND p.transaction_type = 'BUY'
    WHERE date(d.transaction_date) = date(:day)
      AND (:holder_id IS NULL OR d.account_holder_id = :holder_id)
    ORDER BY d.id
""")

_END_OF_DAY_POSITIONS_SQL = text("""
    SELECT id, ticker, exchange, transaction_date AS purchase_date, price AS cost_basis,
           COALESCE(original_quantity, quantity) AS original_quantity,
           COALESCE(quantity_remaining, 0) AS quantity_remaining,
           limit_price_up, limit_price_down, limit_up_expiration, limit_down_expiration,
           account_holder_id
    FROM transactions
    WHERE transaction_type = 'BUY'
      AND date(transaction_date) <= date(:day)
      AND COALESCE(quantity_remaining, 0) > :eps
      AND (:holder_id IS NULL OR account_holder_id = :holder_id)
    ORDER BY ticker, purchase_date
""")

_REALIZED_BY_EXCHANGE_SQL = text("""
    SELECT s.exchange, SUM((s.price - b.price) * s.quantity) AS total_pl
    FROM transactions s
    JOIN transactions b ON b.id = s.parent_buy_id
    WHERE s.transaction_type = 'SELL'
      AND (:holder_id IS NULL OR s.account_holder_id = :holder_id)
      AND (:start_date IS NULL OR s.transaction_date >= :start_date)
      AND (:end_date IS NULL OR s.transaction_date <= :end_date)
    GROUP BY s.exchange
    ORDER BY s.exchange
""")


class ReportingRepository:
    async def open_lots_as_of(
        self, db: AsyncSession, as_of: str, holder_id: int | None
    ) -> list[OpenLot]:
        result = await db.execute(
            _OPEN_LOTS_AS_OF_SQL, {"as_of": as_of, "holder_id": holder_id, "eps": QTY_EPSILON}
        )
        return [
            OpenLot(r.ticker, r.cost_basis, r.quantity_remaining) for r in result.fetchall()
        ]

    async def open_lots(self, db: AsyncSession, holder_id: int | None) -> list[OpenLot]:
        result = await db.execute(
            _ALL_OPEN_LOTS_SQL, {"holder_id": holder_id, "eps": QTY_EPSILON}
        )
        return [
            OpenLot(r.ticker, r.cost_basis, r.quantity_remaining) for r in result.fetchall()
        ]

    async def daily_transactions(
        self, db: AsyncSession, day: str, holder_id: int | None
    ) -> list[dict[str, Any]]:
        result = await db.execute(_DAILY_TRANSACTIONS_SQL, {"day": day, "holder_id": holder_id})
        return [dict(r._mapping) for r in result.fetchall()]

    async def end_of_day_positions(
        self, db: AsyncSession, day: str, holder_id: int | None
    ) -> list[dict[str, Any]]:
        result = await db.execute(
            _END_OF_DAY_POSITIONS_SQL, {"day": day, "holder_id": holder_id, "eps": QTY_EPSILON}
        )
        return [dict(r._mapping) for r in result.fetchall()]

    async def realized_pl_by_exchange(
        self,
        db: AsyncSession,
        holder_id: int | None,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> list[tuple[str, float]]:
        result = await db.execute(
            _REALIZED_BY_EXCHANGE_SQL,
            {"holder_id": holder_id, "start_date": start_date, "end_date": end_date},
        )
        return [(r.exchange, float(r.total_pl or 0.0)) for r in result.fetchall()]
