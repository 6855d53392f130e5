"""HistoricalPriceRepository — end-of-day closes in historical_prices.

Transaction ownership: the CALLER commits or rolls back.
"""

from collections.abc import Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

_UPSERT_SQL = text("""
    INSERT INTO historical_prices (ticker, date, close_price)
    VALUES (:ticker, :date, :close_price)
    ON CONFLICT (ticker, date) DO UPDATE SET close_price = excluded.close_price
""")

_FOR_DATE_SQL = text("""
    SELECT ticker, close_price FROM historical_prices
    WHERE date = :date AND ticker IN :tickers
""").bindparams(bindparam("tickers", expanding=True))

_LATEST_ON_OR_BEFORE_SQL = text("""
    SELECT close_price FROM historical_prices
    WHERE ticker = :ticker AND date <= :date
    ORDER BY date DESC
    LIMIT 1
""")


class HistoricalPriceRepository:
    async def upsert(self, db: AsyncSession, ticker: str, date: str, close_price: float) -> None:
        await db.execute(
            _UPSERT_SQL, {"ticker": ticker.upper(), "date": date, "close_price": close_price}
        )

    async def closes_for_date(
        self, db: AsyncSession, tickers: Sequence[str], date: str
    ) -> dict[str, float]:
        if not tickers:
            return {}
        result = await db.execute(_FOR_DATE_SQL, {"date": date, "tickers": list(tickers)})
        return {r.ticker: r.close_price for r in result.fetchall()}

    async def latest_on_or_before(
        self, db: AsyncSession, ticker: str, date: str
    ) -> float | None:
        row = (
            await db.execute(_LATEST_ON_OR_BEFORE_SQL, {"ticker": ticker, "date": date})
        ).fetchone()
        return row.close_price if row is not None else None
