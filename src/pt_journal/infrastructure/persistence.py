"""JournalRepository — raw SQL over journal_entries.

Transaction ownership: the CALLER commits or rolls back.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.errors import InvalidJournalInputError
from src.pt_journal.domain.models import JournalEntry

_COLUMNS = """
    j.id, j.account_holder_id, j.entry_date, j.ticker, j.exchange, j.direction,
    j.quantity, j.entry_price, j.status, j.advice_source_id, j.target_price,
    j.target_price_2, j.stop_loss_price, j.advice_source_details, j.entry_reason,
    j.notes, j.exit_date, j.exit_price, j.pnl, j.execution_date, j.execution_price,
    j.linked_trade_id, j.created_at, j.updated_at, s.name AS advice_source_name
"""

_FROM = "FROM journal_entries j LEFT JOIN advice_sources s ON s.id = j.advice_source_id"

_LIST_SQL = text(f"""
    SELECT {_COLUMNS} {_FROM}
    WHERE j.account_holder_id = :holder_id
      AND (:status IS NULL OR j.status = :status)
    ORDER BY j.entry_date DESC, j.id DESC
""")

_GET_SQL = text(f"SELECT {_COLUMNS} {_FROM} WHERE j.id = :id")

_INSERT_SQL = text("""
    INSERT INTO journal_entries (
        account_holder_id, advice_source_id, entry_date, ticker, exchange, direction,
        quantity, entry_price, target_price, target_price_2, stop_loss_price,
        advice_source_details, entry_reason, notes
    ) VALUES (
        :account_holder_id, :advice_source_id, :entry_date, :ticker, :exchange, :direction,
        :quantity, :entry_price, :target_price, :target_price_2, :stop_loss_price,
        :advice_source_details, :entry_reason, :notes
    )
    RETURNING id
""")

# Conditional on OPEN so two concurrent executes cannot both open a lot
_MARK_EXECUTED_SQL = text("""
    UPDATE journal_entries
    SET status = 'EXECUTED',
        execution_date = :execution_date,
        execution_price = :execution_price,
        linked_trade_id = :trade_id,
        updated_at = CURRENT_TIMESTAMP
    WHERE id = :id AND status = 'OPEN'
    RETURNING id
""")

_DELETE_SQL = text("DELETE FROM journal_entries WHERE id = :id")

_UPDATABLE = (
    "advice_source_id", "entry_date", "ticker", "exchange", "direction", "quantity",
    "entry_price", "target_price", "target_price_2", "stop_loss_price",
    "advice_source_details", "entry_reason", "notes", "status",
    "exit_date", "exit_price", "pnl",
)


def _row_to_entry(row: object) -> JournalEntry:
    return JournalEntry(**dict(row._mapping))  # type: ignore[attr-defined]


class JournalRepository:
    async def list_entries(
        self, db: AsyncSession, holder_id: int, status: str | None
    ) -> list[JournalEntry]:
        result = await db.execute(_LIST_SQL, {"holder_id": holder_id, "status": status})
        return [_row_to_entry(r) for r in result.fetchall()]

    async def get(self, db: AsyncSession, entry_id: int) -> JournalEntry | None:
        row = (await db.execute(_GET_SQL, {"id": entry_id})).fetchone()
        return _row_to_entry(row) if row is not None else None

    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> JournalEntry:
        try:
            new_id = (await db.execute(_INSERT_SQL, values)).scalar_one()
        except IntegrityError:
            raise InvalidJournalInputError(
                "The account holder or advice source referenced does not exist."
            ) from None
        return await self.get(db, new_id)  # type: ignore[return-value]

    async def update(
        self, db: AsyncSession, entry_id: int, values: dict[str, Any]
    ) -> JournalEntry | None:
        columns = [c for c in _UPDATABLE if c in values]
        if columns:
            assignments = ", ".join(f"{c} = :{c}" for c in columns)
            stmt = text(
                f"UPDATE journal_entries SET {assignments}, updated_at = CURRENT_TIMESTAMP "
                "WHERE id = :id"
            )
            try:
                await db.execute(stmt, {**{c: values[c] for c in columns}, "id": entry_id})
            except IntegrityError:
                raise InvalidJournalInputError(
                    "The advice source referenced does not exist."
                ) from None
        return await self.get(db, entry_id)

    async def mark_executed(
        self,
        db: AsyncSession,
        entry_id: int,
        execution_date: str,
        execution_price: float,
        trade_id: int,
    ) -> JournalEntry | None:
        row = (
            await db.execute(
                _MARK_EXECUTED_SQL,
                {
                    "id": entry_id,
                    "execution_date": execution_date,
                    "execution_price": execution_price,
                    "trade_id": trade_id,
                },
            )
        ).fetchone()
        if row is None:
            return None
        return await self.get(db, entry_id)

    async def delete(self, db: AsyncSession, entry_id: int) -> None:
        await db.execute(_DELETE_SQL, {"id": entry_id})
