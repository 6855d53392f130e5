"""SnapshotRepository — account_snapshots.

Transaction ownership: the CALLER commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.errors import RequestValidationFailedError
from src.pt_utility.domain.models import ALL_ACCOUNTS_LABEL, AccountSnapshot

_COLUMNS = "id, account_holder_id, exchange, snapshot_date, value, notes, created_at"

_LIST_SQL = text(f"""
    SELECT {_COLUMNS} FROM account_snapshots
    WHERE (:holder_id IS NULL OR account_holder_id = :holder_id)
    ORDER BY snapshot_date ASC, id ASC
""")

_AGGREGATE_SQL = text("""
    SELECT snapshot_date, SUM(value) AS value
    FROM account_snapshots
    GROUP BY snapshot_date
    ORDER BY snapshot_date ASC
""")

# One value per holder/exchange/date; saving again replaces it
_UPSERT_SQL = text(f"""
    INSERT INTO account_snapshots (account_holder_id, exchange, snapshot_date, value, notes)
    VALUES (:account_holder_id, :exchange, :snapshot_date, :value, :notes)
    ON CONFLICT (account_holder_id, exchange, snapshot_date)
    DO UPDATE SET value = excluded.value, notes = excluded.notes
    RETURNING {_COLUMNS}
""")

_DELETE_SQL = text("DELETE FROM account_snapshots WHERE id = :id")


def _row_to_snapshot(row: object) -> AccountSnapshot:
    return AccountSnapshot(**dict(row._mapping))  # type: ignore[attr-defined]


class SnapshotRepository:
    async def list_snapshots(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[AccountSnapshot]:
        result = await db.execute(_LIST_SQL, {"holder_id": holder_id})
        return [_row_to_snapshot(r) for r in result.fetchall()]

    async def aggregate_by_date(self, db: AsyncSession) -> list[AccountSnapshot]:
        result = await db.execute(_AGGREGATE_SQL)
        return [
            AccountSnapshot(
                id=None,
                account_holder_id=None,
                exchange=ALL_ACCOUNTS_LABEL,
                snapshot_date=r.snapshot_date,
                value=r.value,
            )
            for r in result.fetchall()
        ]

    async def upsert(
        self,
        db: AsyncSession,
        holder_id: int,
        exchange: str,
        snapshot_date: str,
        value: float,
        notes: str | None,
    ) -> AccountSnapshot:
        values = {
            "account_holder_id": holder_id,
            "exchange": exchange,
            "snapshot_date": snapshot_date,
            "value": value,
            "notes": notes,
        }
        try:
            row = (await db.execute(_UPSERT_SQL, values)).fetchone()
        except IntegrityError:
            raise RequestValidationFailedError(
                f"Account holder does not exist: {holder_id}"
            ) from None
        return _row_to_snapshot(row)

    async def delete(self, db: AsyncSession, snapshot_id: int) -> bool:
        result = await db.execute(_DELETE_SQL, {"id": snapshot_id})
        return result.rowcount > 0  # type: ignore[attr-defined]
