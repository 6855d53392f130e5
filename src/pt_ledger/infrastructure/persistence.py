"""TransactionRepository — concrete implementation of TransactionRepositoryProtocol.

Lot decrements are a single conditional UPDATE ... RETURNING: zero rows
back means the lot no longer holds enough shares (a concurrent sell got
there first), and the caller turns that into a domain error.

Transaction ownership: the CALLER commits or rolls back.
"""

from dataclasses import asdict
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.errors import InvalidTransactionError
from src.pt_ledger.domain.lots import QTY_EPSILON
from src.pt_ledger.domain.models import NewTransaction, Transaction

_COLUMNS = """
    id, ticker, exchange, transaction_type, quantity, price, transaction_date,
    original_quantity, quantity_remaining, parent_buy_id,
    limit_price_up, limit_up_expiration, limit_price_down, limit_down_expiration,
    limit_price_up_2, limit_up_expiration_2,
    account_holder_id, advice_source_id, linked_journal_id, source, created_at
"""

_LIST_SQL = text(f"""
    SELECT {_COLUMNS} FROM transactions
    WHERE (:holder_id IS NULL OR account_holder_id = :holder_id)
    ORDER BY transaction_date DESC, id DESC
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM transactions WHERE id = :id")

_GET_BUY_LOT_SQL = text(f"""
    SELECT {_COLUMNS} FROM transactions
    WHERE id = :id AND account_holder_id = :holder_id AND transaction_type = 'BUY'
""")

_LIST_OPEN_LOTS_SQL = text(f"""
    SELECT {_COLUMNS} FROM transactions
    WHERE account_holder_id = :holder_id
      AND ticker = :ticker
      AND transaction_type = 'BUY'
      AND quantity_remaining > :eps
    ORDER BY transaction_date ASC, id ASC
""")

_INSERT_SQL = text(f"""
    INSERT INTO transactions (
        ticker, exchange, transaction_type, quantity, price, transaction_date,
        original_quantity, quantity_remaining, parent_buy_id,
        limit_price_up, limit_up_expiration, limit_price_down, limit_down_expiration,
        limit_price_up_2, limit_up_expiration_2,
        account_holder_id, advice_source_id, linked_journal_id, source
    ) VALUES (
        :ticker, :exchange, :transaction_type, :quantity, :price, :transaction_date,
        :original_quantity, :quantity_remaining, :parent_buy_id,
        :limit_price_up, :limit_up_expiration, :limit_price_down, :limit_down_expiration,
        :limit_price_up_2, :limit_up_expiration_2,
        :account_holder_id, :advice_source_id, :linked_journal_id, :source
    )
    RETURNING {_COLUMNS}
""")

_DECREMENT_LOT_SQL = text(f"""
    UPDATE transactions
    SET quantity_remaining = quantity_remaining - :quantity
    WHERE id = :id
      AND transaction_type = 'BUY'
      AND quantity_remaining >= :quantity - :eps
    RETURNING {_COLUMNS}
""")

_RESTORE_LOT_SQL = text("""
    UPDATE transactions
    SET quantity_remaining = quantity_remaining + :quantity
    WHERE id = :id AND transaction_type = 'BUY'
""")

_COUNT_CHILD_SELLS_SQL = text("""
    SELECT COUNT(*) FROM transactions
    WHERE parent_buy_id = :id AND transaction_type = 'SELL'
""")

_DELETE_SQL = text("DELETE FROM transactions WHERE id = :id")

_RESCALE_LOT_SQL = text("""
    UPDATE transactions
    SET quantity_remaining = quantity_remaining * :ratio,
        original_quantity  = original_quantity * :ratio,
        price              = price / :ratio
    WHERE id = :id AND transaction_type = 'BUY'
""")

_LIST_WATCHED_LOTS_SQL = text(f"""
    SELECT {_COLUMNS} FROM transactions
    WHERE transaction_type = 'BUY'
      AND quantity_remaining > :eps
      AND (limit_price_up IS NOT NULL OR limit_price_down IS NOT NULL)
    ORDER BY id
""")

# Tickers sold on :day that no longer have open lots among the holders who sold them
_CLOSED_OUT_TICKERS_SQL = text("""
    SELECT s.ticker
    FROM transactions s
    WHERE s.transaction_type = 'SELL' AND date(s.transaction_date) = date(:day)
    GROUP BY s.ticker
    HAVING (
        SELECT COALESCE(SUM(b.quantity_remaining), 0)
        FROM transactions b
        WHERE b.transaction_type = 'BUY'
          AND b.ticker = s.ticker
          AND b.account_holder_id IN (
              SELECT x.account_holder_id FROM transactions x
              WHERE x.transaction_type = 'SELL'
                AND x.ticker = s.ticker
                AND date(x.transaction_date) = date(:day)
          )
    ) <= :eps
    ORDER BY s.ticker
""")

# Columns a PUT may touch; anything else in `values` is ignored
_MISSING_REFERENCE = (
    "The account holder, advice source or journal entry referenced does not exist."
)

_UPDATABLE = (
    "ticker", "exchange", "quantity", "price", "transaction_date",
    "original_quantity", "quantity_remaining",
    "limit_price_up", "limit_up_expiration",
    "limit_price_down", "limit_down_expiration",
    "limit_price_up_2", "limit_up_expiration_2",
    "account_holder_id", "advice_source_id", "linked_journal_id",
)


def _row_to_transaction(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        ticker=row.ticker,  # type: ignore[attr-defined]
        exchange=row.exchange,  # type: ignore[attr-defined]
        transaction_type=row.transaction_type,  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        transaction_date=row.transaction_date,  # type: ignore[attr-defined]
        account_holder_id=row.account_holder_id,  # type: ignore[attr-defined]
        original_quantity=row.original_quantity,  # type: ignore[attr-defined]
        quantity_remaining=row.quantity_remaining,  # type: ignore[attr-defined]
        parent_buy_id=row.parent_buy_id,  # type: ignore[attr-defined]
        limit_price_up=row.limit_price_up,  # type: ignore[attr-defined]
        limit_up_expiration=row.limit_up_expiration,  # type: ignore[attr-defined]
        limit_price_down=row.limit_price_down,  # type: ignore[attr-defined]
        limit_down_expiration=row.limit_down_expiration,  # type: ignore[attr-defined]
        limit_price_up_2=row.limit_price_up_2,  # type: ignore[attr-defined]
        limit_up_expiration_2=row.limit_up_expiration_2,  # type: ignore[attr-defined]
        advice_source_id=row.advice_source_id,  # type: ignore[attr-defined]
        linked_journal_id=row.linked_journal_id,  # type: ignore[attr-defined]
        source=row.source,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class TransactionRepository:
    async def list_transactions(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[Transaction]:
        result = await db.execute(_LIST_SQL, {"holder_id": holder_id})
        return [_row_to_transaction(r) for r in result.fetchall()]

    async def get_transaction(self, db: AsyncSession, tx_id: int) -> Transaction | None:
        row = (await db.execute(_GET_SQL, {"id": tx_id})).fetchone()
        return _row_to_transaction(row) if row is not None else None

    async def get_buy_lot(
        self, db: AsyncSession, lot_id: int, holder_id: int
    ) -> Transaction | None:
        row = (
            await db.execute(_GET_BUY_LOT_SQL, {"id": lot_id, "holder_id": holder_id})
        ).fetchone()
        return _row_to_transaction(row) if row is not None else None

    async def list_open_lots(
        self, db: AsyncSession, holder_id: int, ticker: str
    ) -> list[Transaction]:
        result = await db.execute(
            _LIST_OPEN_LOTS_SQL,
            {"holder_id": holder_id, "ticker": ticker, "eps": QTY_EPSILON},
        )
        return [_row_to_transaction(r) for r in result.fetchall()]

    async def insert_transaction(self, db: AsyncSession, tx: NewTransaction) -> Transaction:
        try:
            row = (await db.execute(_INSERT_SQL, asdict(tx))).fetchone()
        except IntegrityError:
            raise InvalidTransactionError(_MISSING_REFERENCE) from None
        return _row_to_transaction(row)

    async def decrement_lot(
        self, db: AsyncSession, lot_id: int, quantity: float
    ) -> Transaction | None:
        """Atomically take `quantity` from a lot. None if the lot cannot cover it."""
        row = (
            await db.execute(
                _DECREMENT_LOT_SQL, {"id": lot_id, "quantity": quantity, "eps": QTY_EPSILON}
            )
        ).fetchone()
        return _row_to_transaction(row) if row is not None else None

    async def restore_lot(self, db: AsyncSession, lot_id: int, quantity: float) -> None:
        await db.execute(_RESTORE_LOT_SQL, {"id": lot_id, "quantity": quantity})

    async def count_child_sells(self, db: AsyncSession, buy_id: int) -> int:
        return int((await db.execute(_COUNT_CHILD_SELLS_SQL, {"id": buy_id})).scalar_one())

    async def delete_transaction(self, db: AsyncSession, tx_id: int) -> None:
        await db.execute(_DELETE_SQL, {"id": tx_id})

    async def update_transaction(
        self, db: AsyncSession, tx_id: int, values: dict[str, Any]
    ) -> Transaction | None:
        fields = {k: v for k, v in values.items() if k in _UPDATABLE}
        if not fields:
            return await self.get_transaction(db, tx_id)
        assignments = ", ".join(f"{col} = :{col}" for col in fields)
        stmt = text(f"UPDATE transactions SET {assignments} WHERE id = :id RETURNING {_COLUMNS}")
        try:
            row = (await db.execute(stmt, {**fields, "id": tx_id})).fetchone()
        except IntegrityError:
            raise InvalidTransactionError(_MISSING_REFERENCE) from None
        return _row_to_transaction(row) if row is not None else None

    async def rescale_lot(self, db: AsyncSession, lot_id: int, ratio: float) -> None:
        await db.execute(_RESCALE_LOT_SQL, {"id": lot_id, "ratio": ratio})

    async def list_watched_lots(self, db: AsyncSession) -> list[Transaction]:
        """Open lots carrying a take-profit or stop-loss level, all holders."""
        result = await db.execute(_LIST_WATCHED_LOTS_SQL, {"eps": QTY_EPSILON})
        return [_row_to_transaction(r) for r in result.fetchall()]

    async def tickers_closed_out_on(self, db: AsyncSession, day: str) -> list[str]:
        result = await db.execute(_CLOSED_OUT_TICKERS_SQL, {"day": day, "eps": QTY_EPSILON})
        return [r.ticker for r in result.fetchall()]
