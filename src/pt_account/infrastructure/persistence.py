"""AccountRepository — holders, exchanges and holder/source subscriptions.

Transaction ownership: the application service commits or rolls back.
UNIQUE violations are translated into 409 domain errors here, where the
constraint is known.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_account.domain.models import AccountHolder, Exchange
from src.pt_common.errors import DuplicateExchangeError, DuplicateHolderError, HolderInUseError

# ---------------------------------------------------------------------------
# SQL: account holders
# ---------------------------------------------------------------------------

_LIST_HOLDERS_SQL = text("""
    SELECT id, name, created_at FROM account_holders ORDER BY id
""")

_GET_HOLDER_SQL = text("""
    SELECT id, name, created_at FROM account_holders WHERE id = :id
""")

_INSERT_HOLDER_SQL = text("""
    INSERT INTO account_holders (name) VALUES (:name)
    RETURNING id, name, created_at
""")

_RENAME_HOLDER_SQL = text("""
    UPDATE account_holders SET name = :name WHERE id = :id
    RETURNING id, name, created_at
""")

_COUNT_HOLDER_TX_SQL = text("""
    SELECT COUNT(*) FROM transactions WHERE account_holder_id = :id
""")

_DELETE_HOLDER_SQL = text("DELETE FROM account_holders WHERE id = :id")

_LIST_SUBSCRIPTIONS_SQL = text("""
    SELECT advice_source_id FROM account_source_links
    WHERE account_holder_id = :holder_id
    ORDER BY advice_source_id
""")

_CLEAR_SUBSCRIPTIONS_SQL = text("""
    DELETE FROM account_source_links WHERE account_holder_id = :holder_id
""")

_INSERT_SUBSCRIPTION_SQL = text("""
    INSERT INTO account_source_links (account_holder_id, advice_source_id)
    VALUES (:holder_id, :source_id)
""")

# ---------------------------------------------------------------------------
# SQL: exchanges
# ---------------------------------------------------------------------------

_LIST_EXCHANGES_SQL = text("SELECT id, name, created_at FROM exchanges ORDER BY name")

_GET_EXCHANGE_SQL = text("SELECT id, name, created_at FROM exchanges WHERE id = :id")

_INSERT_EXCHANGE_SQL = text("""
    INSERT INTO exchanges (name) VALUES (:name)
    RETURNING id, name, created_at
""")

_RENAME_EXCHANGE_SQL = text("""
    UPDATE exchanges SET name = :name WHERE id = :id
    RETURNING id, name, created_at
""")

_CASCADE_EXCHANGE_NAME_SQL = text("""
    UPDATE transactions SET exchange = :new_name WHERE exchange = :old_name
""")

_COUNT_EXCHANGE_TX_SQL = text("""
    SELECT COUNT(*) FROM transactions WHERE exchange = :name
""")

_DELETE_EXCHANGE_SQL = text("DELETE FROM exchanges WHERE id = :id")


def _row_to_holder(row: object) -> AccountHolder:
    return AccountHolder(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


def _row_to_exchange(row: object) -> Exchange:
    return Exchange(
        id=row.id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    async def list_holders(self, db: AsyncSession) -> list[AccountHolder]:
        result = await db.execute(_LIST_HOLDERS_SQL)
        return [_row_to_holder(r) for r in result.fetchall()]

    async def get_holder(self, db: AsyncSession, holder_id: int) -> AccountHolder | None:
        row = (await db.execute(_GET_HOLDER_SQL, {"id": holder_id})).fetchone()
        return _row_to_holder(row) if row is not None else None

    async def create_holder(self, db: AsyncSession, name: str) -> AccountHolder:
        try:
            row = (await db.execute(_INSERT_HOLDER_SQL, {"name": name})).fetchone()
        except IntegrityError:
            raise DuplicateHolderError(name) from None
        return _row_to_holder(row)

    async def rename_holder(
        self, db: AsyncSession, holder_id: int, name: str
    ) -> AccountHolder | None:
        try:
            row = (await db.execute(_RENAME_HOLDER_SQL, {"id": holder_id, "name": name})).fetchone()
        except IntegrityError:
            raise DuplicateHolderError(name) from None
        return _row_to_holder(row) if row is not None else None

    async def count_holder_transactions(self, db: AsyncSession, holder_id: int) -> int:
        return int((await db.execute(_COUNT_HOLDER_TX_SQL, {"id": holder_id})).scalar_one())

    async def delete_holder(self, db: AsyncSession, holder_id: int) -> bool:
        try:
            result = await db.execute(_DELETE_HOLDER_SQL, {"id": holder_id})
        except IntegrityError:
            # still referenced by journal, watchlist, sources or orders
            raise HolderInUseError() from None
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def list_subscriptions(self, db: AsyncSession, holder_id: int) -> list[int]:
        result = await db.execute(_LIST_SUBSCRIPTIONS_SQL, {"holder_id": holder_id})
        return [r.advice_source_id for r in result.fetchall()]

    async def replace_subscriptions(
        self, db: AsyncSession, holder_id: int, source_ids: list[int]
    ) -> None:
        await db.execute(_CLEAR_SUBSCRIPTIONS_SQL, {"holder_id": holder_id})
        for source_id in dict.fromkeys(source_ids):
            await db.execute(
                _INSERT_SUBSCRIPTION_SQL, {"holder_id": holder_id, "source_id": source_id}
            )

    async def list_exchanges(self, db: AsyncSession) -> list[Exchange]:
        result = await db.execute(_LIST_EXCHANGES_SQL)
        return [_row_to_exchange(r) for r in result.fetchall()]

    async def get_exchange(self, db: AsyncSession, exchange_id: int) -> Exchange | None:
        row = (await db.execute(_GET_EXCHANGE_SQL, {"id": exchange_id})).fetchone()
        return _row_to_exchange(row) if row is not None else None

    async def create_exchange(self, db: AsyncSession, name: str) -> Exchange:
        try:
            row = (await db.execute(_INSERT_EXCHANGE_SQL, {"name": name})).fetchone()
        except IntegrityError:
            raise DuplicateExchangeError(name) from None
        return _row_to_exchange(row)

    async def rename_exchange(
        self, db: AsyncSession, exchange_id: int, old_name: str, new_name: str
    ) -> Exchange:
        try:
            row = (
                await db.execute(_RENAME_EXCHANGE_SQL, {"id": exchange_id, "name": new_name})
            ).fetchone()
        except IntegrityError:
            raise DuplicateExchangeError(new_name) from None
        await db.execute(
            _CASCADE_EXCHANGE_NAME_SQL, {"old_name": old_name, "new_name": new_name}
        )
        return _row_to_exchange(row)

    async def count_exchange_transactions(self, db: AsyncSession, name: str) -> int:
        return int((await db.execute(_COUNT_EXCHANGE_TX_SQL, {"name": name})).scalar_one())

    async def delete_exchange(self, db: AsyncSession, exchange_id: int) -> bool:
        result = await db.execute(_DELETE_EXCHANGE_SQL, {"id": exchange_id})
        return result.rowcount > 0  # type: ignore[attr-defined]
