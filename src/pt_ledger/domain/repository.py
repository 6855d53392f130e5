"""Repository Protocol for transactions / lots."""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_ledger.domain.models import NewTransaction, Transaction


class TransactionRepositoryProtocol(Protocol):
    async def list_transactions(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[Transaction]: ...

    async def get_transaction(self, db: AsyncSession, tx_id: int) -> Transaction | None: ...

    async def get_buy_lot(
        self, db: AsyncSession, lot_id: int, holder_id: int
    ) -> Transaction | None: ...

    async def list_open_lots(
        self, db: AsyncSession, holder_id: int, ticker: str
    ) -> list[Transaction]: ...

    async def insert_transaction(self, db: AsyncSession, tx: NewTransaction) -> Transaction: ...

    async def decrement_lot(
        self, db: AsyncSession, lot_id: int, quantity: float
    ) -> Transaction | None: ...

    async def restore_lot(self, db: AsyncSession, lot_id: int, quantity: float) -> None: ...

    async def count_child_sells(self, db: AsyncSession, buy_id: int) -> int: ...

    async def delete_transaction(self, db: AsyncSession, tx_id: int) -> None: ...

    async def update_transaction(
        self, db: AsyncSession, tx_id: int, values: dict[str, Any]
    ) -> Transaction | None: ...

    async def rescale_lot(self, db: AsyncSession, lot_id: int, ratio: float) -> None: ...

    async def list_watched_lots(self, db: AsyncSession) -> list[Transaction]: ...

    async def tickers_closed_out_on(self, db: AsyncSession, day: str) -> list[str]: ...
