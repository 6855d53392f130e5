"""LotLedger — lot mutations shared by every path that writes trades.

Manual entry, journal execution, the order watcher and the CSV importer
all open and consume lots through this class so the bookkeeping rules
live in one place. Nothing here commits: the calling service owns the
transaction, which lets a multi-lot sell or a whole import roll back as
one unit.
"""

from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.enums import TransactionSource, TransactionType
from src.pt_common.errors import (
    InsufficientLotQuantityError,
    InvalidTransactionError,
    ParentLotNotFoundError,
)
from src.pt_ledger.domain.lots import check_sell_against_lot, realized_pl
from src.pt_ledger.domain.models import LotAllocation, NewTransaction, SellResult, Transaction
from src.pt_ledger.domain.repository import TransactionRepositoryProtocol
from src.pt_ledger.infrastructure.persistence import TransactionRepository
from src.pt_research.domain.repository import WatchlistRepositoryProtocol
from src.pt_research.infrastructure.persistence import WatchlistRepository


class LotLedger:
    def __init__(
        self,
        repo: TransactionRepositoryProtocol | None = None,
        watchlist: WatchlistRepositoryProtocol | None = None,
    ) -> None:
        self._repo: TransactionRepositoryProtocol = repo or TransactionRepository()
        self._watchlist: WatchlistRepositoryProtocol = watchlist or WatchlistRepository()

    async def open_lot(self, db: AsyncSession, tx: NewTransaction) -> Transaction:
        """Insert a BUY lot; a trade idea it came from is archived."""
        tx.transaction_type = TransactionType.BUY.value
        tx.ticker = tx.ticker.upper()
        tx.original_quantity = tx.quantity
        tx.quantity_remaining = tx.quantity
        lot = await self._repo.insert_transaction(db, tx)
        if lot.advice_source_id is not None:
            await self._watchlist.archive_for_sources(
                db, lot.account_holder_id, lot.ticker, [lot.advice_source_id]
            )
        return lot

    async def sell_from_lots(
        self,
        db: AsyncSession,
        *,
        holder_id: int,
        allocations: Sequence[LotAllocation],
        price: float,
        sell_date: str,
        exchange: str | None = None,
        ticker: str | None = None,
        source: str = TransactionSource.MANUAL.value,
    ) -> SellResult:
        """Write one SELL per allocation and decrement each parent lot.

        Every allocation is validated before the first row is written.
        """
        lots: list[Transaction] = []
        for alloc in allocations:
            lot = await self._repo.get_buy_lot(db, alloc.parent_buy_id, holder_id)
            if lot is None:
                raise ParentLotNotFoundError(alloc.parent_buy_id)
            if ticker and lot.ticker != ticker.upper():
                raise InvalidTransactionError(
                    f"Lot {lot.id} holds {lot.ticker}, not {ticker.upper()}."
                )
            check_sell_against_lot(lot, alloc.quantity, sell_date)
            lots.append(lot)

        result = SellResult()
        for lot, alloc in zip(lots, allocations):
            if await self._repo.decrement_lot(db, lot.id, alloc.quantity) is None:
                # Lot shrank between the check and the write (concurrent sell)
                raise InsufficientLotQuantityError(
                    lot.id, alloc.quantity, lot.quantity_remaining or 0.0
                )
            sell = await self._repo.insert_transaction(
                db,
                NewTransaction(
                    ticker=lot.ticker,
                    exchange=exchange or lot.exchange,
                    transaction_type=TransactionType.SELL.value,
                    quantity=alloc.quantity,
                    price=price,
                    transaction_date=sell_date,
                    account_holder_id=holder_id,
                    parent_buy_id=lot.id,
                    advice_source_id=lot.advice_source_id,
                    linked_journal_id=lot.linked_journal_id,
                    source=source,
                ),
            )
            result.sells.append(sell)
            result.realized_pl += realized_pl(price, lot.price, alloc.quantity)

        await self._archive_ideas(db, holder_id, lots)
        return result

    async def reverse_sell(self, db: AsyncSession, sell: Transaction) -> None:
        """Delete a SELL and give its quantity back to the parent lot."""
        if sell.parent_buy_id is not None:
            await self._repo.restore_lot(db, sell.parent_buy_id, sell.quantity)
        await self._repo.delete_transaction(db, sell.id)

    async def _archive_ideas(
        self, db: AsyncSession, holder_id: int, lots: Sequence[Transaction]
    ) -> None:
        by_ticker: dict[str, set[int]] = {}
        for lot in lots:
            if lot.advice_source_id is not None:
                by_ticker.setdefault(lot.ticker, set()).add(lot.advice_source_id)
        for ticker, source_ids in by_ticker.items():
            await self._watchlist.archive_for_sources(db, holder_id, ticker, sorted(source_ids))
