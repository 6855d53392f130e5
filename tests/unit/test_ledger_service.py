"""Unit tests for TransactionApplicationService and LotLedger with mock repositories."""

from unittest.mock import AsyncMock

import pytest

from src.pt_common.errors import (
    InsufficientLotQuantityError,
    InvalidTransactionError,
    LotHasSellsError,
    ParentLotNotFoundError,
    TransactionNotFoundError,
)
from src.pt_ledger.application.lot_ledger import LotLedger
from src.pt_ledger.application.schemas import (
    LotSelection,
    SplitRequest,
    TransactionCreateRequest,
)
from src.pt_ledger.application.service import TransactionApplicationService
from src.pt_ledger.domain.models import LotAllocation, NewTransaction, Transaction


def _tx(
    tx_id: int = 1,
    tx_type: str = "BUY",
    quantity: float = 10,
    price: float = 100,
    remaining: float | None = 10,
    parent: int | None = None,
    source_id: int | None = None,
    date: str = "2024-01-02",
) -> Transaction:
    return Transaction(
        id=tx_id,
        ticker="AAPL",
        exchange="Fidelity",
        transaction_type=tx_type,
        quantity=quantity,
        price=price,
        transaction_date=date,
        account_holder_id=1,
        original_quantity=quantity if tx_type == "BUY" else None,
        quantity_remaining=remaining if tx_type == "BUY" else None,
        parent_buy_id=parent,
        advice_source_id=source_id,
    )


def _insert_echo(repo: AsyncMock) -> None:
    """insert_transaction returns a Transaction built from the NewTransaction."""
    counter = iter(range(100, 200))

    async def _insert(db: object, new: NewTransaction) -> Transaction:
        return Transaction(id=next(counter), **new.__dict__)

    repo.insert_transaction.side_effect = _insert


def _service(repo: AsyncMock, watchlist: AsyncMock | None = None) -> TransactionApplicationService:
    return TransactionApplicationService(
        repo=repo, ledger=LotLedger(repo=repo, watchlist=watchlist or AsyncMock())
    )


class TestCreate:
    async def test_buy_opens_lot_with_full_remaining(self) -> None:
        repo = AsyncMock()
        _insert_echo(repo)
        svc = _service(repo)
        db = AsyncMock()

        result = await svc.create(db, TransactionCreateRequest(
            transaction_type="buy", ticker="aapl", exchange="Fidelity", quantity=10,
            price=100, transaction_date="2024-01-02", account_holder_id=1,
        ))

        lot = result.transactions[0]
        assert lot.ticker == "AAPL"
        assert lot.original_quantity == 10
        assert lot.quantity_remaining == 10
        db.commit.assert_awaited_once()

    async def test_missing_fields_rejected(self) -> None:
        svc = _service(AsyncMock())
        with pytest.raises(InvalidTransactionError):
            await svc.create(AsyncMock(), TransactionCreateRequest(
                transaction_type="BUY", ticker="AAPL", quantity=0, price=1,
                exchange="X", transaction_date="2024-01-02", account_holder_id=1,
            ))

    async def test_split_type_cannot_be_posted(self) -> None:
        svc = _service(AsyncMock())
        with pytest.raises(InvalidTransactionError):
            await svc.create(AsyncMock(), TransactionCreateRequest(transaction_type="SPLIT"))

    async def test_sell_realizes_pl(self) -> None:
        repo = AsyncMock()
        repo.get_buy_lot.return_value = _tx(1)
        repo.decrement_lot.return_value = _tx(1, remaining=2)
        _insert_echo(repo)
        svc = _service(repo)

        result = await svc.create(AsyncMock(), TransactionCreateRequest(
            transaction_type="SELL", ticker="AAPL", exchange="Fidelity", quantity=8,
            price=120, transaction_date="2024-02-01", account_holder_id=1, parent_buy_id=1,
        ))

        assert result.realized_pl == pytest.approx(160)
        assert result.realized_pl_display == "$160.00"
        assert result.transactions[0].parent_buy_id == 1

    async def test_oversell_writes_nothing(self) -> None:
        repo = AsyncMock()
        repo.get_buy_lot.return_value = _tx(1, remaining=5)
        svc = _service(repo)
        db = AsyncMock()

        with pytest.raises(InsufficientLotQuantityError):
            await svc.create(db, TransactionCreateRequest(
                transaction_type="SELL", ticker="AAPL", exchange="Fidelity", quantity=6,
                price=120, transaction_date="2024-02-01", account_holder_id=1, parent_buy_id=1,
            ))
        repo.insert_transaction.assert_not_awaited()
        repo.decrement_lot.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_multi_lot_sell_validates_every_lot_first(self) -> None:
        repo = AsyncMock()
        repo.get_buy_lot.side_effect = [_tx(1, remaining=5), None]
        svc = _service(repo)

        with pytest.raises(ParentLotNotFoundError):
            await svc.create(AsyncMock(), TransactionCreateRequest(
                transaction_type="SELL", ticker="AAPL", exchange="Fidelity", quantity=7,
                price=120, transaction_date="2024-02-01", account_holder_id=1,
                lots=[LotSelection(parent_buy_id=1, quantity_to_sell=5),
                      LotSelection(parent_buy_id=2, quantity_to_sell=2)],
            ))
        repo.decrement_lot.assert_not_awaited()

    async def test_sell_without_lot_reference(self) -> None:
        svc = _service(AsyncMock())
        with pytest.raises(InvalidTransactionError):
            await svc.create(AsyncMock(), TransactionCreateRequest(
                transaction_type="SELL", ticker="AAPL", exchange="Fidelity", quantity=1,
                price=120, transaction_date="2024-02-01", account_holder_id=1,
            ))

    async def test_concurrent_decrement_failure_rolls_back(self) -> None:
        repo = AsyncMock()
        repo.get_buy_lot.return_value = _tx(1, remaining=10)
        repo.decrement_lot.return_value = None
        svc = _service(repo)
        db = AsyncMock()

        with pytest.raises(InsufficientLotQuantityError):
            await svc.create(db, TransactionCreateRequest(
                transaction_type="SELL", ticker="AAPL", exchange="Fidelity", quantity=3,
                price=120, transaction_date="2024-02-01", account_holder_id=1, parent_buy_id=1,
            ))
        db.rollback.assert_awaited_once()


class TestLotLedger:
    async def test_sell_archives_source_ideas(self) -> None:
        repo = AsyncMock()
        repo.get_buy_lot.return_value = _tx(1, source_id=7)
        repo.decrement_lot.return_value = _tx(1, remaining=0, source_id=7)
        _insert_echo(repo)
        watchlist = AsyncMock()
        ledger = LotLedger(repo=repo, watchlist=watchlist)
        db = AsyncMock()

        result = await ledger.sell_from_lots(
            db, holder_id=1, allocations=[LotAllocation(1, 10)], price=110, sell_date="2024-03-01",
        )

        assert result.sells[0].advice_source_id == 7
        watchlist.archive_for_sources.assert_awaited_once_with(db, 1, "AAPL", [7])

    async def test_reverse_sell_restores_parent(self) -> None:
        repo = AsyncMock()
        ledger = LotLedger(repo=repo, watchlist=AsyncMock())
        db = AsyncMock()

        await ledger.reverse_sell(db, _tx(9, tx_type="SELL", quantity=3, parent=1))

        repo.restore_lot.assert_awaited_once_with(db, 1, 3)
        repo.delete_transaction.assert_awaited_once_with(db, 9)


class TestDelete:
    async def test_missing_transaction(self) -> None:
        repo = AsyncMock()
        repo.get_transaction.return_value = None
        with pytest.raises(TransactionNotFoundError):
            await _service(repo).delete(AsyncMock(), 5)

    async def test_buy_with_sells_is_protected(self) -> None:
        repo = AsyncMock()
        repo.get_transaction.return_value = _tx(1)
        repo.count_child_sells.return_value = 2
        with pytest.raises(LotHasSellsError):
            await _service(repo).delete(AsyncMock(), 1)
        repo.delete_transaction.assert_not_awaited()


class TestSplit:
    async def test_rescales_every_open_lot(self) -> None:
        repo = AsyncMock()
        repo.list_open_lots.return_value = [_tx(1), _tx(2)]
        _insert_echo(repo)
        svc = _service(repo)
        db = AsyncMock()

        result = await svc.record_split(db, SplitRequest(
            ticker="aapl", split_from=1, split_to=4, split_date="2024-06-10", account_holder_id=1,
        ))

        assert result.ratio == 4
        assert result.lots_adjusted == 2
        repo.rescale_lot.assert_any_await(db, 1, 4)
        repo.rescale_lot.assert_any_await(db, 2, 4)

    async def test_invalid_ratio(self) -> None:
        with pytest.raises(InvalidTransactionError):
            await _service(AsyncMock()).record_split(AsyncMock(), SplitRequest(
                ticker="AAPL", split_from=0, split_to=4, split_date="2024-06-10",
                account_holder_id=1,
            ))
