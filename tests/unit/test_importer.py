"""Unit tests for brokerage templates, reconciliation, sessions and ImporterService."""

from unittest.mock import AsyncMock

import pytest

from src.pt_common.errors import (
    ImportSessionNotFoundError,
    InvalidImportError,
    LotHasSellsError,
    UnknownTemplateError,
)
from src.pt_importer.application.schemas import ImportRequest, Resolution
from src.pt_importer.application.service import ImporterService
from src.pt_importer.domain.models import ImportRow, ParsedTrade
from src.pt_importer.domain.reconcile import classify, combine_fills
from src.pt_importer.domain.templates import TEMPLATES, parse_csv, parse_number
from src.pt_importer.infrastructure.session_store import ImportSessionStore
from src.pt_ledger.domain.models import SellResult, Transaction
from src.pt_research.domain.models import WatchlistItem

FIDELITY_CSV = """Run Date,Action,Symbol,Description,Quantity,Price ($),Amount ($)
01/05/2024,YOU BOUGHT APPLE INC (AAPL) (Cash),AAPL,APPLE INC,10,185.50,-1855.00
01/05/2024,YOU BOUGHT APPLE INC (AAPL) (Cash),AAPL,APPLE INC,5,185.50,-927.50
01/08/2024,YOU SOLD MICROSOFT CORP (MSFT) (Cash),MSFT,MICROSOFT CORP,-3,390.10,1170.30
01/09/2024,DIVIDEND RECEIVED,MSFT,MICROSOFT CORP,,,2.25
01/10/2024,YOU BOUGHT BITCOIN,BTC,BITCOIN,1,45000,-45000
01/11/2024,YOU BOUGHT BROKEN,XYZ,BROKEN CO,abc,1.00,-1
"""

ROBINHOOD_CSV = """Activity Date,Process Date,Settle Date,Instrument,Description,Trans Code,Quantity,Price,Amount
2/1/2024,2/1/2024,2/5/2024,TSLA,Tesla,Buy,4,$190.00,($760.00)
2/2/2024,2/2/2024,2/6/2024,TSLA,Tesla,Sell,2,$200.00,$400.00
2/3/2024,2/3/2024,2/3/2024,,Interest,INT,,,$0.12
"""

ETRADE_CSV = """For Account:,####1234
Download Date,03/10/2024
,
TransactionDate,TransactionType,SecurityType,Symbol,Quantity,Amount,Price,Commission,Description
03/04/24,Bought,EQ,AMD,10,-1800,180.00,0,ADVANCED MICRO
03/05/24,Sold,EQ,AMD,-4,760,190.00,0,ADVANCED MICRO
03/06/24,Dividend,EQ,AMD,0,5,0,0,ADVANCED MICRO
"""


def _trade(**overrides: object) -> ParsedTrade:
    values: dict[str, object] = dict(
        date="2024-01-05", ticker="AAPL", type="BUY", quantity=10, price=185.5, exchange="Fidelity",
    )
    values.update(overrides)
    return ParsedTrade(**values)  # type: ignore[arg-type]


def _tx(tx_id: int = 1, tx_type: str = "BUY", quantity: float = 10, price: float = 185.5,
        date: str = "2024-01-05", remaining: float | None = 10) -> Transaction:
    return Transaction(
        id=tx_id, ticker="AAPL", exchange="Fidelity", transaction_type=tx_type, quantity=quantity,
        price=price, transaction_date=date, account_holder_id=1,
        original_quantity=quantity if tx_type == "BUY" else None,
        quantity_remaining=remaining if tx_type == "BUY" else None,
    )


class TestTemplates:
    def test_fidelity_filters_and_transforms(self) -> None:
        trades = parse_csv(FIDELITY_CSV, TEMPLATES["fidelity"])
        assert [(t.ticker, t.type, t.quantity) for t in trades] == [
            ("AAPL", "BUY", 10), ("AAPL", "BUY", 5), ("MSFT", "SELL", 3),
        ]
        assert trades[0].date == "2024-01-05"
        assert trades[2].price == 390.10
        assert trades[0].exchange == "Fidelity"

    def test_robinhood_price_from_amount(self) -> None:
        trades = parse_csv(ROBINHOOD_CSV, TEMPLATES["robinhood"])
        assert [(t.type, t.quantity, t.price) for t in trades] == [
            ("BUY", 4, 190.0), ("SELL", 2, 200.0),
        ]
        assert trades[0].date == "2024-02-01"

    def test_etrade_skips_preamble(self) -> None:
        trades = parse_csv(ETRADE_CSV, TEMPLATES["etrade"])
        assert [(t.date, t.type, t.quantity) for t in trades] == [
            ("2024-03-04", "BUY", 10), ("2024-03-05", "SELL", 4),
        ]
        assert trades[0].exchange == "E-Trade"

    def test_parse_number(self) -> None:
        assert parse_number("$1,234.50") == 1234.5
        assert parse_number("($760.00)") == -760.0
        with pytest.raises(ValueError):
            parse_number("")


class TestReconcile:
    def test_combine_same_day_same_price_fills(self) -> None:
        combined = combine_fills([_trade(quantity=10), _trade(quantity=5), _trade(price=186)])
        assert [(t.quantity, t.price) for t in combined] == [(15, 185.5), (10, 186)]

    def test_combine_does_not_mutate_input(self) -> None:
        first = _trade(quantity=10)
        combine_fills([first, _trade(quantity=5)])
        assert first.quantity == 10

    def test_within_two_cents_is_duplicate(self) -> None:
        status, match = classify(_trade(price=185.52), [_tx(price=185.5)])
        assert status == "Potential Duplicate"
        assert match is not None and match.id == 1

    def test_three_cents_is_new(self) -> None:
        status, match = classify(_trade(price=185.53), [_tx(price=185.5)])
        assert status == "New"
        assert match is None

    def test_quantity_must_match(self) -> None:
        status, _ = classify(_trade(quantity=10.001), [_tx(quantity=10)])
        assert status == "New"

    def test_type_and_date_must_match(self) -> None:
        assert classify(_trade(type="SELL"), [_tx()])[0] == "New"
        assert classify(_trade(date="2024-01-06"), [_tx()])[0] == "New"


class TestSessionStore:
    def test_expires_after_ttl(self) -> None:
        now = [0.0]
        store = ImportSessionStore(ttl_seconds=3600, clock=lambda: now[0])
        session = store.create(1, [])

        now[0] = 3599
        assert store.get(session.id) is session
        now[0] = 3600
        assert store.get(session.id) is None
        assert len(store) == 0

    def test_discard(self) -> None:
        store = ImportSessionStore()
        session = store.create(1, [])
        store.discard(session.id)
        store.discard(session.id)
        assert store.get(session.id) is None


def _service(
    tx_repo: AsyncMock | None = None,
    notifications: AsyncMock | None = None,
    watchlist: AsyncMock | None = None,
    ledger: AsyncMock | None = None,
    store: ImportSessionStore | None = None,
) -> ImporterService:
    return ImporterService(
        transactions=tx_repo or AsyncMock(),
        notifications=notifications or AsyncMock(),
        watchlist=watchlist or AsyncMock(),
        ledger=ledger or AsyncMock(),
        sessions=store if store is not None else ImportSessionStore(),
    )


class TestUpload:
    async def test_requires_holder_and_template(self) -> None:
        with pytest.raises(InvalidImportError):
            await _service().upload(AsyncMock(), b"x", None, "fidelity")

    async def test_unknown_template(self) -> None:
        with pytest.raises(UnknownTemplateError):
            await _service().upload(AsyncMock(), b"x", "1", "schwab")

    async def test_no_rows(self) -> None:
        with pytest.raises(InvalidImportError):
            await _service().upload(AsyncMock(), b"Run Date,Action\n", "1", "fidelity")

    async def test_classifies_rows(self) -> None:
        tx_repo = AsyncMock()
        tx_repo.list_transactions.return_value = [_tx(quantity=15, price=185.5)]
        store = ImportSessionStore()
        svc = _service(tx_repo=tx_repo, store=store)

        result = await svc.upload(
            AsyncMock(), ("\ufeff" + FIDELITY_CSV).encode("utf-8"), "1", "Fidelity"
        )

        data = result.reconciliationData
        assert [t.ticker for t in data.newTransactions] == ["MSFT"]
        assert len(data.conflicts) == 1
        assert data.conflicts[0].csvData.quantity == 15
        assert data.conflicts[0].manualTransaction["id"] == 1
        assert store.get(result.importSessionId) is not None


def _session(store: ImportSessionStore, rows: list[ImportRow]) -> str:
    return store.create(1, rows).id


class TestCommitImport:
    async def test_unknown_session(self) -> None:
        with pytest.raises(ImportSessionNotFoundError):
            await _service().commit_import(AsyncMock(), ImportRequest(sessionId="missing"))

    async def test_keep_skips_duplicates(self) -> None:
        store = ImportSessionStore()
        sid = _session(store, [ImportRow(_trade(), "Potential Duplicate", 0, matched=_tx())])
        ledger = AsyncMock()
        db = AsyncMock()

        result = await _service(ledger=ledger, store=store).commit_import(
            db, ImportRequest(sessionId=sid)
        )

        assert result.skipped == 1
        ledger.open_lot.assert_not_awaited()
        db.commit.assert_not_awaited()
        assert store.get(sid) is None

    async def test_buy_links_single_open_idea(self) -> None:
        store = ImportSessionStore()
        sid = _session(store, [ImportRow(_trade(), "New", 0)])
        watchlist = AsyncMock()
        watchlist.list_open_for_ticker.return_value = [WatchlistItem(
            id=1, account_holder_id=1, ticker="AAPL", advice_source_id=9, status="OPEN",
        )]
        ledger = AsyncMock()
        db = AsyncMock()

        result = await _service(watchlist=watchlist, ledger=ledger, store=store).commit_import(
            db, ImportRequest(sessionId=sid)
        )

        new_tx = ledger.open_lot.await_args.args[1]
        assert new_tx.advice_source_id == 9
        assert new_tx.source == "CSV_IMPORT"
        assert result.created == 1
        db.commit.assert_awaited_once()

    async def test_sell_fifo_with_shortfall_notice(self) -> None:
        store = ImportSessionStore()
        sid = _session(store, [ImportRow(_trade(type="SELL", quantity=12, date="2024-02-01"), "New", 0)])
        tx_repo = AsyncMock()
        tx_repo.list_open_lots.return_value = [
            _tx(1, remaining=4, date="2024-01-02"),
            _tx(2, remaining=6, date="2024-01-03"),
            _tx(3, remaining=50, date="2024-03-01"),
        ]
        ledger = AsyncMock()
        ledger.sell_from_lots.return_value = SellResult(sells=[_tx(10, "SELL"), _tx(11, "SELL")])
        notifications = AsyncMock()
        db = AsyncMock()

        result = await _service(tx_repo=tx_repo, notifications=notifications, ledger=ledger,
                                store=store).commit_import(db, ImportRequest(sessionId=sid))

        allocations = ledger.sell_from_lots.await_args.kwargs["allocations"]
        assert [(a.parent_buy_id, a.quantity) for a in allocations] == [(1, 4), (2, 6)]
        message = notifications.insert.await_args.args[2]
        assert "not enough shares" in message
        assert "2 shares were not recorded as sold" in message
        assert result.created == 2
        assert result.notifications == 1

    async def test_sell_without_lots_notifies(self) -> None:
        store = ImportSessionStore()
        sid = _session(store, [ImportRow(_trade(type="SELL"), "New", 0)])
        tx_repo = AsyncMock()
        tx_repo.list_open_lots.return_value = []
        ledger = AsyncMock()
        notifications = AsyncMock()

        await _service(tx_repo=tx_repo, notifications=notifications, ledger=ledger,
                       store=store).commit_import(AsyncMock(), ImportRequest(sessionId=sid))

        ledger.sell_from_lots.assert_not_awaited()
        assert "no corresponding open BUY lot" in notifications.insert.await_args.args[2]

    async def test_invalid_price_notifies(self) -> None:
        store = ImportSessionStore()
        sid = _session(store, [ImportRow(_trade(price=0), "New", 0)])
        ledger = AsyncMock()
        notifications = AsyncMock()

        await _service(notifications=notifications, ledger=ledger, store=store).commit_import(
            AsyncMock(), ImportRequest(sessionId=sid)
        )

        ledger.open_lot.assert_not_awaited()
        assert "price was invalid or zero" in notifications.insert.await_args.args[2]

    async def test_replace_buy_with_sells_rolls_back(self) -> None:
        store = ImportSessionStore()
        sid = _session(store, [ImportRow(_trade(), "Potential Duplicate", 0, matched=_tx())])
        tx_repo = AsyncMock()
        tx_repo.get_transaction.return_value = _tx()
        tx_repo.count_child_sells.return_value = 1
        db = AsyncMock()

        with pytest.raises(LotHasSellsError):
            await _service(tx_repo=tx_repo, store=store).commit_import(db, ImportRequest(
                sessionId=sid, resolutions=[Resolution(csvIndex=0, resolution="REPLACE")],
            ))
        db.rollback.assert_awaited_once()
        assert store.get(sid) is not None

    async def test_replace_sell_reverses_it(self) -> None:
        store = ImportSessionStore()
        matched = _tx(7, "SELL")
        sid = _session(store, [ImportRow(_trade(type="SELL"), "Potential Duplicate", 0,
                                         matched=matched)])
        tx_repo = AsyncMock()
        tx_repo.get_transaction.return_value = matched
        tx_repo.list_open_lots.return_value = [_tx(1, remaining=10, date="2024-01-01")]
        ledger = AsyncMock()
        ledger.sell_from_lots.return_value = SellResult(sells=[_tx(8, "SELL")])
        db = AsyncMock()

        result = await _service(tx_repo=tx_repo, ledger=ledger, store=store).commit_import(
            db, ImportRequest(sessionId=sid,
                              resolutions=[Resolution(csvIndex=0, resolution="replace")])
        )

        ledger.reverse_sell.assert_awaited_once_with(db, matched)
        assert result.replaced == 1
        assert result.created == 1

    async def test_bad_resolution(self) -> None:
        store = ImportSessionStore()
        sid = _session(store, [])
        with pytest.raises(InvalidImportError):
            await _service(store=store).commit_import(AsyncMock(), ImportRequest(
                sessionId=sid, resolutions=[Resolution(csvIndex=0, resolution="MERGE")],
            ))
