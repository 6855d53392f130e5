"""Unit tests for the order watcher, EOD capture and backup jobs."""

import sqlite3
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from src.pt_common.errors import InsufficientLotQuantityError
from src.pt_ledger.domain.models import SellResult, Transaction
from src.pt_order.domain.models import PendingOrder
from src.pt_pricing.domain.models import PRICE_INVALID, PriceCacheEntry
from src.pt_scheduler.jobs import (
    EodPriceCapture,
    OrderWatcher,
    _backup_sqlite,
    backup_database,
    buy_target_message,
    exit_trigger,
)
from src.pt_scheduler.scheduler import build_scheduler


def _prices(quotes: dict[str, object]) -> AsyncMock:
    prices = AsyncMock()
    prices.get_prices.return_value = {
        t: PriceCacheEntry(price=p, timestamp=0) for t, p in quotes.items()  # type: ignore[arg-type]
    }
    return prices


def _order(ticker: str = "TEST", limit: float = 100) -> PendingOrder:
    return PendingOrder(
        id=11, account_holder_id=1, ticker=ticker, exchange="Fidelity", order_type="BUY_LIMIT",
        limit_price=limit, quantity=5, created_date="2024-01-02", status="ACTIVE",
    )


def _lot(up: float | None = None, down: float | None = None,
         down_exp: str | None = None, remaining: float = 10) -> Transaction:
    return Transaction(
        id=21, ticker="AAPL", exchange="Fidelity", transaction_type="BUY", quantity=10,
        price=150, transaction_date="2024-01-02", account_holder_id=1, original_quantity=10,
        quantity_remaining=remaining, limit_price_up=up, limit_price_down=down,
        limit_down_expiration=down_exp,
    )


def _watcher(orders: list[PendingOrder], lots: list[Transaction],
             ledger: AsyncMock | None = None, has_unread: bool = False
             ) -> tuple[OrderWatcher, AsyncMock, AsyncMock]:
    order_repo = AsyncMock()
    order_repo.list_active_buy_limits.return_value = orders
    tx_repo = AsyncMock()
    tx_repo.list_watched_lots.return_value = lots
    notifications = AsyncMock()
    notifications.has_unread_for_order.return_value = has_unread
    ledger = ledger or AsyncMock()
    watcher = OrderWatcher(orders=order_repo, notifications=notifications,
                           transactions=tx_repo, ledger=ledger)
    return watcher, notifications, ledger


class TestMessages:
    def test_buy_target_message(self) -> None:
        assert buy_target_message("TEST", 100, 95) == (
            "Price target of $100.00 met for TEST. Current price is $95.00."
        )

    def test_stop_loss(self) -> None:
        assert exit_trigger(_lot(down=140), 139.5, "2024-05-01") == "Stop-loss"

    def test_take_profit(self) -> None:
        assert exit_trigger(_lot(up=180), 181, "2024-05-01") == "Take-profit"

    def test_expired_limit_ignored(self) -> None:
        assert exit_trigger(_lot(down=140, down_exp="2024-04-30"), 130, "2024-05-01") is None

    def test_between_limits(self) -> None:
        assert exit_trigger(_lot(up=180, down=140), 160, "2024-05-01") is None


class TestOrderWatcher:
    async def test_notifies_when_target_met(self) -> None:
        watcher, notifications, _ = _watcher([_order()], [])
        db = AsyncMock()

        result = await watcher.run(db, _prices({"TEST": 95.0}), "2024-05-01")

        assert result == {"notified": 1, "sold": 0}
        notifications.insert.assert_awaited_once_with(
            db, 1, "Price target of $100.00 met for TEST. Current price is $95.00.",
            pending_order_id=11,
        )
        db.commit.assert_awaited()

    async def test_no_duplicate_notification(self) -> None:
        watcher, notifications, _ = _watcher([_order()], [], has_unread=True)
        result = await watcher.run(AsyncMock(), _prices({"TEST": 95.0}), "2024-05-01")
        assert result["notified"] == 0
        notifications.insert.assert_not_awaited()

    async def test_sentinel_price_skipped(self) -> None:
        watcher, notifications, _ = _watcher([_order()], [])
        await watcher.run(AsyncMock(), _prices({"TEST": PRICE_INVALID}), "2024-05-01")
        notifications.insert.assert_not_awaited()

    async def test_price_above_limit_no_alert(self) -> None:
        watcher, notifications, _ = _watcher([_order()], [])
        await watcher.run(AsyncMock(), _prices({"TEST": 100.5}), "2024-05-01")
        notifications.insert.assert_not_awaited()

    async def test_nothing_to_watch_skips_quotes(self) -> None:
        watcher, _, _ = _watcher([], [])
        prices = _prices({})
        assert await watcher.run(AsyncMock(), prices, "2024-05-01") == {"notified": 0, "sold": 0}
        prices.get_prices.assert_not_awaited()

    async def test_stop_loss_sells_whole_lot(self) -> None:
        ledger = AsyncMock()
        ledger.sell_from_lots.return_value = SellResult()
        watcher, notifications, _ = _watcher([], [_lot(down=140, remaining=7.5)], ledger=ledger)
        db = AsyncMock()

        result = await watcher.run(db, _prices({"AAPL": 138.0}), "2024-05-01")

        assert result["sold"] == 1
        kwargs = ledger.sell_from_lots.await_args.kwargs
        assert kwargs["allocations"][0].parent_buy_id == 21
        assert kwargs["allocations"][0].quantity == 7.5
        assert kwargs["source"] == "ORDER_WATCHER"
        assert kwargs["sell_date"] == "2024-05-01"
        notifications.insert.assert_awaited_once_with(
            db, 1, "Stop-loss triggered for AAPL: sold 7.5 shares at $138.00."
        )

    async def test_failed_auto_sell_is_skipped(self) -> None:
        ledger = AsyncMock()
        ledger.sell_from_lots.side_effect = InsufficientLotQuantityError(21, 10, 0)
        watcher, _, _ = _watcher([], [_lot(up=180)], ledger=ledger)
        db = AsyncMock()

        result = await watcher.run(db, _prices({"AAPL": 200.0}), "2024-05-01")

        assert result["sold"] == 0
        db.rollback.assert_awaited_once()


class TestEodCapture:
    async def test_stores_numeric_prices_only(self) -> None:
        tx_repo = AsyncMock()
        tx_repo.tickers_closed_out_on.return_value = ["AAPL", "BAD"]
        history = AsyncMock()
        job = EodPriceCapture(transactions=tx_repo, history=history)
        db = AsyncMock()

        stored = await job.run(db, _prices({"AAPL": 190.0, "BAD": PRICE_INVALID}), "2024-05-01")

        assert stored == ["AAPL"]
        history.upsert.assert_awaited_once_with(db, "AAPL", "2024-05-01", 190.0)
        db.commit.assert_awaited_once()

    async def test_nothing_closed_out(self) -> None:
        tx_repo = AsyncMock()
        tx_repo.tickers_closed_out_on.return_value = []
        prices = _prices({})
        assert await EodPriceCapture(transactions=tx_repo, history=AsyncMock()).run(
            AsyncMock(), prices, "2024-05-01"
        ) == []
        prices.get_prices.assert_not_awaited()


class TestBackup:
    def _make_db(self, path: Path) -> None:
        conn = sqlite3.connect(path)
        conn.execute("CREATE TABLE t (x INTEGER)")
        conn.execute("INSERT INTO t VALUES (1)")
        conn.commit()
        conn.close()

    def test_copies_database(self, tmp_path: Path) -> None:
        source = tmp_path / "tracker.db"
        self._make_db(source)

        target = _backup_sqlite(str(source), tmp_path / "backups", retention=5)

        conn = sqlite3.connect(target)
        assert conn.execute("SELECT x FROM t").fetchone() == (1,)
        conn.close()

    def test_prunes_old_copies(self, tmp_path: Path) -> None:
        source = tmp_path / "tracker.db"
        self._make_db(source)
        backups = tmp_path / "backups"
        backups.mkdir()
        for stamp in ("20240101-020000", "20240102-020000", "20240103-020000"):
            (backups / f"tracker-{stamp}.db").write_bytes(b"")

        target = _backup_sqlite(str(source), backups, retention=2)

        remaining = sorted(p.name for p in backups.iterdir())
        assert len(remaining) == 2
        assert target.name in remaining
        assert "tracker-20240103-020000.db" in remaining

    async def test_missing_file_is_skipped(self, tmp_path: Path) -> None:
        assert await backup_database(db_path=str(tmp_path / "nope.db")) is None


class TestScheduler:
    def test_registers_jobs(self) -> None:
        scheduler = build_scheduler(MagicMock(), timezone="America/New_York")
        assert {job.id for job in scheduler.get_jobs()} == {
            "eod_capture", "order_watcher", "nightly_backup",
        }

