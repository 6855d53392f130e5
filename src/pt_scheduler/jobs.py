"""Cron jobs: order watcher, end-of-day price capture, nightly backup.

Each job opens its own session from async_session_factory; the worker
classes take the session as an argument so tests can drive them directly.
"""

import asyncio
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pt_common.database import async_session_factory, database_file_path
from src.pt_common.datetime_utils import market_today, parse_trade_date
from src.pt_common.enums import TransactionSource
from src.pt_common.errors import AppError
from src.pt_common.formatting import format_quantity
from src.pt_ledger.application.lot_ledger import LotLedger
from src.pt_ledger.domain.models import LotAllocation, Transaction
from src.pt_ledger.domain.repository import TransactionRepositoryProtocol
from src.pt_ledger.infrastructure.persistence import TransactionRepository
from src.pt_order.domain.repository import (
    NotificationRepositoryProtocol,
    PendingOrderRepositoryProtocol,
)
from src.pt_order.infrastructure.persistence import (
    NotificationRepository,
    PendingOrderRepository,
)
from src.pt_pricing.application.service import (
    PRIORITY_EOD_CAPTURE,
    PRIORITY_ORDER_WATCHER,
    PriceService,
    get_price_service,
)
from src.pt_pricing.infrastructure.persistence import HistoricalPriceRepository

logger = logging.getLogger(__name__)


def _money(value: float) -> str:
    return f"${value:.2f}"


def buy_target_message(ticker: str, limit_price: float, price: float) -> str:
    return (
        f"Price target of {_money(limit_price)} met for {ticker}. "
        f"Current price is {_money(price)}."
    )


def _active(expiration: str | None, today: str) -> bool:
    """A limit with no expiration, or one expiring today or later, is live."""
    expires = parse_trade_date(expiration)
    return expires is None or expires.isoformat() >= today


def exit_trigger(lot: Transaction, price: float, today: str) -> str | None:
    """'Stop-loss' or 'Take-profit' when the price crosses one of the lot's limits."""
    if (
        lot.limit_price_down
        and price <= lot.limit_price_down
        and _active(lot.limit_down_expiration, today)
    ):
        return "Stop-loss"
    if (
        lot.limit_price_up
        and price >= lot.limit_price_up
        and _active(lot.limit_up_expiration, today)
    ):
        return "Take-profit"
    return None


class OrderWatcher:
    def __init__(
        self,
        orders: PendingOrderRepositoryProtocol | None = None,
        notifications: NotificationRepositoryProtocol | None = None,
        transactions: TransactionRepositoryProtocol | None = None,
        ledger: LotLedger | None = None,
    ) -> None:
        self._orders: PendingOrderRepositoryProtocol = orders or PendingOrderRepository()
        self._notifications: NotificationRepositoryProtocol = (
            notifications or NotificationRepository()
        )
        self._transactions: TransactionRepositoryProtocol = (
            transactions or TransactionRepository()
        )
        self._ledger = ledger or LotLedger(repo=self._transactions)

    async def run(self, db: AsyncSession, prices: PriceService, today: str) -> dict[str, int]:
        orders = await self._orders.list_active_buy_limits(db)
        lots = await self._transactions.list_watched_lots(db)
        tickers = {o.ticker for o in orders} | {lot.ticker for lot in lots}
        if not tickers:
            return {"notified": 0, "sold": 0}
        quotes = await prices.get_prices(sorted(tickers), priority=PRIORITY_ORDER_WATCHER)

        notified = 0
        try:
            for order in orders:
                entry = quotes.get(order.ticker)
                if entry is None or not entry.is_numeric:
                    continue
                price = float(entry.price)  # type: ignore[arg-type]
                if not order.is_triggered_by(price):
                    continue
                if await self._notifications.has_unread_for_order(db, order.id):
                    continue
                await self._notifications.insert(
                    db,
                    order.account_holder_id,
                    buy_target_message(order.ticker, order.limit_price, price),
                    pending_order_id=order.id,
                )
                notified += 1
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        sold = 0
        for lot in lots:
            entry = quotes.get(lot.ticker)
            if entry is None or not entry.is_numeric:
                continue
            price = float(entry.price)  # type: ignore[arg-type]
            trigger = exit_trigger(lot, price, today)
            if trigger is None:
                continue
            if await self._auto_sell(db, lot, price, today, trigger):
                sold += 1

        if notified or sold:
            logger.info("Order watcher: %d notifications, %d automatic sells", notified, sold)
        return {"notified": notified, "sold": sold}

    async def _auto_sell(
        self, db: AsyncSession, lot: Transaction, price: float, today: str, trigger: str
    ) -> bool:
        """Sell the whole remaining lot and notify; one DB transaction per lot."""
        quantity = lot.quantity_remaining or 0.0
        try:
            await self._ledger.sell_from_lots(
                db,
                holder_id=lot.account_holder_id,
                allocations=[LotAllocation(parent_buy_id=lot.id, quantity=quantity)],
                price=price,
                sell_date=today,
                source=TransactionSource.ORDER_WATCHER.value,
            )
            await self._notifications.insert(
                db,
                lot.account_holder_id,
                f"{trigger} triggered for {lot.ticker}: sold {format_quantity(quantity)} "
                f"shares at {_money(price)}.",
            )
            await db.commit()
        except AppError as exc:
            # lot changed under us (manual sell); skip it this round
            await db.rollback()
            logger.warning("Auto-sell of lot %d skipped: %s", lot.id, exc.message)
            return False
        except Exception:
            await db.rollback()
            raise
        return True


class EodPriceCapture:
    def __init__(
        self,
        transactions: TransactionRepositoryProtocol | None = None,
        history: HistoricalPriceRepository | None = None,
    ) -> None:
        self._transactions: TransactionRepositoryProtocol = (
            transactions or TransactionRepository()
        )
        self._history = history or HistoricalPriceRepository()

    async def run(self, db: AsyncSession, prices: PriceService, day: str) -> list[str]:
        """Store a close for every ticker fully exited on `day`; returns tickers stored."""
        tickers = await self._transactions.tickers_closed_out_on(db, day)
        if not tickers:
            return []
        quotes = await prices.get_prices(tickers, priority=PRIORITY_EOD_CAPTURE)
        stored: list[str] = []
        try:
            for ticker in tickers:
                entry = quotes.get(ticker)
                if entry is None or not entry.is_numeric:
                    logger.warning("EOD capture: no usable price for %s (%r)", ticker,
                                   entry.price if entry else None)
                    continue
                await self._history.upsert(db, ticker, day, float(entry.price))  # type: ignore[arg-type]
                stored.append(ticker)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("EOD capture for %s stored %d prices", day, len(stored))
        return stored


# ---------------------------------------------------------------------------
# Scheduler entry points (own their session)
# ---------------------------------------------------------------------------


async def run_order_watcher(prices: PriceService | None = None) -> None:
    try:
        async with async_session_factory() as db:
            await OrderWatcher().run(
                db, prices or get_price_service(), market_today(settings.SCHEDULER_TIMEZONE)
            )
    except Exception:
        logger.exception("Order watcher run failed")


async def capture_eod_prices(day: str | None = None, prices: PriceService | None = None) -> None:
    target = day or market_today(settings.SCHEDULER_TIMEZONE)
    try:
        async with async_session_factory() as db:
            await EodPriceCapture().run(db, prices or get_price_service(), target)
    except Exception:
        logger.exception("EOD capture for %s failed", target)


def _backup_sqlite(source: str, backup_dir: Path, retention: int) -> Path:
    backup_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    target = backup_dir / f"{Path(source).stem}-{stamp}.db"
    src_conn = sqlite3.connect(source)
    try:
        dst_conn = sqlite3.connect(target)
        try:
            src_conn.backup(dst_conn)
        finally:
            dst_conn.close()
    finally:
        src_conn.close()

    backups = sorted(backup_dir.glob(f"{Path(source).stem}-*.db"), reverse=True)
    for old in backups[retention:]:
        old.unlink()
    return target


async def backup_database(
    db_path: str | None = None,
    backup_dir: str | None = None,
    retention: int | None = None,
) -> Path | None:
    """Copy the SQLite file into the backup directory, keeping the newest N copies."""
    source = db_path or database_file_path()
    if source is None or not Path(source).exists():
        logger.warning("Backup skipped: no SQLite database file")
        return None
    try:
        target = await asyncio.to_thread(
            _backup_sqlite,
            source,
            Path(backup_dir or settings.BACKUP_DIR),
            retention if retention is not None else settings.BACKUP_RETENTION,
        )
    except (OSError, sqlite3.Error):
        logger.exception("Database backup failed")
        return None
    logger.info("Database backed up to %s", target)
    return target
