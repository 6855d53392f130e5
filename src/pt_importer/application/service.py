"""Importer service — brokerage CSV upload, reconciliation and commit.

Upload parses and classifies rows and parks them in an in-memory session;
nothing touches the ledger until import, which applies the chosen rows in
date order inside one DB transaction.
"""

import logging
import math
from dataclasses import asdict
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.datetime_utils import parse_trade_date
from src.pt_common.enums import ImportResolution, ImportRowStatus, TransactionSource, TransactionType
from src.pt_common.errors import (
    ImportSessionNotFoundError,
    InvalidImportError,
    LotHasSellsError,
    UnknownTemplateError,
)
from src.pt_common.filters import parse_holder
from src.pt_common.formatting import format_quantity
from src.pt_importer.application.schemas import (
    Conflict,
    CsvTrade,
    ImportRequest,
    ImportResult,
    ReconciliationData,
    UploadResponse,
)
from src.pt_importer.domain.models import ImportRow, ParsedTrade
from src.pt_importer.domain.reconcile import classify, combine_fills
from src.pt_importer.domain.templates import TEMPLATES, parse_csv
from src.pt_importer.infrastructure.session_store import ImportSessionStore, import_sessions
from src.pt_ledger.application.lot_ledger import LotLedger
from src.pt_ledger.domain.lots import fifo_allocate
from src.pt_ledger.domain.models import NewTransaction, Transaction
from src.pt_ledger.domain.repository import TransactionRepositoryProtocol
from src.pt_ledger.infrastructure.persistence import TransactionRepository
from src.pt_order.domain.repository import NotificationRepositoryProtocol
from src.pt_order.infrastructure.persistence import NotificationRepository
from src.pt_research.domain.repository import WatchlistRepositoryProtocol
from src.pt_research.infrastructure.persistence import WatchlistRepository

logger = logging.getLogger(__name__)


def _valid_price(price: float) -> bool:
    return price is not None and not math.isnan(price) and price > 0


class ImporterService:
    def __init__(
        self,
        transactions: TransactionRepositoryProtocol | None = None,
        notifications: NotificationRepositoryProtocol | None = None,
        watchlist: WatchlistRepositoryProtocol | None = None,
        ledger: LotLedger | None = None,
        sessions: ImportSessionStore | None = None,
    ) -> None:
        self._transactions: TransactionRepositoryProtocol = transactions or TransactionRepository()
        self._notifications: NotificationRepositoryProtocol = (
            notifications or NotificationRepository()
        )
        self._watchlist: WatchlistRepositoryProtocol = watchlist or WatchlistRepository()
        self._ledger = ledger or LotLedger(self._transactions, self._watchlist)
        self._sessions = sessions if sessions is not None else import_sessions

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(
        self,
        db: AsyncSession,
        content: bytes | None,
        holder_raw: str | None,
        template_name: str | None,
    ) -> UploadResponse:
        if not content:
            raise InvalidImportError("No file was uploaded.")
        holder_id = parse_holder(holder_raw)
        if holder_id is None or not template_name:
            raise InvalidImportError("Account Holder and Brokerage Template are required.")
        template = TEMPLATES.get(template_name.strip().lower())
        if template is None:
            raise UnknownTemplateError(template_name)
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise InvalidImportError("The uploaded file is not UTF-8 text.") from None

        trades = combine_fills(parse_csv(text, template))
        if not trades:
            raise InvalidImportError(
                "No valid transactions found in the CSV. Check the file and the selected template."
            )

        existing = await self._transactions.list_transactions(db, holder_id)
        rows: list[ImportRow] = []
        for index, trade in enumerate(trades):
            status, match = classify(trade, existing)
            rows.append(ImportRow(trade=trade, status=status, csv_index=index, matched=match))
        session = self._sessions.create(holder_id, rows)
        logger.info(
            "Import session %s: %d rows from %s for holder %d",
            session.id, len(rows), template.name, holder_id,
        )

        new_rows = [r for r in rows if r.status == ImportRowStatus.NEW.value]
        conflicts = [
            Conflict(
                csvData=CsvTrade.from_row(r),
                manualTransaction=asdict(r.matched),  # type: ignore[arg-type]
                csvRowIndex=r.csv_index,
            )
            for r in rows
            if r.matched is not None
        ]
        return UploadResponse(
            importSessionId=session.id,
            reconciliationData=ReconciliationData(
                newTransactions=[CsvTrade.from_row(r) for r in new_rows],
                conflicts=conflicts,
            ),
        )

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def commit_import(self, db: AsyncSession, body: ImportRequest) -> ImportResult:
        if not body.sessionId:
            raise InvalidImportError("Invalid import payload.")
        session = self._sessions.get(body.sessionId)
        if session is None:
            raise ImportSessionNotFoundError()

        choices: dict[int, str] = {}
        for item in body.resolutions:
            resolution = item.resolution.upper()
            if resolution not in ImportResolution.__members__:
                raise InvalidImportError("Invalid import payload.")
            choices[item.csvIndex] = resolution

        to_replace: list[ImportRow] = []
        to_create: list[ImportRow] = []
        result = ImportResult()
        for row in session.rows:
            if row.matched is None:
                to_create.append(row)
            elif choices.get(row.csv_index) == ImportResolution.REPLACE.value:
                to_replace.append(row)
                to_create.append(row)
            else:
                result.skipped += 1

        if not to_create:
            self._sessions.discard(session.id)
            return result

        holder_id = session.account_holder_id
        # Same-day BUYs go first so a same-day SELL can close them
        to_create.sort(key=lambda r: (r.trade.date, r.trade.type != TransactionType.BUY.value))
        try:
            for row in to_replace:
                await self._remove(db, row.matched)  # type: ignore[arg-type]
                result.replaced += 1
            for row in to_create:
                trade = row.trade
                if not _valid_price(trade.price):
                    await self._notify(
                        db, holder_id,
                        f"An imported transaction for {format_quantity(trade.quantity)} shares "
                        f"of {trade.ticker} on {trade.date} was ignored because the price was "
                        f"invalid or zero ({trade.price}).",
                    )
                    result.notifications += 1
                elif trade.type == TransactionType.BUY.value:
                    await self._import_buy(db, holder_id, trade)
                    result.created += 1
                else:
                    created, notified = await self._import_sell(db, holder_id, trade)
                    result.created += created
                    result.notifications += notified
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        self._sessions.discard(session.id)
        logger.info(
            "Import session %s committed: %d created, %d replaced, %d notifications",
            session.id, result.created, result.replaced, result.notifications,
        )
        return result

    async def _remove(self, db: AsyncSession, tx: Transaction) -> None:
        current = await self._transactions.get_transaction(db, tx.id)
        if current is None:
            return
        if current.is_buy:
            if await self._transactions.count_child_sells(db, current.id) > 0:
                raise LotHasSellsError()
            await self._transactions.delete_transaction(db, current.id)
        else:
            await self._ledger.reverse_sell(db, current)

    async def _import_buy(self, db: AsyncSession, holder_id: int, trade: ParsedTrade) -> None:
        ideas = await self._watchlist.list_open_for_ticker(db, holder_id, trade.ticker)
        advice_source_id = ideas[0].advice_source_id if len(ideas) == 1 else None
        await self._ledger.open_lot(
            db,
            NewTransaction(
                ticker=trade.ticker,
                exchange=trade.exchange,
                transaction_type=TransactionType.BUY.value,
                quantity=trade.quantity,
                price=trade.price,
                transaction_date=trade.date,
                account_holder_id=holder_id,
                advice_source_id=advice_source_id,
                source=TransactionSource.CSV_IMPORT.value,
            ),
        )

    async def _import_sell(
        self, db: AsyncSession, holder_id: int, trade: ParsedTrade
    ) -> tuple[int, int]:
        """Returns (SELL rows written, notifications written)."""
        sell_day = parse_trade_date(trade.date) or date.max
        lots = [
            lot
            for lot in await self._transactions.list_open_lots(db, holder_id, trade.ticker)
            if (parse_trade_date(lot.transaction_date) or date.min) <= sell_day
        ]
        allocations, unfilled = fifo_allocate(lots, trade.quantity)
        if not allocations:
            await self._notify(
                db, holder_id,
                f"An imported SELL transaction for {format_quantity(trade.quantity)} shares of "
                f"{trade.ticker} on {trade.date} was ignored because no corresponding open BUY "
                f"lot could be found.",
            )
            return 0, 1

        sold = await self._ledger.sell_from_lots(
            db,
            holder_id=holder_id,
            allocations=allocations,
            price=trade.price,
            sell_date=trade.date,
            exchange=trade.exchange,
            ticker=trade.ticker,
            source=TransactionSource.CSV_IMPORT.value,
        )
        if unfilled > 0:
            await self._notify(
                db, holder_id,
                f"An imported SELL transaction for {trade.ticker} on {trade.date} could not be "
                f"fully completed. There were not enough shares in open lots to cover the entire "
                f"sale. {format_quantity(unfilled)} shares were not recorded as sold.",
            )
            return len(sold.sells), 1
        return len(sold.sells), 0

    async def _notify(self, db: AsyncSession, holder_id: int, message: str) -> None:
        logger.warning("Import notice for holder %d: %s", holder_id, message)
        await self._notifications.insert(db, holder_id, message)
