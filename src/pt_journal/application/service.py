"""JournalApplicationService — paper trades, their status and execution.

Executing an entry opens a real BUY lot through LotLedger and flips the
entry to EXECUTED in the same DB transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.datetime_utils import parse_trade_date
from src.pt_common.enums import JournalStatus, TransactionSource, TransactionType
from src.pt_common.errors import (
    InvalidJournalInputError,
    InvalidJournalTransitionError,
    JournalEntryExecutedError,
    JournalEntryNotFoundError,
)
from src.pt_journal.application.schemas import (
    ExecuteJournalResponse,
    JournalCreateRequest,
    JournalEntryResponse,
    JournalExecuteRequest,
    JournalUpdateRequest,
)
from src.pt_journal.domain.models import JournalEntry, check_status_change, guess_exchange
from src.pt_journal.domain.repository import JournalRepositoryProtocol
from src.pt_journal.infrastructure.persistence import JournalRepository
from src.pt_ledger.application.lot_ledger import LotLedger
from src.pt_ledger.domain.models import NewTransaction
from src.pt_research.domain.repository import (
    AdviceSourceRepositoryProtocol,
    DocumentRepositoryProtocol,
)
from src.pt_research.infrastructure.persistence import (
    AdviceSourceRepository,
    DocumentRepository,
)

logger = logging.getLogger(__name__)

_STATUSES = {s.value for s in JournalStatus}

# NOT NULL columns a PUT may touch but never clear
_REQUIRED_ON_UPDATE = (
    "ticker", "entry_date", "exchange", "direction", "quantity", "entry_price", "status",
)


class JournalApplicationService:
    def __init__(
        self,
        repo: JournalRepositoryProtocol | None = None,
        ledger: LotLedger | None = None,
        documents: DocumentRepositoryProtocol | None = None,
        sources: AdviceSourceRepositoryProtocol | None = None,
    ) -> None:
        self._repo: JournalRepositoryProtocol = repo or JournalRepository()
        self._ledger = ledger or LotLedger()
        self._documents: DocumentRepositoryProtocol = documents or DocumentRepository()
        self._sources: AdviceSourceRepositoryProtocol = sources or AdviceSourceRepository()

    async def list_entries(
        self, db: AsyncSession, holder_id: int | None, status: str | None
    ) -> list[JournalEntryResponse]:
        if holder_id is None:
            raise InvalidJournalInputError("A specific account holder ID is required.")
        entries = await self._repo.list_entries(db, holder_id, status or None)
        return [JournalEntryResponse.from_domain(e) for e in entries]

    async def create(self, db: AsyncSession, body: JournalCreateRequest) -> JournalEntryResponse:
        ticker = (body.ticker or "").strip().upper()
        entry_day = parse_trade_date(body.entry_date)
        if (
            not body.account_holder_id
            or not ticker
            or entry_day is None
            or not body.entry_price
            or body.entry_price <= 0
            or not body.quantity
            or body.quantity <= 0
            or not (body.exchange or "").strip()
            or not (body.direction or "").strip()
        ):
            raise InvalidJournalInputError(
                "Missing required fields for journal entry "
                "(holder, ticker, date, price, qty, exchange, direction)."
            )
        values = body.model_dump(exclude={"linked_document_urls"})
        values.update(ticker=ticker, entry_date=entry_day.isoformat())
        for key in ("target_price", "target_price_2", "stop_loss_price"):
            values[key] = values[key] or None

        try:
            entry = await self._repo.insert(db, values)
            for doc in body.linked_document_urls:
                if not doc.url:
                    continue
                await self._documents.insert(
                    db,
                    {
                        "account_holder_id": entry.account_holder_id,
                        "journal_entry_id": entry.id,
                        "advice_source_id": None,
                        "title": doc.title,
                        "document_type": doc.type,
                        "external_link": doc.url,
                        "description": doc.description,
                    },
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Created journal entry %d (%s)", entry.id, entry.ticker)
        return JournalEntryResponse.from_domain(entry)

    async def update(
        self, db: AsyncSession, entry_id: int, body: JournalUpdateRequest
    ) -> JournalEntryResponse:
        values = body.model_dump(exclude_unset=True)
        if not values:
            raise InvalidJournalInputError("No fields provided to update.")
        for key in _REQUIRED_ON_UPDATE:
            if key in values and (values[key] is None or str(values[key]).strip() == ""):
                raise InvalidJournalInputError(f"{key} cannot be empty.")
        for key in ("quantity", "entry_price"):
            if key in values and values[key] <= 0:
                raise InvalidJournalInputError(f"{key} must be greater than zero.")
        if "entry_date" in values:
            entry_day = parse_trade_date(values["entry_date"])
            if entry_day is None:
                raise InvalidJournalInputError(f"Invalid entry date: {values['entry_date']}")
            values["entry_date"] = entry_day.isoformat()
        current = await self._repo.get(db, entry_id)
        if current is None:
            raise JournalEntryNotFoundError(entry_id)
        if current.is_executed:
            raise JournalEntryExecutedError("modify")

        target = values.get("status")
        if target is not None:
            if target not in _STATUSES:
                raise InvalidJournalInputError(f"Invalid status: {target}")
            if target == JournalStatus.EXECUTED.value:
                raise InvalidJournalTransitionError(current.status, target)
            check_status_change(current.status, target)
        if "ticker" in values and values["ticker"]:
            values["ticker"] = values["ticker"].strip().upper()
        # empty strings clear a column
        values = {k: (None if v == "" else v) for k, v in values.items()}

        try:
            updated = await self._repo.update(db, entry_id, values)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return JournalEntryResponse.from_domain(updated)  # type: ignore[arg-type]

    async def execute(
        self, db: AsyncSession, entry_id: int, body: JournalExecuteRequest
    ) -> ExecuteJournalResponse:
        exec_day = parse_trade_date(body.execution_date)
        if exec_day is None or body.execution_price is None or not body.account_holder_id:
            raise InvalidJournalInputError(
                "Missing required execution data: date, price, and account holder ID."
            )
        if body.execution_price <= 0:
            raise InvalidJournalInputError("Invalid execution price.")

        entry = await self._repo.get(db, entry_id)
        if entry is None or entry.account_holder_id != body.account_holder_id:
            raise JournalEntryNotFoundError(entry_id)
        if not entry.is_open:
            raise InvalidJournalTransitionError(entry.status, JournalStatus.EXECUTED.value)

        exchange = (body.exchange or "").strip() or await self._execution_exchange(db, entry)
        try:
            lot = await self._ledger.open_lot(
                db,
                NewTransaction(
                    ticker=entry.ticker,
                    exchange=exchange,
                    transaction_type=TransactionType.BUY.value,
                    quantity=entry.quantity,
                    price=body.execution_price,
                    transaction_date=exec_day.isoformat(),
                    account_holder_id=entry.account_holder_id,
                    limit_price_up=entry.target_price,
                    limit_price_down=entry.stop_loss_price,
                    limit_price_up_2=entry.target_price_2,
                    advice_source_id=entry.advice_source_id,
                    linked_journal_id=entry.id,
                    source=TransactionSource.JOURNAL.value,
                ),
            )
            executed = await self._repo.mark_executed(
                db, entry.id, exec_day.isoformat(), body.execution_price, lot.id
            )
            if executed is None:
                # another request executed or closed it first
                raise InvalidJournalTransitionError(entry.status, JournalStatus.EXECUTED.value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Executed journal entry %d as transaction %d", entry.id, lot.id)
        return ExecuteJournalResponse(
            entry=JournalEntryResponse.from_domain(executed), newTransactionId=lot.id
        )

    async def _execution_exchange(self, db: AsyncSession, entry: JournalEntry) -> str:
        if entry.exchange and entry.exchange.strip():
            return entry.exchange.strip()
        source_name = None
        if entry.advice_source_id is not None:
            source = await self._sources.get(db, entry.advice_source_id)
            source_name = source.name if source else None
        return guess_exchange(source_name)

    async def delete(self, db: AsyncSession, entry_id: int) -> None:
        entry = await self._repo.get(db, entry_id)
        if entry is None:
            raise JournalEntryNotFoundError(entry_id)
        if entry.is_executed:
            raise JournalEntryExecutedError("delete")
        try:
            await self._documents.delete_for_journal(db, entry_id)
            await self._repo.delete(db, entry_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
