"""TransactionApplicationService — ledger CRUD over lots.

Each public mutation is one DB transaction: commit on success, rollback on
any error, so a rejected multi-lot sell leaves no partial rows behind.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.datetime_utils import parse_trade_date
from src.pt_common.enums import TransactionType
from src.pt_common.errors import (
    InsufficientLotQuantityError,
    InvalidTransactionError,
    LotHasSellsError,
    SellBeforeBuyError,
    TransactionNotFoundError,
)
from src.pt_ledger.application.lot_ledger import LotLedger
from src.pt_ledger.application.schemas import (
    CreateTransactionResponse,
    SplitRequest,
    SplitResponse,
    TransactionCreateRequest,
    TransactionResponse,
    TransactionUpdateRequest,
)
from src.pt_ledger.domain.lots import (
    QTY_EPSILON,
    adjust_lot_for_quantity_edit,
    normalize_allocations,
)
from src.pt_ledger.domain.models import LotAllocation, NewTransaction
from src.pt_ledger.domain.repository import TransactionRepositoryProtocol
from src.pt_ledger.infrastructure.persistence import TransactionRepository

logger = logging.getLogger(__name__)

# SPLIT rows are only written by record_split
_RECORDABLE_TYPES = {
    TransactionType.BUY.value,
    TransactionType.SELL.value,
    TransactionType.DIVIDEND.value,
}


@dataclass
class _CommonFields:
    ticker: str
    exchange: str
    quantity: float
    price: float
    transaction_date: str
    account_holder_id: int


def _validate_common(
    body: TransactionCreateRequest | TransactionUpdateRequest,
) -> _CommonFields:
    ticker = (body.ticker or "").strip().upper()
    exchange = (body.exchange or "").strip()
    trade_day = parse_trade_date(body.transaction_date)
    if (
        not ticker
        or not exchange
        or trade_day is None
        or body.quantity is None
        or body.quantity <= 0
        or body.price is None
        or body.price <= 0
        or not body.account_holder_id
    ):
        raise InvalidTransactionError()
    return _CommonFields(
        ticker=ticker,
        exchange=exchange,
        quantity=body.quantity,
        price=body.price,
        transaction_date=trade_day.isoformat(),
        account_holder_id=body.account_holder_id,
    )


class TransactionApplicationService:
    def __init__(
        self,
        repo: TransactionRepositoryProtocol | None = None,
        ledger: LotLedger | None = None,
    ) -> None:
        self._repo: TransactionRepositoryProtocol = repo or TransactionRepository()
        self._ledger = ledger or LotLedger(repo=self._repo)

    async def list_transactions(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[TransactionResponse]:
        rows = await self._repo.list_transactions(db, holder_id)
        return [TransactionResponse.from_domain(r) for r in rows]

    async def create(
        self, db: AsyncSession, body: TransactionCreateRequest
    ) -> CreateTransactionResponse:
        tx_type = (body.transaction_type or "").upper()
        if tx_type not in _RECORDABLE_TYPES:
            raise InvalidTransactionError()
        fields = _validate_common(body)

        try:
            if tx_type == TransactionType.BUY.value:
                lot = await self._ledger.open_lot(db, self._new_row(fields, tx_type, body))
                response = CreateTransactionResponse.build([lot])
            elif tx_type == TransactionType.SELL.value:
                result = await self._ledger.sell_from_lots(
                    db,
                    holder_id=fields.account_holder_id,
                    allocations=self._allocations(body, fields.quantity),
                    price=fields.price,
                    sell_date=fields.transaction_date,
                    exchange=fields.exchange,
                    ticker=fields.ticker,
                )
                response = CreateTransactionResponse.build(result.sells, result.realized_pl)
            else:
                row = await self._repo.insert_transaction(
                    db, self._new_row(fields, tx_type, body)
                )
                response = CreateTransactionResponse.build([row])
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Recorded %s %s x%s @ %s for holder %d",
            tx_type, fields.ticker, fields.quantity, fields.price, fields.account_holder_id,
        )
        return response

    @staticmethod
    def _new_row(
        fields: _CommonFields, tx_type: str, body: TransactionCreateRequest
    ) -> NewTransaction:
        return NewTransaction(
            ticker=fields.ticker,
            exchange=fields.exchange,
            transaction_type=tx_type,
            quantity=fields.quantity,
            price=fields.price,
            transaction_date=fields.transaction_date,
            account_holder_id=fields.account_holder_id,
            limit_price_up=body.limit_price_up or None,
            limit_up_expiration=body.limit_up_expiration or None,
            limit_price_down=body.limit_price_down or None,
            limit_down_expiration=body.limit_down_expiration or None,
            limit_price_up_2=body.limit_price_up_2 or None,
            limit_up_expiration_2=body.limit_up_expiration_2 or None,
            advice_source_id=body.advice_source_id,
            linked_journal_id=body.linked_journal_id,
        )

    @staticmethod
    def _allocations(body: TransactionCreateRequest, quantity: float) -> list[LotAllocation]:
        if body.lots:
            return normalize_allocations(
                ((lot.parent_buy_id, lot.quantity_to_sell) for lot in body.lots), quantity
            )
        if body.parent_buy_id:
            return [LotAllocation(parent_buy_id=body.parent_buy_id, quantity=quantity)]
        raise InvalidTransactionError(
            "A SELL must reference a parent lot (parent_buy_id) or a list of lots."
        )

    async def update(
        self, db: AsyncSession, tx_id: int, body: TransactionUpdateRequest
    ) -> TransactionResponse:
        fields = _validate_common(body)
        current = await self._repo.get_transaction(db, tx_id)
        if current is None:
            raise TransactionNotFoundError(tx_id)

        values: dict[str, object] = {
            "ticker": fields.ticker,
            "exchange": fields.exchange,
            "quantity": fields.quantity,
            "price": fields.price,
            "transaction_date": fields.transaction_date,
            "account_holder_id": fields.account_holder_id,
            "limit_price_up": body.limit_price_up or None,
            "limit_up_expiration": body.limit_up_expiration or None,
            "limit_price_down": body.limit_price_down or None,
            "limit_down_expiration": body.limit_down_expiration or None,
            "limit_price_up_2": body.limit_price_up_2 or None,
            "limit_up_expiration_2": body.limit_up_expiration_2 or None,
            "linked_journal_id": body.linked_journal_id,
        }

        try:
            if current.is_buy:
                original, remaining = adjust_lot_for_quantity_edit(
                    current.original_quantity or current.quantity,
                    current.quantity_remaining or 0.0,
                    fields.quantity,
                )
                values["original_quantity"] = original
                values["quantity_remaining"] = remaining
            elif current.transaction_type == TransactionType.SELL.value and current.parent_buy_id:
                await self._resize_sell(db, current.parent_buy_id, current.quantity, fields)
            updated = await self._repo.update_transaction(db, tx_id, values)
            if updated is None:
                raise TransactionNotFoundError(tx_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return TransactionResponse.from_domain(updated)

    async def _resize_sell(
        self, db: AsyncSession, parent_id: int, old_quantity: float, fields: _CommonFields
    ) -> None:
        """Keep the parent lot consistent when a SELL's quantity or date is edited."""
        parent = await self._repo.get_transaction(db, parent_id)
        if parent is not None:
            sell_day = parse_trade_date(fields.transaction_date)
            buy_day = parse_trade_date(parent.transaction_date)
            if sell_day and buy_day and sell_day < buy_day:
                raise SellBeforeBuyError()
        delta = fields.quantity - old_quantity
        if delta > QTY_EPSILON:
            if await self._repo.decrement_lot(db, parent_id, delta) is None:
                available = parent.quantity_remaining if parent else 0.0
                raise InsufficientLotQuantityError(parent_id, delta, available or 0.0)
        elif delta < -QTY_EPSILON:
            await self._repo.restore_lot(db, parent_id, -delta)

    async def delete(self, db: AsyncSession, tx_id: int) -> None:
        current = await self._repo.get_transaction(db, tx_id)
        if current is None:
            raise TransactionNotFoundError(tx_id)
        try:
            if current.transaction_type == TransactionType.SELL.value:
                await self._ledger.reverse_sell(db, current)
            else:
                if current.is_buy and await self._repo.count_child_sells(db, tx_id) > 0:
                    raise LotHasSellsError()
                await self._repo.delete_transaction(db, tx_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Deleted %s transaction %d", current.transaction_type, tx_id)

    async def record_split(self, db: AsyncSession, body: SplitRequest) -> SplitResponse:
        """Rescale a holder's open lots of one ticker by split_to / split_from."""
        ticker = (body.ticker or "").strip().upper()
        split_day = parse_trade_date(body.split_date)
        if not ticker or split_day is None or not body.account_holder_id \
                or body.split_from is None or body.split_to is None:
            raise InvalidTransactionError("Missing required fields for stock split.")
        if body.split_from <= 0 or body.split_to <= 0:
            raise InvalidTransactionError("Invalid split ratio.")
        ratio = body.split_to / body.split_from

        try:
            lots = await self._repo.list_open_lots(db, body.account_holder_id, ticker)
            for lot in lots:
                await self._repo.rescale_lot(db, lot.id, ratio)
            marker = await self._repo.insert_transaction(
                db,
                NewTransaction(
                    ticker=ticker,
                    exchange="SPLIT",
                    transaction_type=TransactionType.SPLIT.value,
                    quantity=body.split_to,
                    price=body.split_from,
                    transaction_date=split_day.isoformat(),
                    account_holder_id=body.account_holder_id,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Applied %s split %s:%s to %d lots", ticker, body.split_to,
                    body.split_from, len(lots))
        return SplitResponse(
            ticker=ticker, ratio=ratio, lots_adjusted=len(lots), split_transaction_id=marker.id
        )
