"""AccountApplicationService — account holders, exchanges, source subscriptions.

Mutations commit on success and roll back on any error; reads run without
an explicit transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_account.application.schemas import (
    ExchangeResponse,
    HolderResponse,
    SubscriptionsResponse,
)
from src.pt_account.domain.repository import AccountRepositoryProtocol
from src.pt_account.infrastructure.persistence import AccountRepository
from src.pt_common.errors import (
    ExchangeInUseError,
    ExchangeNotFoundError,
    HolderInUseError,
    HolderNotFoundError,
    InvalidAccountInputError,
    ProtectedHolderError,
)

logger = logging.getLogger(__name__)


def _clean_name(name: str | None, what: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidAccountInputError(f"{what} name cannot be empty.")
    return cleaned


class AccountApplicationService:
    def __init__(self, repo: AccountRepositoryProtocol | None = None) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()

    # -- holders --------------------------------------------------------

    async def list_holders(self, db: AsyncSession) -> list[HolderResponse]:
        return [HolderResponse.from_domain(h) for h in await self._repo.list_holders(db)]

    async def create_holder(self, db: AsyncSession, name: str | None) -> HolderResponse:
        cleaned = _clean_name(name, "Account holder")
        try:
            holder = await self._repo.create_holder(db, cleaned)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Created account holder %d (%s)", holder.id, holder.name)
        return HolderResponse.from_domain(holder)

    async def rename_holder(
        self, db: AsyncSession, holder_id: int, name: str | None
    ) -> HolderResponse:
        cleaned = _clean_name(name, "Account holder")
        try:
            holder = await self._repo.rename_holder(db, holder_id, cleaned)
            if holder is None:
                raise HolderNotFoundError(holder_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return HolderResponse.from_domain(holder)

    async def delete_holder(self, db: AsyncSession, holder_id: int) -> None:
        holder = await self._repo.get_holder(db, holder_id)
        if holder is None:
            raise HolderNotFoundError(holder_id)
        if holder.is_primary:
            raise ProtectedHolderError()
        if await self._repo.count_holder_transactions(db, holder_id) > 0:
            raise HolderInUseError()
        try:
            await self._repo.delete_holder(db, holder_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Deleted account holder %d", holder_id)

    async def get_subscriptions(self, db: AsyncSession, holder_id: int) -> SubscriptionsResponse:
        if await self._repo.get_holder(db, holder_id) is None:
            raise HolderNotFoundError(holder_id)
        ids = await self._repo.list_subscriptions(db, holder_id)
        return SubscriptionsResponse(holder_id=holder_id, source_ids=ids)

    async def set_subscriptions(
        self, db: AsyncSession, holder_id: int, source_ids: list[int]
    ) -> SubscriptionsResponse:
        if await self._repo.get_holder(db, holder_id) is None:
            raise HolderNotFoundError(holder_id)
        try:
            await self._repo.replace_subscriptions(db, holder_id, source_ids)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return SubscriptionsResponse(holder_id=holder_id, source_ids=list(dict.fromkeys(source_ids)))

    # -- exchanges ------------------------------------------------------

    async def list_exchanges(self, db: AsyncSession) -> list[ExchangeResponse]:
        return [ExchangeResponse.from_domain(e) for e in await self._repo.list_exchanges(db)]

    async def create_exchange(self, db: AsyncSession, name: str | None) -> ExchangeResponse:
        cleaned = _clean_name(name, "Exchange")
        try:
            exchange = await self._repo.create_exchange(db, cleaned)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ExchangeResponse.from_domain(exchange)

    async def rename_exchange(
        self, db: AsyncSession, exchange_id: int, name: str | None
    ) -> ExchangeResponse:
        """Rename an exchange; transactions recorded under the old name follow."""
        cleaned = _clean_name(name, "Exchange")
        current = await self._repo.get_exchange(db, exchange_id)
        if current is None:
            raise ExchangeNotFoundError(exchange_id)
        try:
            exchange = await self._repo.rename_exchange(db, exchange_id, current.name, cleaned)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ExchangeResponse.from_domain(exchange)

    async def delete_exchange(self, db: AsyncSession, exchange_id: int) -> None:
        current = await self._repo.get_exchange(db, exchange_id)
        if current is None:
            raise ExchangeNotFoundError(exchange_id)
        if await self._repo.count_exchange_transactions(db, current.name) > 0:
            raise ExchangeInUseError(current.name)
        try:
            await self._repo.delete_exchange(db, exchange_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
