"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_account.domain.models import AccountHolder, Exchange


class AccountRepositoryProtocol(Protocol):
    async def list_holders(self, db: AsyncSession) -> list[AccountHolder]: ...

    async def get_holder(self, db: AsyncSession, holder_id: int) -> AccountHolder | None: ...

    async def create_holder(self, db: AsyncSession, name: str) -> AccountHolder: ...

    async def rename_holder(
        self, db: AsyncSession, holder_id: int, name: str
    ) -> AccountHolder | None: ...

    async def count_holder_transactions(self, db: AsyncSession, holder_id: int) -> int: ...

    async def delete_holder(self, db: AsyncSession, holder_id: int) -> bool: ...

    async def list_subscriptions(self, db: AsyncSession, holder_id: int) -> list[int]: ...

    async def replace_subscriptions(
        self, db: AsyncSession, holder_id: int, source_ids: list[int]
    ) -> None: ...

    async def list_exchanges(self, db: AsyncSession) -> list[Exchange]: ...

    async def get_exchange(self, db: AsyncSession, exchange_id: int) -> Exchange | None: ...

    async def create_exchange(self, db: AsyncSession, name: str) -> Exchange: ...

    async def rename_exchange(
        self, db: AsyncSession, exchange_id: int, old_name: str, new_name: str
    ) -> Exchange: ...

    async def count_exchange_transactions(self, db: AsyncSession, name: str) -> int: ...

    async def delete_exchange(self, db: AsyncSession, exchange_id: int) -> bool: ...
