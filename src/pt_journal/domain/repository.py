"""Repository Protocol for journal entries."""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_journal.domain.models import JournalEntry


class JournalRepositoryProtocol(Protocol):
    async def list_entries(
        self, db: AsyncSession, holder_id: int, status: str | None
    ) -> list[JournalEntry]: ...

    async def get(self, db: AsyncSession, entry_id: int) -> JournalEntry | None: ...

    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> JournalEntry: ...

    async def update(
        self, db: AsyncSession, entry_id: int, values: dict[str, Any]
    ) -> JournalEntry | None: ...

    async def mark_executed(
        self,
        db: AsyncSession,
        entry_id: int,
        execution_date: str,
        execution_price: float,
        trade_id: int,
    ) -> JournalEntry | None: ...

    async def delete(self, db: AsyncSession, entry_id: int) -> None: ...
