"""Repository Protocols for pending orders and notifications."""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_order.domain.models import Notification, PendingOrder


class PendingOrderRepositoryProtocol(Protocol):
    async def list_active(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[PendingOrder]: ...

    async def list_active_buy_limits(self, db: AsyncSession) -> list[PendingOrder]: ...

    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> PendingOrder: ...

    async def set_status(
        self, db: AsyncSession, order_id: int, status: str
    ) -> PendingOrder | None: ...


class NotificationRepositoryProtocol(Protocol):
    async def list_unread(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[Notification]: ...

    async def insert(
        self,
        db: AsyncSession,
        holder_id: int,
        message: str,
        pending_order_id: int | None = None,
    ) -> Notification: ...

    async def set_status(
        self, db: AsyncSession, notification_id: int, status: str
    ) -> Notification | None: ...

    async def has_unread_for_order(self, db: AsyncSession, order_id: int) -> bool: ...
