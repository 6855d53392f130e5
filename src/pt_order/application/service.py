"""OrderApplicationService — pending buy-limit orders and notification inbox."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.datetime_utils import parse_trade_date
from src.pt_common.enums import NotificationStatus, PendingOrderStatus, PendingOrderType
from src.pt_common.errors import (
    InvalidOrderError,
    NotificationNotFoundError,
    PendingOrderNotFoundError,
)
from src.pt_order.application.schemas import (
    NotificationResponse,
    PendingOrderCreateRequest,
    PendingOrderResponse,
)
from src.pt_order.domain.repository import (
    NotificationRepositoryProtocol,
    PendingOrderRepositoryProtocol,
)
from src.pt_order.infrastructure.persistence import (
    NotificationRepository,
    PendingOrderRepository,
)

logger = logging.getLogger(__name__)

_ORDER_STATUSES = {s.value for s in PendingOrderStatus}
_NOTIFICATION_STATUSES = {s.value for s in NotificationStatus}
_ORDER_TYPES = {t.value for t in PendingOrderType}


class OrderApplicationService:
    def __init__(
        self,
        orders: PendingOrderRepositoryProtocol | None = None,
        notifications: NotificationRepositoryProtocol | None = None,
    ) -> None:
        self._orders: PendingOrderRepositoryProtocol = orders or PendingOrderRepository()
        self._notifications: NotificationRepositoryProtocol = (
            notifications or NotificationRepository()
        )

    # -- pending orders -------------------------------------------------

    async def list_pending(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[PendingOrderResponse]:
        orders = await self._orders.list_active(db, holder_id)
        return [PendingOrderResponse.from_domain(o) for o in orders]

    async def create_pending(
        self, db: AsyncSession, body: PendingOrderCreateRequest
    ) -> PendingOrderResponse:
        ticker = (body.ticker or "").strip().upper()
        exchange = (body.exchange or "").strip()
        order_type = (body.order_type or PendingOrderType.BUY_LIMIT.value).upper()
        created = parse_trade_date(body.created_date)
        if (
            not body.account_holder_id
            or not ticker
            or not exchange
            or not body.limit_price
            or body.limit_price <= 0
            or not body.quantity
            or body.quantity <= 0
            or created is None
        ):
            raise InvalidOrderError("Invalid input. Ensure all required fields are provided.")
        if order_type not in _ORDER_TYPES:
            raise InvalidOrderError(f"Unsupported order type: {order_type}")

        values = body.model_dump()
        values.update(
            ticker=ticker,
            exchange=exchange,
            order_type=order_type,
            created_date=created.isoformat(),
            expiration_date=body.expiration_date or None,
            notes=body.notes or None,
        )
        try:
            order = await self._orders.insert(db, values)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Created %s order %d for %s @ %s", order_type, order.id, ticker,
                    body.limit_price)
        return PendingOrderResponse.from_domain(order)

    async def set_pending_status(
        self, db: AsyncSession, order_id: int, status: str | None
    ) -> PendingOrderResponse:
        if status not in _ORDER_STATUSES:
            raise InvalidOrderError("Invalid status provided.")
        try:
            order = await self._orders.set_status(db, order_id, status)  # type: ignore[arg-type]
            if order is None:
                raise PendingOrderNotFoundError(order_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PendingOrderResponse.from_domain(order)

    # -- notifications --------------------------------------------------

    async def list_notifications(
        self, db: AsyncSession, holder_id: int | None
    ) -> list[NotificationResponse]:
        rows = await self._notifications.list_unread(db, holder_id)
        return [NotificationResponse.from_domain(n) for n in rows]

    async def set_notification_status(
        self, db: AsyncSession, notification_id: int, status: str | None
    ) -> NotificationResponse:
        if status not in _NOTIFICATION_STATUSES:
            raise InvalidOrderError("Invalid status provided.")
        try:
            row = await self._notifications.set_status(
                db, notification_id, status  # type: ignore[arg-type]
            )
            if row is None:
                raise NotificationNotFoundError(notification_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return NotificationResponse.from_domain(row)
