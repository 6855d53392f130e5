"""Repositories for pending_orders and notifications.

Transaction ownership: the CALLER commits or rolls back.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.pt_common.errors import InvalidOrderError
from src.pt_order.domain.models import Notification, PendingOrder

# ---------------------------------------------------------------------------
# SQL: pending orders
# ---------------------------------------------------------------------------

_ORDER_COLUMNS = """
    id, account_holder_id, ticker, exchange, order_type, limit_price, quantity,
    created_date, expiration_date, status, notes, advice_source_id, created_at
"""

_LIST_ACTIVE_ORDERS_SQL = text(f"""
    SELECT {_ORDER_COLUMNS} FROM pending_orders
    WHERE status = 'ACTIVE'
      AND (:holder_id IS NULL OR account_holder_id = :holder_id)
    ORDER BY created_date DESC, id DESC
""")

_LIST_ACTIVE_BUY_LIMITS_SQL = text(f"""
    SELECT {_ORDER_COLUMNS} FROM pending_orders
    WHERE status = 'ACTIVE' AND order_type = 'BUY_LIMIT'
    ORDER BY id
""")

_INSERT_ORDER_SQL = text(f"""
    INSERT INTO pending_orders (
        account_holder_id, ticker, exchange, order_type, limit_price, quantity,
        created_date, expiration_date, notes, advice_source_id
    ) VALUES (
        :account_holder_id, :ticker, :exchange, :order_type, :limit_price, :quantity,
        :created_date, :expiration_date, :notes, :advice_source_id
    )
    RETURNING {_ORDER_COLUMNS}
""")

_SET_ORDER_STATUS_SQL = text(f"""
    UPDATE pending_orders SET status = :status WHERE id = :id
    RETURNING {_ORDER_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: notifications
# ---------------------------------------------------------------------------

_NOTIFICATION_COLUMNS = "id, account_holder_id, pending_order_id, message, status, created_at"

_LIST_UNREAD_SQL = text(f"""
    SELECT {_NOTIFICATION_COLUMNS} FROM notifications
    WHERE status = 'UNREAD'
      AND (:holder_id IS NULL OR account_holder_id = :holder_id)
    ORDER BY created_at DESC, id DESC
""")

_INSERT_NOTIFICATION_SQL = text(f"""
    INSERT INTO notifications (account_holder_id, pending_order_id, message, status)
    VALUES (:holder_id, :pending_order_id, :message, 'UNREAD')
    RETURNING {_NOTIFICATION_COLUMNS}
""")

_SET_NOTIFICATION_STATUS_SQL = text(f"""
    UPDATE notifications SET status = :status WHERE id = :id
    RETURNING {_NOTIFICATION_COLUMNS}
""")

_HAS_UNREAD_FOR_ORDER_SQL = text("""
    SELECT 1 FROM notifications
    WHERE pending_order_id = :order_id AND status = 'UNREAD'
    LIMIT 1
""")


def _row_to_order(row: object) -> PendingOrder:
    m = row._mapping  # type: ignore[attr-defined]
    return PendingOrder(**dict(m))


def _row_to_notification(row: object) -> Notification:
    m = row._mapping  # type: ignore[attr-defined]
    return Notification(**dict(m))


class PendingOrderRepository:
    async def list_active(self, db: AsyncSession, holder_id: int | None) -> list[PendingOrder]:
        result = await db.execute(_LIST_ACTIVE_ORDERS_SQL, {"holder_id": holder_id})
        return [_row_to_order(r) for r in result.fetchall()]

    async def list_active_buy_limits(self, db: AsyncSession) -> list[PendingOrder]:
        result = await db.execute(_LIST_ACTIVE_BUY_LIMITS_SQL)
        return [_row_to_order(r) for r in result.fetchall()]

    async def insert(self, db: AsyncSession, values: dict[str, Any]) -> PendingOrder:
        try:
            row = (await db.execute(_INSERT_ORDER_SQL, values)).fetchone()
        except IntegrityError:
            raise InvalidOrderError(
                "The account holder or advice source referenced does not exist."
            ) from None
        return _row_to_order(row)

    async def set_status(
        self, db: AsyncSession, order_id: int, status: str
    ) -> PendingOrder | None:
        row = (await db.execute(_SET_ORDER_STATUS_SQL, {"id": order_id, "status": status})).fetchone()
        return _row_to_order(row) if row is not None else None


class NotificationRepository:
    async def list_unread(self, db: AsyncSession, holder_id: int | None) -> list[Notification]:
        result = await db.execute(_LIST_UNREAD_SQL, {"holder_id": holder_id})
        return [_row_to_notification(r) for r in result.fetchall()]

    async def insert(
        self,
        db: AsyncSession,
        holder_id: int,
        message: str,
        pending_order_id: int | None = None,
    ) -> Notification:
        row = (
            await db.execute(
                _INSERT_NOTIFICATION_SQL,
                {"holder_id": holder_id, "pending_order_id": pending_order_id, "message": message},
            )
        ).fetchone()
        return _row_to_notification(row)

    async def set_status(
        self, db: AsyncSession, notification_id: int, status: str
    ) -> Notification | None:
        row = (
            await db.execute(
                _SET_NOTIFICATION_STATUS_SQL, {"id": notification_id, "status": status}
            )
        ).fetchone()
        return _row_to_notification(row) if row is not None else None

    async def has_unread_for_order(self, db: AsyncSession, order_id: int) -> bool:
        row = (await db.execute(_HAS_UNREAD_FOR_ORDER_SQL, {"order_id": order_id})).fetchone()
        return row is not None
