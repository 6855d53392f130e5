"""Pydantic schemas for pt_order API."""

from pydantic import BaseModel

from src.pt_order.domain.models import Notification, PendingOrder


class PendingOrderCreateRequest(BaseModel):
    account_holder_id: int | None = None
    ticker: str | None = None
    exchange: str | None = None
    order_type: str | None = None
    limit_price: float | None = None
    quantity: float | None = None
    created_date: str | None = None
    expiration_date: str | None = None
    notes: str | None = None
    advice_source_id: int | None = None


class StatusUpdateRequest(BaseModel):
    status: str | None = None


class PendingOrderResponse(BaseModel):
    id: int
    account_holder_id: int
    ticker: str
    exchange: str
    order_type: str
    limit_price: float
    quantity: float
    created_date: str
    expiration_date: str | None = None
    status: str
    notes: str | None = None
    advice_source_id: int | None = None
    created_at: str | None = None

    @classmethod
    def from_domain(cls, order: PendingOrder) -> "PendingOrderResponse":
        return cls(**order.__dict__)


class NotificationResponse(BaseModel):
    id: int
    account_holder_id: int
    pending_order_id: int | None = None
    message: str
    status: str
    created_at: str | None = None

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationResponse":
        return cls(**notification.__dict__)
