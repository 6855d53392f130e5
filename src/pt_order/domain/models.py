"""Domain models for pt_order — buy-limit orders and the alerts they raise."""

from dataclasses import dataclass


@dataclass
class PendingOrder:
    id: int
    account_holder_id: int
    ticker: str
    exchange: str
    order_type: str
    limit_price: float
    quantity: float
    created_date: str
    status: str
    expiration_date: str | None = None
    notes: str | None = None
    advice_source_id: int | None = None
    created_at: str | None = None

    def is_triggered_by(self, price: float) -> bool:
        """A BUY_LIMIT fills once the market trades at or below the limit."""
        return price <= self.limit_price


@dataclass
class Notification:
    id: int
    account_holder_id: int
    message: str
    status: str
    pending_order_id: int | None = None
    created_at: str | None = None
