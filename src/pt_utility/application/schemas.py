"""Pydantic schemas for pt_utility API."""

from typing import Any

from pydantic import BaseModel

from src.pt_utility.domain.models import AccountSnapshot


class BatchPriceRequest(BaseModel):
    tickers: list[str] | None = None
    date: str | None = None


class SnapshotRequest(BaseModel):
    account_holder_id: int | None = None
    exchange: str | None = None
    snapshot_date: str | None = None
    value: float | None = None
    notes: str | None = None


class SnapshotResponse(BaseModel):
    id: int | None = None
    account_holder_id: int | None = None
    exchange: str
    snapshot_date: str
    value: float
    notes: str | None = None
    created_at: str | None = None

    @classmethod
    def from_domain(cls, snapshot: AccountSnapshot) -> "SnapshotResponse":
        return cls(**snapshot.__dict__)


# {TICKER: price | "invalid" | "error" | None}
BatchPriceResponse = dict[str, Any]
