"""Pydantic schemas for pt_account API."""

from pydantic import BaseModel, Field

from src.pt_account.domain.models import AccountHolder, Exchange


class NameRequest(BaseModel):
    name: str = Field("", description="Display name; surrounding whitespace is stripped")


class SubscriptionsRequest(BaseModel):
    sourceIds: list[int] = Field(default_factory=list)


class HolderResponse(BaseModel):
    id: int
    name: str
    created_at: str | None = None

    @classmethod
    def from_domain(cls, holder: AccountHolder) -> "HolderResponse":
        return cls(id=holder.id, name=holder.name, created_at=holder.created_at)


class ExchangeResponse(BaseModel):
    id: int
    name: str

    @classmethod
    def from_domain(cls, exchange: Exchange) -> "ExchangeResponse":
        return cls(id=exchange.id, name=exchange.name)


class SubscriptionsResponse(BaseModel):
    holder_id: int
    source_ids: list[int]
