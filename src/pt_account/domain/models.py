"""Domain models for pt_account — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass

PRIMARY_HOLDER_ID = 1  # seeded by migration 001, never deletable


@dataclass
class AccountHolder:
    id: int
    name: str
    created_at: str | None = None

    @property
    def is_primary(self) -> bool:
        return self.id == PRIMARY_HOLDER_ID


@dataclass
class Exchange:
    id: int
    name: str
    created_at: str | None = None
