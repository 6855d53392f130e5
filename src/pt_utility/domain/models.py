"""Domain models for pt_utility."""

from dataclasses import dataclass

ALL_ACCOUNTS_LABEL = "All Accounts"


@dataclass
class AccountSnapshot:
    """Manually recorded account value for one exchange on one date."""
    id: int | None
    account_holder_id: int | None
    exchange: str
    snapshot_date: str
    value: float
    notes: str | None = None
    created_at: str | None = None
