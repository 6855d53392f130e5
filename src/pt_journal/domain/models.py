"""Domain models for pt_journal — paper trades and their lifecycle.

Status machine:
  OPEN -> CLOSED | CANCELLED   (PUT)
  OPEN -> EXECUTED             (execute only; opens a real lot)
CLOSED, CANCELLED and EXECUTED are terminal.
"""

from dataclasses import dataclass

from src.pt_common.enums import JournalStatus
from src.pt_common.errors import InvalidJournalTransitionError

_UPDATE_TRANSITIONS: dict[str, frozenset[str]] = {
    JournalStatus.OPEN.value: frozenset({JournalStatus.CLOSED.value, JournalStatus.CANCELLED.value}),
}

DEFAULT_EXECUTION_EXCHANGE = "Fidelity"

# Substrings of an advice source name that identify the brokerage it trades on
_EXCHANGE_HINTS = (("robinhood", "Robinhood"), ("etrade", "E-Trade"), ("e-trade", "E-Trade"))


def check_status_change(current: str, target: str) -> None:
    """Raise unless a PUT may move an entry from current to target."""
    if current == target:
        return
    if target not in _UPDATE_TRANSITIONS.get(current, frozenset()):
        raise InvalidJournalTransitionError(current, target)


def guess_exchange(source_name: str | None) -> str:
    name = (source_name or "").lower()
    for hint, exchange in _EXCHANGE_HINTS:
        if hint in name:
            return exchange
    return DEFAULT_EXECUTION_EXCHANGE


@dataclass
class JournalEntry:
    id: int
    account_holder_id: int
    entry_date: str
    ticker: str
    exchange: str
    direction: str
    quantity: float
    entry_price: float
    status: str
    advice_source_id: int | None = None
    target_price: float | None = None
    target_price_2: float | None = None
    stop_loss_price: float | None = None
    advice_source_details: str | None = None
    entry_reason: str | None = None
    notes: str | None = None
    exit_date: str | None = None
    exit_price: float | None = None
    pnl: float | None = None
    execution_date: str | None = None
    execution_price: float | None = None
    linked_trade_id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
    advice_source_name: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status == JournalStatus.OPEN.value

    @property
    def is_executed(self) -> bool:
        return self.status == JournalStatus.EXECUTED.value
