"""Reconciling parsed CSV rows against the ledger."""

from collections.abc import Iterable

from src.pt_common.datetime_utils import parse_trade_date
from src.pt_common.enums import ImportRowStatus
from src.pt_importer.domain.models import ParsedTrade
from src.pt_ledger.domain.models import Transaction

PRICE_TOLERANCE = 0.02      # dollars
QTY_TOLERANCE = 0.0001      # shares


def combine_fills(trades: Iterable[ParsedTrade]) -> list[ParsedTrade]:
    """Merge partial fills: same date, ticker, side and price become one row."""
    combined: dict[tuple[str, str, str, str], ParsedTrade] = {}
    for trade in trades:
        key = (trade.date, trade.ticker, trade.type, f"{trade.price:.5f}")
        if key in combined:
            combined[key].quantity += trade.quantity
        else:
            combined[key] = ParsedTrade(**trade.__dict__)
    return list(combined.values())


def is_same_trade(trade: ParsedTrade, tx: Transaction) -> bool:
    trade_day = parse_trade_date(trade.date)
    if trade_day is None or trade_day != parse_trade_date(tx.transaction_date):
        return False
    return (
        trade.ticker == tx.ticker
        and trade.type == tx.transaction_type
        and abs(trade.quantity - tx.quantity) < QTY_TOLERANCE
        and abs(trade.price - tx.price) <= PRICE_TOLERANCE + 1e-9
    )


def classify(
    trade: ParsedTrade, existing: Iterable[Transaction]
) -> tuple[str, Transaction | None]:
    for tx in existing:
        if is_same_trade(trade, tx):
            return ImportRowStatus.POTENTIAL_DUPLICATE.value, tx
    return ImportRowStatus.NEW.value, None
