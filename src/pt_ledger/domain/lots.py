"""Lot arithmetic: sell validation, allocation, realized P/L, cost basis.

Quantities are floats (fractional shares), so every comparison allows a
QTY_EPSILON slack.
"""

from collections.abc import Iterable

from src.pt_common.datetime_utils import parse_trade_date
from src.pt_common.errors import (
    InsufficientLotQuantityError,
    InvalidTransactionError,
    LotTotalMismatchError,
    SellBeforeBuyError,
)
from src.pt_ledger.domain.models import LotAllocation, Transaction

QTY_EPSILON = 0.00001


def realized_pl(sell_price: float, buy_price: float, quantity: float) -> float:
    """(sell_price - buy_price) * quantity."""
    return (sell_price - buy_price) * quantity


def weighted_average_cost(lots: Iterable[tuple[float, float]]) -> float | None:
    """Σ(price·qty) / Σqty over (price, quantity_remaining) pairs; None when flat."""
    total_cost = 0.0
    total_qty = 0.0
    for price, qty in lots:
        total_cost += price * qty
        total_qty += qty
    if total_qty <= QTY_EPSILON:
        return None
    return total_cost / total_qty


def check_sell_against_lot(lot: Transaction, quantity: float, sell_date: str) -> None:
    """Raise unless `quantity` can be sold out of `lot` on `sell_date`."""
    sell_day = parse_trade_date(sell_date)
    buy_day = parse_trade_date(lot.transaction_date)
    if sell_day is not None and buy_day is not None and sell_day < buy_day:
        raise SellBeforeBuyError()
    remaining = lot.quantity_remaining or 0.0
    if remaining < quantity - QTY_EPSILON:
        raise InsufficientLotQuantityError(lot.id, quantity, remaining)


def normalize_allocations(
    selections: Iterable[tuple[int, float | None]], declared_total: float
) -> list[LotAllocation]:
    """Drop empty selections and check they add up to the declared total.

    Selections whose quantity is missing or <= 0 are ignored (the UI sends
    every open lot, most of them untouched).
    """
    allocations = [
        LotAllocation(parent_buy_id=lot_id, quantity=float(qty))
        for lot_id, qty in selections
        if qty is not None and qty > 0
    ]
    summed = sum(a.quantity for a in allocations)
    if abs(summed - declared_total) > QTY_EPSILON:
        raise LotTotalMismatchError()
    if summed <= 0:
        raise InvalidTransactionError("Total sell quantity must be greater than zero.")
    return allocations


def fifo_allocate(
    open_lots: Iterable[Transaction], quantity: float
) -> tuple[list[LotAllocation], float]:
    """Consume lots oldest first; returns (allocations, unfilled quantity)."""
    allocations: list[LotAllocation] = []
    left = quantity
    for lot in open_lots:
        if left <= QTY_EPSILON:
            break
        available = lot.quantity_remaining or 0.0
        if available <= QTY_EPSILON:
            continue
        take = min(available, left)
        allocations.append(LotAllocation(parent_buy_id=lot.id, quantity=take))
        left -= take
    return allocations, (left if left > QTY_EPSILON else 0.0)


def adjust_lot_for_quantity_edit(
    original_quantity: float, quantity_remaining: float, new_quantity: float
) -> tuple[float, float]:
    """New (original_quantity, quantity_remaining) after a BUY's quantity is edited.

    The sold part of the lot is fixed, so the remaining quantity moves by the
    same delta as the lot size. A lot cannot shrink below what was sold.
    """
    remaining = quantity_remaining + (new_quantity - original_quantity)
    if remaining < -QTY_EPSILON:
        raise InvalidTransactionError(
            "Quantity cannot be reduced below the amount already sold from this lot."
        )
    return new_quantity, max(remaining, 0.0)
