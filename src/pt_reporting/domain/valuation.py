"""Portfolio valuation over open lots.

A lot whose live price is a sentinel ('invalid', 'error', None) is valued
at its cost basis, so a flaky quote never turns into a fake loss.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from src.pt_ledger.domain.lots import weighted_average_cost
from src.pt_pricing.domain.models import PriceCacheEntry


@dataclass(frozen=True)
class OpenLot:
    ticker: str
    cost_basis: float          # per-share purchase price
    quantity_remaining: float


@dataclass
class TickerPosition:
    ticker: str
    total_quantity: float
    weighted_avg_cost: float | None
    previous_close: float | None = None


def lot_value(lot: OpenLot, prices: Mapping[str, PriceCacheEntry]) -> float:
    entry = prices.get(lot.ticker)
    price = entry.price if entry is not None and entry.is_numeric else lot.cost_basis
    return float(price) * lot.quantity_remaining  # type: ignore[arg-type]


def portfolio_value(lots: Iterable[OpenLot], prices: Mapping[str, PriceCacheEntry]) -> float:
    return sum(lot_value(lot, prices) for lot in lots)


def summarize_positions(lots: Iterable[OpenLot]) -> list[TickerPosition]:
    """One row per ticker, sorted by ticker."""
    grouped: dict[str, list[OpenLot]] = {}
    for lot in lots:
        grouped.setdefault(lot.ticker, []).append(lot)
    return [
        TickerPosition(
            ticker=ticker,
            total_quantity=sum(lot.quantity_remaining for lot in group),
            weighted_avg_cost=weighted_average_cost(
                (lot.cost_basis, lot.quantity_remaining) for lot in group
            ),
        )
        for ticker, group in sorted(grouped.items())
    ]
