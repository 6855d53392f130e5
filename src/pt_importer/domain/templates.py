"""Brokerage CSV templates.

A template names the row where the header sits, which rows are trades,
and how a row maps onto a ParsedTrade. Rows the transform cannot read
(footers, malformed numbers) are dropped by parse_csv.
"""

import csv
import io
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from src.pt_common.enums import TransactionType
from src.pt_importer.domain.models import ParsedTrade

logger = logging.getLogger(__name__)

Row = dict[str, str]

_CRYPTO_DESCRIPTIONS = {"BITCOIN", "ETHEREUM", "LITECOIN"}
_DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%y", "%Y-%m-%d", "%b-%d-%Y")


@dataclass(frozen=True)
class BrokerageTemplate:
    name: str
    data_start_row: int                  # 1-based line holding the header
    keep: Callable[[Row], bool]
    transform: Callable[[Row], ParsedTrade]


def parse_date(value: str) -> str:
    text = (value or "").strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


def parse_number(value: str | None) -> float:
    """'$1,234.50', '(12.00)' and '-3' all parse; parentheses mean negative."""
    text = (value or "").strip().replace("$", "").replace(",", "")
    negative = text.startswith("(") and text.endswith(")")
    number = float(text.strip("()"))
    return -number if negative else number


# ---------------------------------------------------------------------------
# Fidelity
# ---------------------------------------------------------------------------


def _fidelity_action(row: Row) -> str:
    return (row.get("Action") or "").replace("\r", " ").replace("\n", " ").lower()


def _fidelity_keep(row: Row) -> bool:
    action = _fidelity_action(row)
    return bool(
        (row.get("Run Date") or "").strip()
        and ("you bought" in action or "you sold" in action)
        and (row.get("Symbol") or "").strip()
        and (row.get("Description") or "").strip() not in _CRYPTO_DESCRIPTIONS
    )


def _fidelity_transform(row: Row) -> ParsedTrade:
    bought = "you bought" in _fidelity_action(row)
    return ParsedTrade(
        date=parse_date(row["Run Date"]),
        ticker=row["Symbol"].strip().upper(),
        type=TransactionType.BUY.value if bought else TransactionType.SELL.value,
        quantity=abs(parse_number(row.get("Quantity"))),
        price=parse_number(row.get("Price ($)")),
        exchange="Fidelity",
    )


# ---------------------------------------------------------------------------
# Robinhood
# ---------------------------------------------------------------------------


def _robinhood_keep(row: Row) -> bool:
    return (row.get("Trans Code") or "").strip() in ("Buy", "Sell")


def _robinhood_transform(row: Row) -> ParsedTrade:
    quantity = parse_number(row.get("Quantity"))
    amount = parse_number(row.get("Amount"))
    # Robinhood exports the total amount, not a per-share price
    price = abs(amount / quantity) if quantity and amount else 0.0
    return ParsedTrade(
        date=parse_date(row["Activity Date"]),
        ticker=row["Instrument"].strip().upper(),
        type=row["Trans Code"].strip().upper(),
        quantity=abs(quantity),
        price=price,
        exchange="Robinhood",
    )


# ---------------------------------------------------------------------------
# E-Trade
# ---------------------------------------------------------------------------


def _etrade_keep(row: Row) -> bool:
    return (row.get("TransactionType") or "").strip() in ("Bought", "Sold")


def _etrade_transform(row: Row) -> ParsedTrade:
    bought = row["TransactionType"].strip() == "Bought"
    return ParsedTrade(
        date=parse_date(row["TransactionDate"]),
        ticker=row["Symbol"].strip().upper(),
        type=TransactionType.BUY.value if bought else TransactionType.SELL.value,
        quantity=abs(parse_number(row.get("Quantity"))),
        price=parse_number(row.get("Price")),
        exchange="E-Trade",
    )


TEMPLATES: dict[str, BrokerageTemplate] = {
    "fidelity": BrokerageTemplate("Fidelity", 1, _fidelity_keep, _fidelity_transform),
    "robinhood": BrokerageTemplate("Robinhood", 1, _robinhood_keep, _robinhood_transform),
    "etrade": BrokerageTemplate("E-Trade", 4, _etrade_keep, _etrade_transform),
}


def parse_csv(content: str, template: BrokerageTemplate) -> list[ParsedTrade]:
    lines = content.splitlines()[template.data_start_row - 1:]
    reader = csv.DictReader(io.StringIO("\n".join(lines)))
    trades: list[ParsedTrade] = []
    for line_no, row in enumerate(reader, start=template.data_start_row + 1):
        if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
            continue
        if not template.keep(row):
            continue
        try:
            trades.append(template.transform(row))
        except (KeyError, ValueError, ZeroDivisionError) as exc:
            logger.warning("%s import: skipping line %d (%s)", template.name, line_no, exc)
    return trades
