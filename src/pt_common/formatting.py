"""Display formatting for money and share quantities.

Money is rendered in accounting style: negatives in parentheses, rounded
half away from zero to the cent. Invalid input (None, NaN, non-numeric
strings) renders as an empty string rather than raising.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_CENT = Decimal("0.01")
_QUANTITY_STEP = Decimal("0.00001")


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    # str() first so 0.005 stays 0.005 instead of its binary expansion
    try:
        return Decimal(str(value)) if isinstance(value, (str, Decimal)) else Decimal(repr(number))
    except InvalidOperation:
        return None


def format_accounting(value: Any, is_currency: bool = True) -> str:
    """Format a number as '$1,234.56' or '($1,234.56)'.

    >>> format_accounting(0)
    '$0.00'
    >>> format_accounting(-0.005)
    '($0.01)'
    """
    number = _to_decimal(value)
    if number is None:
        return ""
    rounded = abs(number).quantize(_CENT, rounding=ROUND_HALF_UP)
    # a value that rounds to zero is shown without parentheses
    negative = number < 0 and rounded != 0
    body = f"{'$' if is_currency else ''}{rounded:,.2f}"
    return f"({body})" if negative else body


def format_quantity(value: Any) -> str:
    """Format a share quantity with grouping and up to 5 decimals: 1234.5 -> '1,234.5'."""
    number = _to_decimal(value)
    if number is None:
        return ""
    rounded = number.quantize(_QUANTITY_STEP, rounding=ROUND_HALF_UP)
    if rounded == rounded.to_integral_value():
        return f"{rounded.to_integral_value():,f}"
    return f"{rounded.normalize():,f}"
