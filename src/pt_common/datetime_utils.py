"""Date utilities. Trade dates are stored as 'YYYY-MM-DD' strings."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def market_today(tz_name: str = "America/New_York") -> str:
    """Today's date in the market timezone as 'YYYY-MM-DD'."""
    return datetime.now(ZoneInfo(tz_name)).date().isoformat()


def parse_trade_date(value: str | None) -> date | None:
    """Parse 'YYYY-MM-DD' (a trailing time part is ignored). None when invalid."""
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def previous_day(value: str) -> str:
    parsed = parse_trade_date(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value}")
    return (parsed - timedelta(days=1)).isoformat()
