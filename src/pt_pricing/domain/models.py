"""Domain models for pt_pricing — pure dataclasses."""

from dataclasses import dataclass

# Sentinel price values. Callers must check `is_numeric_price` before doing arithmetic.
PRICE_INVALID = "invalid"  # quote API answered but the price was zero/negative
PRICE_ERROR = "error"      # transport failure, unreadable body, or no API key

PriceValue = float | str | None  # None: the quote API returned a non-2xx status


def is_numeric_price(value: PriceValue) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class PriceCacheEntry:
    price: PriceValue
    timestamp: float  # epoch milliseconds when the value was fetched

    @property
    def is_numeric(self) -> bool:
        return is_numeric_price(self.price)


@dataclass(frozen=True)
class RateLimitConfig:
    """Reservoir-style limits for the outbound quote API."""
    calls_per_window: int = 25
    window_seconds: float = 60.0
    max_concurrent: int = 2
