"""PriceService — TTL cache + rate-limited batch quotes.

get_prices() resolves cache hits immediately, shares in-flight requests
between concurrent callers asking for the same ticker, and sends the rest
through the PriorityRateLimiter. Every outcome, sentinels included, is
cached for the TTL so a failing ticker is not retried on every call.

Priorities used across the app:
  1  batch price endpoint (user waiting on the dashboard)
  3  daily performance report
  7  order watcher cron
  8  EOD capture cron
"""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from typing import Protocol

from config.settings import settings
from src.pt_pricing.domain.models import PriceCacheEntry, PriceValue, RateLimitConfig
from src.pt_pricing.domain.rate_limiter import PriorityRateLimiter
from src.pt_pricing.infrastructure.finnhub_client import FinnhubQuoteClient

logger = logging.getLogger(__name__)

PRIORITY_BATCH_ENDPOINT = 1
PRIORITY_DAILY_PERFORMANCE = 3
PRIORITY_ORDER_WATCHER = 7
PRIORITY_EOD_CAPTURE = 8


class QuoteClient(Protocol):
    async def fetch_quote(self, ticker: str) -> PriceValue: ...


class PriceService:
    def __init__(
        self,
        client: QuoteClient,
        limiter: PriorityRateLimiter | None = None,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._limiter = limiter or PriorityRateLimiter()
        self._ttl_ms = ttl_seconds * 1000
        self._clock = clock
        self._cache: dict[str, PriceCacheEntry] = {}
        self._in_flight: dict[str, asyncio.Task[PriceCacheEntry]] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def cached(self, ticker: str) -> PriceCacheEntry | None:
        entry = self._cache.get(ticker.upper())
        if entry is None or self._now_ms() - entry.timestamp >= self._ttl_ms:
            return None
        return entry

    def clear_cache(self) -> None:
        self._cache.clear()

    async def get_prices(
        self, tickers: Iterable[str], priority: int = 5
    ) -> dict[str, PriceCacheEntry]:
        """Return {TICKER: PriceCacheEntry} for every distinct requested ticker."""
        unique = list(dict.fromkeys(t.strip().upper() for t in tickers if t and t.strip()))
        results: dict[str, PriceCacheEntry] = {}
        waiting: dict[str, asyncio.Task[PriceCacheEntry]] = {}

        for ticker in unique:
            entry = self.cached(ticker)
            if entry is not None:
                results[ticker] = entry
                continue
            task = self._in_flight.get(ticker)
            if task is None:
                task = asyncio.create_task(self._fetch_and_cache(ticker, priority))
                self._in_flight[ticker] = task
                task.add_done_callback(self._forget(ticker))
            waiting[ticker] = task

        if waiting:
            # shield: one caller giving up must not cancel a fetch others share
            fetched = await asyncio.gather(*(asyncio.shield(t) for t in waiting.values()))
            results.update(zip(waiting.keys(), fetched))
        return results

    def _forget(self, ticker: str) -> Callable[[asyncio.Task[PriceCacheEntry]], None]:
        def _done(task: asyncio.Task[PriceCacheEntry]) -> None:
            if self._in_flight.get(ticker) is task:
                del self._in_flight[ticker]

        return _done

    async def _fetch_and_cache(self, ticker: str, priority: int) -> PriceCacheEntry:
        async with self._limiter.slot(priority):
            price = await self._client.fetch_quote(ticker)
        entry = PriceCacheEntry(price=price, timestamp=self._now_ms())
        self._cache[ticker] = entry
        logger.debug("Fetched %s -> %r (priority %d)", ticker, price, priority)
        return entry

    async def aclose(self) -> None:
        self._limiter.close()
        closer = getattr(self._client, "aclose", None)
        if closer is not None:
            await closer()


_price_service: PriceService | None = None


def get_price_service() -> PriceService:
    """Get or create the process-wide PriceService (FastAPI dependency)."""
    global _price_service  # noqa: PLW0603
    if _price_service is None:
        _price_service = PriceService(
            client=FinnhubQuoteClient(
                api_key=settings.FINNHUB_API_KEY,
                base_url=settings.FINNHUB_BASE_URL,
                timeout=settings.PRICE_HTTP_TIMEOUT_SECONDS,
            ),
            limiter=PriorityRateLimiter(
                RateLimitConfig(
                    calls_per_window=settings.API_CALLS_PER_MINUTE,
                    window_seconds=60.0,
                    max_concurrent=settings.PRICE_MAX_CONCURRENT,
                )
            ),
            ttl_seconds=settings.PRICE_CACHE_TTL_SECONDS,
        )
    return _price_service


async def close_price_service() -> None:
    global _price_service  # noqa: PLW0603
    if _price_service is not None:
        await _price_service.aclose()
        _price_service = None
