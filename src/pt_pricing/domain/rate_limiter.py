"""Priority-aware reservoir limiter for outbound quote requests.

A reservoir of `calls_per_window` tokens is refilled `window_seconds` after
the first token of a window is spent. At most `max_concurrent` holders run
at once. Waiters are served by ascending priority (1 first), FIFO within
the same priority.
"""

import asyncio
import heapq
import itertools
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from src.pt_pricing.domain.models import RateLimitConfig


class PriorityRateLimiter:
    def __init__(self, config: RateLimitConfig | None = None) -> None:
        self.config = config or RateLimitConfig()
        if self.config.calls_per_window < 1 or self.config.max_concurrent < 1:
            raise ValueError("calls_per_window and max_concurrent must be >= 1")
        self._reservoir = self.config.calls_per_window
        self._running = 0
        self._waiters: list[tuple[int, int, asyncio.Future[None]]] = []
        self._seq = itertools.count()
        self._refill_handle: asyncio.TimerHandle | None = None

    @property
    def reservoir(self) -> int:
        return self._reservoir

    @property
    def running(self) -> int:
        return self._running

    @property
    def queued(self) -> int:
        return sum(1 for _, _, fut in self._waiters if not fut.done())

    async def acquire(self, priority: int = 5) -> None:
        """Wait for a token and a concurrency slot."""
        if not self.queued and self._can_run():
            self._take()
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._waiters, (priority, next(self._seq), fut))
        try:
            await fut
        except asyncio.CancelledError:
            # Granted and cancelled in the same tick: give the slot back
            if fut.done() and not fut.cancelled():
                self.release()
            raise

    def release(self) -> None:
        if self._running > 0:
            self._running -= 1
        self._dispatch()

    @asynccontextmanager
    async def slot(self, priority: int = 5) -> AsyncIterator[None]:
        await self.acquire(priority)
        try:
            yield
        finally:
            self.release()

    def close(self) -> None:
        if self._refill_handle is not None:
            self._refill_handle.cancel()
            self._refill_handle = None
        for _, _, fut in self._waiters:
            if not fut.done():
                fut.cancel()
        self._waiters.clear()

    # ------------------------------------------------------------------

    def _can_run(self) -> bool:
        return self._reservoir > 0 and self._running < self.config.max_concurrent

    def _take(self) -> None:
        self._reservoir -= 1
        self._running += 1
        if self._refill_handle is None:
            self._refill_handle = asyncio.get_running_loop().call_later(
                self.config.window_seconds, self._refill
            )

    def _refill(self) -> None:
        self._refill_handle = None
        self._reservoir = self.config.calls_per_window
        self._dispatch()

    def _dispatch(self) -> None:
        while self._waiters and self._can_run():
            _, _, fut = heapq.heappop(self._waiters)
            if fut.done():
                continue
            self._take()
            fut.set_result(None)
