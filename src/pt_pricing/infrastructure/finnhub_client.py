"""Finnhub /quote client.

Never raises for quote failures: the outcome is folded into a PriceValue
(float, PRICE_INVALID, PRICE_ERROR or None) so one bad ticker cannot fail
a whole batch.
"""

import logging

import httpx

from src.pt_pricing.domain.models import PRICE_ERROR, PRICE_INVALID, PriceValue

logger = logging.getLogger(__name__)


class FinnhubQuoteClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://finnhub.io/api/v1",
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def fetch_quote(self, ticker: str) -> PriceValue:
        if not self._api_key:
            logger.warning("FINNHUB_API_KEY is not set; cannot price %s", ticker)
            return PRICE_ERROR

        try:
            resp = await self._http.get(
                f"{self._base_url}/quote",
                params={"symbol": ticker, "token": self._api_key},
            )
        except httpx.HTTPError as exc:
            logger.warning("Quote request for %s failed: %s", ticker, exc)
            return PRICE_ERROR

        if not resp.is_success:
            logger.warning("Quote API returned %d for %s", resp.status_code, ticker)
            return None

        try:
            current = float(resp.json().get("c") or 0)
        except (ValueError, TypeError, AttributeError):
            logger.warning("Unreadable quote payload for %s", ticker)
            return PRICE_ERROR

        return current if current > 0 else PRICE_INVALID

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()
