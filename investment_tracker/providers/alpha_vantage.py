"""Alpha Vantage quote client used to price tracked holdings."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from decimal import Decimal, InvalidOperation
from typing import Any, Deque, Dict, Iterable, Optional

import httpx

from investment_tracker.config import get_settings

BASE_URL = "https://www.alphavantage.co/query"

logger = logging.getLogger(__name__)


class AlphaVantageError(RuntimeError):
    """Raised when Alpha Vantage returns an error payload."""


class AlphaVantageClient:
    """Throttled Alpha Vantage client with convenience helpers."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        requests_per_minute: int | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if api_key is None or requests_per_minute is None or timeout is None:
            settings = get_settings()
            api_key = api_key or settings.alphavantage_api_key
            requests_per_minute = requests_per_minute or settings.alphavantage_requests_per_minute
            timeout = timeout or settings.alphavantage_timeout_seconds
        self._api_key = api_key
        self._requests_per_minute = max(int(requests_per_minute), 1)
        self._timeout = timeout
        self._client = client or httpx.AsyncClient()
        self._calls: Deque[float] = deque()
        self._lock = asyncio.Lock()

    async def _throttle(self) -> None:
        async with self._lock:
            now = time.monotonic()
            while self._calls and now - self._calls[0] >= 60:
                self._calls.popleft()
            if len(self._calls) >= self._requests_per_minute:
                wait = 60 - (now - self._calls[0])
                logger.info("Alpha Vantage rate limit reached, sleeping %.1fs", wait)
                await asyncio.sleep(wait)
                self._calls.popleft()
            self._calls.append(time.monotonic())

    async def _get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        await self._throttle()
        query = {**params, "apikey": self._api_key}
        response = await self._client.get(BASE_URL, params=query, timeout=self._timeout)
        response.raise_for_status()
        payload = response.json()
        for key in ("Note", "Information", "Error Message"):
            if key in payload:
                raise AlphaVantageError(f"{key}: {payload[key]}")
        return payload

    async def global_quote(self, symbol: str) -> Dict[str, Any]:
        """Return the raw ``Global Quote`` object for ``symbol`` (may be empty)."""

        payload = await self._get({"function": "GLOBAL_QUOTE", "symbol": symbol})
        return payload.get("Global Quote") or {}

    async def latest_price(self, symbol: str) -> Optional[Decimal]:
        quote = await self.global_quote(symbol)
        raw = quote.get("05. price")
        if raw is None:
            return None
        try:
            price = Decimal(str(raw))
        except InvalidOperation:
            logger.warning("Unparseable price %r for %s", raw, symbol)
            return None
        if not price.is_finite() or price <= 0:
            return None
        return price

    async def resolve_quotes(self, tickers: Iterable[str]) -> Dict[str, Optional[Decimal]]:
        """Resolve the latest price for every ticker; unknown tickers map to ``None``."""

        quotes: Dict[str, Optional[Decimal]] = {}
        for ticker in dict.fromkeys(tickers):
            quotes[ticker] = await self.latest_price(ticker)
        return quotes

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["AlphaVantageClient", "AlphaVantageError", "BASE_URL"]
