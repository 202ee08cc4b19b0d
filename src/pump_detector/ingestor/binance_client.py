"""Binance REST price source.

Fetches the spot ticker snapshot and 24h statistics for the monitored
symbols. Any upstream failure is logged and reported as an empty batch so
that a scan cycle degrades to a no-op instead of failing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any, Protocol

import httpx

from pump_detector.ingestor.models import MarketStat, PriceSample, now_utc

logger = logging.getLogger(__name__)

# Constants
DEFAULT_BASE_URL = "https://api.binance.com"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_USER_AGENT = "PumpDetector/1.0"

PRICE_PATH = "/api/v3/ticker/price"
STATS_PATH = "/api/v3/ticker/24hr"


class PriceSource(Protocol):
    """Supplier of price batches consumed by the scanner."""

    async def fetch_prices(self) -> list[PriceSample]:
        ...

    async def fetch_market_stats(self) -> dict[str, MarketStat]:
        ...


class BinanceClientError(Exception):
    """Base exception for Binance client errors."""


class BinanceClientTransientError(BinanceClientError):
    """Raised for retryable/transient errors (timeouts, 5xx, bad payloads)."""


class BinancePriceClient:
    """Async Binance REST client restricted to a fixed symbol universe.

    Example:
        >>> async with BinancePriceClient(["BTCUSDT", "ETHUSDT"]) as client:
        ...     prices = await client.fetch_prices()
    """

    def __init__(
        self,
        symbols: Iterable[str],
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        """Initialize the client.

        Args:
            symbols: Monitoring universe; rows for other symbols are dropped.
            base_url: Binance REST endpoint.
            timeout_seconds: Per-request timeout.
            user_agent: User-Agent header sent with every request.
            http_client: Optional pre-built httpx client (used by tests).
            clock: Source of `observed_at` timestamps.
        """
        self._symbols = frozenset(s.upper() for s in symbols)
        self._clock = clock
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={"User-Agent": user_agent},
        )

        logger.info(
            "Initialized BinancePriceClient with base_url=%s, timeout=%.1fs, symbols=%d",
            base_url,
            timeout_seconds,
            len(self._symbols),
        )

    @property
    def symbols(self) -> frozenset[str]:
        return self._symbols

    async def __aenter__(self) -> BinancePriceClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _get_json(self, path: str) -> list[dict[str, Any]]:
        try:
            response = await self._http.get(path)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise BinanceClientTransientError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise BinanceClientTransientError(f"GET {path} returned invalid JSON: {e}") from e

        if not isinstance(payload, list):
            raise BinanceClientTransientError(f"GET {path} returned {type(payload).__name__}, expected list")
        return payload

    async def fetch_prices(self) -> list[PriceSample]:
        """Fetch the latest price for every monitored symbol.

        Returns:
            Price samples in upstream order, or an empty list on failure.
        """
        try:
            rows = await self._get_json(PRICE_PATH)
        except BinanceClientError as e:
            logger.warning("Error fetching prices: %s", e)
            return []

        observed_at = self._clock()
        samples: list[PriceSample] = []
        for row in rows:
            if not isinstance(row, dict) or str(row.get("symbol", "")).upper() not in self._symbols:
                continue
            try:
                samples.append(PriceSample.from_ticker(row, observed_at=observed_at))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed price row %r: %s", row, e)
        return samples

    async def fetch_market_stats(self) -> dict[str, MarketStat]:
        """Fetch 24h statistics for every monitored symbol.

        Returns:
            Mapping of symbol to MarketStat, or an empty dict on failure.
        """
        try:
            rows = await self._get_json(STATS_PATH)
        except BinanceClientError as e:
            logger.warning("Error fetching market data: %s", e)
            return {}

        stats: dict[str, MarketStat] = {}
        for row in rows:
            if not isinstance(row, dict):
                continue
            symbol = str(row.get("symbol", "")).upper()
            if symbol not in self._symbols:
                continue
            try:
                stats[symbol] = MarketStat.from_ticker(row)
            except (TypeError, ValueError) as e:
                logger.debug("Skipping malformed 24h row for %s: %s", symbol, e)
        return stats
