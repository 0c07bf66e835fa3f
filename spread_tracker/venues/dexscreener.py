"""DexScreener aggregator adapter.

DexScreener has no order book; the adapter searches pairs for the base token
(``GET /latest/dex/search?q=...``), keeps pairs with at least
:data:`MIN_VOLUME_USD` of 24h volume, takes the highest-volume one and
synthesises a one-level book around its USD price. The chosen pair's page is
returned as :attr:`OrderBook.url` so messages can link to it.
"""
from __future__ import annotations

import logging
import time
from typing import Optional, Sequence

import httpx

from spread_tracker.core.enums import MarketKind, VenueId
from spread_tracker.core.errors import MarketDataError
from spread_tracker.core.types import JSONLike, base_token
from spread_tracker.market.models import OrderBook, OrderBookLevel

from .base import SupportsTokenContracts, VenueAdapter

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.dexscreener.com"
MIN_VOLUME_USD = 1_000.0
SYNTHETIC_HALF_SPREAD = 0.001


def _volume_24h(pair: JSONLike) -> float:
    try:
        return float((pair.get("volume") or {}).get("h24") or 0.0)
    except (TypeError, ValueError):
        return 0.0


class DexScreenerVenue(VenueAdapter, SupportsTokenContracts):
    """Synchronous DexScreener client (spot only).

    Retries use exponential backoff ``backoff_base * 2 ** attempt``. HTTP and
    network issues are logged as warnings and re-raised after the final
    attempt.
    """

    venue_id = VenueId.DEXSCREENER

    def __init__(
        self,
        session: httpx.Client | None = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 5.0,
        max_retries: int = 2,
        backoff_base: float = 0.25,
        min_volume_usd: float = MIN_VOLUME_USD,
    ) -> None:
        self._client = session or httpx.Client(base_url=base_url, timeout=timeout)
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._min_volume_usd = min_volume_usd

    def close(self) -> None:
        """Close the underlying HTTP client."""

        self._client.close()

    def _request(self, path: str, *, params: Optional[JSONLike] = None) -> JSONLike:
        attempt = 0
        last_error: Exception | None = None
        while attempt < self._max_retries:
            try:
                response = self._client.get(path, params=dict(params or {}))
                response.raise_for_status()
                return response.json()
            except httpx.HTTPError as exc:
                last_error = exc
                LOGGER.warning("DexScreener GET %s failed (attempt %s/%s): %s", path, attempt + 1, self._max_retries, exc)
                time.sleep(self._backoff_base * (2 ** attempt))
                attempt += 1
        assert last_error is not None
        raise last_error

    def _search(self, query: str) -> Sequence[JSONLike]:
        payload = self._request("/latest/dex/search", params={"q": query})
        return payload.get("pairs") or []

    def _liquid_pairs(self, query: str) -> list[JSONLike]:
        return [pair for pair in self._search(query) if _volume_24h(pair) >= self._min_volume_usd]

    # ------------------------------------------------------------------
    # VenueAdapter
    # ------------------------------------------------------------------
    def market_kinds(self) -> Sequence[MarketKind]:
        return (MarketKind.SPOT,)

    def get_order_book(self, symbol: str, kind: MarketKind = MarketKind.SPOT) -> OrderBook:
        if kind is not MarketKind.SPOT:
            raise MarketDataError("DexScreener only lists spot pairs")
        pairs = self._liquid_pairs(base_token(symbol))
        if not pairs:
            raise MarketDataError(f"No pairs with sufficient volume found for {symbol}")
        best = max(pairs, key=_volume_24h)
        try:
            price = float(best["priceUsd"])
        except (KeyError, TypeError, ValueError) as exc:
            raise MarketDataError(f"DexScreener pair for {symbol} has no USD price") from exc
        if price <= 0:
            raise MarketDataError(f"DexScreener pair for {symbol} has a non-positive USD price")
        LOGGER.debug(
            "Selected DexScreener pair",
            extra={"symbol": symbol, "dex": best.get("dexId"), "volume_24h": _volume_24h(best)},
        )
        return OrderBook(
            symbol=symbol,
            bids=[OrderBookLevel(price=price * (1 - SYNTHETIC_HALF_SPREAD), size=1.0)],
            asks=[OrderBookLevel(price=price * (1 + SYNTHETIC_HALF_SPREAD), size=1.0)],
            url=best.get("url"),
        )

    # ------------------------------------------------------------------
    # SupportsTokenContracts
    # ------------------------------------------------------------------
    def get_networks(self, token: str) -> list[str]:
        try:
            pairs = self._liquid_pairs(token)
        except httpx.HTTPError as exc:
            LOGGER.debug("DexScreener network lookup failed for %s: %s", token, exc)
            return []
        networks: list[str] = []
        for pair in pairs:
            chain = str(pair.get("chainId") or "").upper()
            if chain and chain not in networks:
                networks.append(chain)
        return networks

    def get_token_contract(self, token: str, network: str) -> str | None:
        try:
            pairs = self._liquid_pairs(token)
        except httpx.HTTPError as exc:
            LOGGER.debug("DexScreener contract lookup failed for %s: %s", token, exc)
            return None
        for pair in sorted(pairs, key=_volume_24h, reverse=True):
            if str(pair.get("chainId") or "").upper() != network.upper():
                continue
            base = pair.get("baseToken") or {}
            if str(base.get("symbol") or "").upper() == token.upper() and base.get("address"):
                return str(base["address"])
        return None
