"""Centralized-exchange adapters built on ``ccxt``.

Each venue gets two ccxt clients: one for spot books and currency metadata,
one configured for linear USDT swaps (futures books and funding rates).
Perpetual symbols use the ccxt unified ``BASE/QUOTE:QUOTE`` form.

ccxt sync clients share a ``requests`` session, so calls into one adapter are
serialized with a lock; different venues still run concurrently.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence

import ccxt

from spread_tracker.config.models import VenueCredentials
from spread_tracker.core.enums import MarketKind, VenueId
from spread_tracker.core.errors import MarketDataError
from spread_tracker.market.models import OrderBook, OrderBookLevel, TokenStatus

from .base import SupportsFundingRate, SupportsTokenContracts, SupportsTokenStatus, VenueAdapter

LOGGER = logging.getLogger(__name__)

CURRENCIES_TTL_SEC = 300.0
_CONTRACT_KEYS = ("contract", "contractAddress", "contract_address")


@dataclass(frozen=True, slots=True)
class CcxtVenueSpec:
    """ccxt exchange ids and quirks for one venue."""

    spot_exchange_id: str
    swap_exchange_id: str
    book_limit: int | None = 5


CCXT_VENUE_SPECS: Mapping[VenueId, CcxtVenueSpec] = {
    VenueId.MEXC: CcxtVenueSpec("mexc", "mexc"),
    VenueId.KUCOIN: CcxtVenueSpec("kucoin", "kucoinfutures", book_limit=20),
    VenueId.GATE: CcxtVenueSpec("gate", "gate"),
    VenueId.BITGET: CcxtVenueSpec("bitget", "bitget"),
}


def to_swap_symbol(symbol: str) -> str:
    """``BTC/USDT`` -> ``BTC/USDT:USDT`` (ccxt unified linear perpetual)."""

    if ":" in symbol:
        return symbol
    quote = symbol.split("/")[-1]
    return f"{symbol}:{quote}"


class CcxtVenue(VenueAdapter, SupportsFundingRate, SupportsTokenStatus, SupportsTokenContracts):
    """Spot + linear-swap market data for one ccxt-backed venue.

    Parameters
    ----------
    venue_id:
        Venue served by this adapter; must be present in :data:`CCXT_VENUE_SPECS`.
    credentials:
        Optional API keys. Order books and funding are public; currency
        metadata (deposit/withdraw flags, networks) needs keys on some venues.
    timeout_sec:
        Per-request timeout handed to ccxt.
    spot_client / swap_client:
        Pre-built ccxt clients (tests inject fakes here).
    """

    def __init__(
        self,
        venue_id: VenueId,
        credentials: VenueCredentials | None = None,
        *,
        timeout_sec: float = 5.0,
        spot_client: Any | None = None,
        swap_client: Any | None = None,
    ) -> None:
        self.venue_id = venue_id
        self._spec = CCXT_VENUE_SPECS[venue_id]
        creds = credentials or VenueCredentials()
        self._spot = spot_client or self._build_client(self._spec.spot_exchange_id, creds, timeout_sec, swap=False)
        self._swap = swap_client or self._build_client(self._spec.swap_exchange_id, creds, timeout_sec, swap=True)
        self._lock = threading.Lock()
        self._currencies: Dict[str, Any] = {}
        self._currencies_loaded_at = 0.0

    @staticmethod
    def _build_client(exchange_id: str, creds: VenueCredentials, timeout_sec: float, *, swap: bool) -> Any:
        params: Dict[str, Any] = {
            "enableRateLimit": True,
            "timeout": int(timeout_sec * 1000),
        }
        if creds.api_key:
            params["apiKey"] = creds.api_key
        if creds.api_secret:
            params["secret"] = creds.api_secret
        if creds.password:
            params["password"] = creds.password
        if swap:
            params["options"] = {"defaultType": "swap", "defaultSubType": "linear"}
        exchange_cls = getattr(ccxt, exchange_id)
        return exchange_cls(params)

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------
    def market_kinds(self) -> Sequence[MarketKind]:
        return (MarketKind.SPOT, MarketKind.FUTURES)

    def get_order_book(self, symbol: str, kind: MarketKind = MarketKind.SPOT) -> OrderBook:
        client = self._spot if kind is MarketKind.SPOT else self._swap
        market_symbol = symbol if kind is MarketKind.SPOT else to_swap_symbol(symbol)
        with self._lock:
            raw = client.fetch_order_book(market_symbol, self._spec.book_limit)
        bids = [OrderBookLevel(price=float(level[0]), size=float(level[1])) for level in raw.get("bids", [])[:1]]
        asks = [OrderBookLevel(price=float(level[0]), size=float(level[1])) for level in raw.get("asks", [])[:1]]
        if not bids or not asks:
            raise MarketDataError(f"Empty {kind.value} orderbook for {symbol} on {self.venue_id.value}")
        return OrderBook(symbol=symbol, bids=bids, asks=asks)

    def get_funding_rate(self, symbol: str) -> float:
        with self._lock:
            response = self._swap.fetch_funding_rate(to_swap_symbol(symbol))
        rate = response.get("fundingRate")
        if rate is None:
            raise MarketDataError(f"No funding rate for {symbol} on {self.venue_id.value}")
        return float(rate) * 100.0

    # ------------------------------------------------------------------
    # Currency metadata
    # ------------------------------------------------------------------
    def check_token_status(self, token: str) -> TokenStatus:
        try:
            currency = self._currency(token)
        except Exception as exc:  # ccxt raises a wide family of errors here
            LOGGER.debug("Token status check failed for %s on %s: %s", token, self.venue_id.value, exc)
            return TokenStatus()
        if not currency:
            return TokenStatus()
        return TokenStatus(deposit=bool(currency.get("deposit")), withdraw=bool(currency.get("withdraw")))

    def get_networks(self, token: str) -> list[str]:
        try:
            currency = self._currency(token)
        except Exception as exc:
            LOGGER.debug("Network lookup failed for %s on %s: %s", token, self.venue_id.value, exc)
            return []
        networks = (currency or {}).get("networks") or {}
        return [code.upper() for code, info in networks.items() if (info or {}).get("deposit") is not False]

    def get_token_contract(self, token: str, network: str) -> str | None:
        try:
            currency = self._currency(token)
        except Exception as exc:
            LOGGER.debug("Contract lookup failed for %s on %s: %s", token, self.venue_id.value, exc)
            return None
        networks = (currency or {}).get("networks") or {}
        for code, info in networks.items():
            if code.upper() != network.upper() or not info:
                continue
            raw = info.get("info") or {}
            for key in _CONTRACT_KEYS:
                address = info.get(key) or (raw.get(key) if isinstance(raw, Mapping) else None)
                if address:
                    return str(address)
        return None

    def _currency(self, token: str) -> Mapping[str, Any] | None:
        now = time.monotonic()
        with self._lock:
            if not self._currencies or now - self._currencies_loaded_at > CURRENCIES_TTL_SEC:
                self._currencies = self._spot.fetch_currencies() or {}
                self._currencies_loaded_at = now
            return self._currencies.get(token)

    def close(self) -> None:
        for client in (self._spot, self._swap):
            closer = getattr(client, "close", None)
            if callable(closer):
                closer()
