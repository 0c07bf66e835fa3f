"""User-facing message texts (Telegram HTML)."""
from __future__ import annotations

from html import escape
from typing import TYPE_CHECKING, Mapping, Sequence, Tuple

from spread_tracker.core.enums import MarketKind, VenueId
from spread_tracker.core.types import base_token
from spread_tracker.market.models import AggregatedView, SpreadData, VenueQuote
from spread_tracker.market.price_analyzer import PriceAnalyzer

if TYPE_CHECKING:
    from spread_tracker.tracking.models import TrackingTask

# Changes smaller than this are not worth an arrow in the spread line.
_VISIBLE_CHANGE = 0.01


def _change_suffix(current: float, previous: float | None) -> str:
    change = current - previous if previous is not None else 0.0
    if abs(change) < _VISIBLE_CHANGE:
        return ""
    emoji = "📈" if change > 0 else "📉"
    return f" {emoji}{abs(change):.2f}%"


class MessageFormatter:
    """Build chat messages. Every dynamic value is HTML-escaped."""

    def __init__(self, analyzer: PriceAnalyzer | None = None) -> None:
        self._analyzer = analyzer or PriceAnalyzer()

    # ------------------------------------------------------------------
    # Static texts
    # ------------------------------------------------------------------
    def start_message(self) -> str:
        return (
            "Hi! I track price spreads between exchanges.\n\n"
            "Available commands:\n"
            "🔍 /track SYMBOL - start tracking (e.g. /track BTC/USDT)\n"
            "🛑 /stop SYMBOL - stop tracking\n"
            "🚫 /stopall - stop all tracking\n"
            "📋 /list - tracked pairs\n"
            "💱 /pairs - popular pairs\n"
            "❓ /help - show help\n\n"
            "Pairs are written as BASE/QUOTE (e.g. BTC/USDT)"
        )

    def help_message(self, min_change: float) -> str:
        return (
            "📚 Commands:\n\n"
            "1️⃣ Start tracking:\n"
            "   /track SYMBOL [venues|all|cex] [min_spread]\n"
            "   Example: /track BTC/USDT mexc,gate 1.5\n\n"
            "2️⃣ Stop tracking:\n"
            "   /stop SYMBOL\n\n"
            "3️⃣ Stop all tracking:\n"
            "   /stopall\n\n"
            "4️⃣ Tracked pairs with current spread:\n"
            "   /list\n\n"
            "5️⃣ Popular pairs:\n"
            "   /pairs\n\n"
            "6️⃣ Token contracts:\n"
            "   /contracts TOKEN\n\n"
            "7️⃣ Track by link:\n"
            "   /track_link URL MIN_SPREAD\n"
            "   Example: /track_link https://www.mexc.com/exchange/BTC_USDT 1.5\n\n"
            "8️⃣ Stop tracking by link:\n"
            "   /stop_link URL\n\n"
            "9️⃣ Track the spread between two links:\n"
            "   /track_pair URL1 URL2 MIN_SPREAD MAX_SPREAD\n"
            "   Example: /track_pair https://www.mexc.com/exchange/BTC_USDT "
            "https://www.gate.io/trade/BTC_USDT 1.5 3.0\n\n"
            f"⚠️ Updates are sent only when the spread moves by at least {min_change:g}%"
        )

    def track_usage(self) -> str:
        return (
            "Usage:\n"
            "/track SYMBOL [venues] [min_spread]\n\n"
            "Examples:\n"
            "/track BTC/USDT\n"
            "/track BTC/USDT mexc,kucoin 1.5\n"
            "/track BTC/USDT cex 2.5\n"
            "/track BTC/USDT all 1.0"
        )

    def pairs_prompt(self) -> str:
        return "Pick a pair and market types to track:"

    def no_active_tracking(self) -> str:
        return "You have no active tracking"

    def restart_message(self) -> str:
        return "✅ Bot restarted and ready"

    def shutdown_message(self) -> str:
        return "Bot stopped 🔴"

    # ------------------------------------------------------------------
    # Tracking lifecycle
    # ------------------------------------------------------------------
    def tracking_started(self, task: "TrackingTask", venues: Sequence[VenueId]) -> str:
        mode = " (ULTRA MODE)" if task.ultra else f" ({task.market1_kind.value}-{task.market2_kind.value})"
        spread_range = f"{task.min_spread_percent:g}%"
        if task.max_spread_percent is not None:
            spread_range += f" - {task.max_spread_percent:g}%"
        return (
            f"✅ Started tracking {escape(task.symbol)}{mode}\n"
            f"📊 Venues: {', '.join(venue.value for venue in venues)}\n"
            f"🎯 Minimum spread: {spread_range}\n"
            f"Minimum change: {task.min_change:g}%\n"
        )

    def tracking_stopped(self, symbol: str) -> str:
        return f"✅ Tracking of {escape(symbol)} stopped"

    def tracking_not_found(self, symbol: str) -> str:
        return f"No tracking found for {escape(symbol)}"

    def all_tracking_stopped(self) -> str:
        return "✅ All tracking stopped"

    def error(self, symbol: str, error: str) -> str:
        return f"Error fetching data for {escape(symbol)}: {escape(error)}"

    # ------------------------------------------------------------------
    # Spread updates
    # ------------------------------------------------------------------
    def _quote_line(self, quote: VenueQuote, view: AggregatedView, token: str) -> str:
        bid = f"{quote.bid:.6f}"
        ask = f"{quote.ask:.6f}"
        if self._analyzer.is_best_price(quote.bid, view.best_bid.bid):
            bid = f"🔥{bid}"
        if self._analyzer.is_best_price(quote.ask, view.best_ask.ask):
            ask = f"🔥{ask}"
        parts = [f"{quote.kind.short_label}: {bid} | {ask}"]
        if quote.funding_rate is not None:
            parts.append(f"💰{quote.funding_rate:.4f}%")

        profile = quote.venue.profile
        deposit = quote.token_status.deposit if quote.token_status else False
        withdraw = quote.token_status.withdraw if quote.token_status else False
        deposit_label = f'<a href="{escape(profile.deposit_link(token))}">D</a>' if deposit else "D"
        withdraw_label = f'<a href="{escape(profile.withdraw_link(token))}">W</a>' if withdraw else "W"
        parts.append(f"{deposit_label}:{'✅' if deposit else '🚫'} {withdraw_label}:{'✅' if withdraw else '🚫'}")

        link = quote.trade_url or profile.trade_link(quote.symbol, quote.kind)
        if link:
            parts.append(f'<a href="{escape(link)}">Trade</a>')
        return " | ".join(parts)

    def ultra_update(self, view: AggregatedView, previous_spread: float | None) -> str:
        """Per-venue quote table followed by the best route.

        The best bid and best ask are marked with 🔥 wherever they occur.
        """

        token = base_token(view.best_bid.symbol)
        blocks = [f"🪙 {escape(token)}"]
        for venue, quotes in view.quotes_by_venue.items():
            ordered = sorted(quotes, key=lambda quote: quote.kind is not MarketKind.SPOT)
            lines = [venue.value] + [self._quote_line(quote, view, token) for quote in ordered]
            blocks.append("\n".join(lines))
        summary = (
            f"Spread: {view.spread_percent:.2f}%{_change_suffix(view.spread_percent, previous_spread)}\n"
            f"{view.best_ask.venue.value}({view.best_ask.kind.value}) ➜ "
            f"{view.best_bid.venue.value}({view.best_bid.kind.value})"
        )
        blocks.append(summary)
        return "\n\n".join(blocks)

    def pair_spread(self, spread: SpreadData, previous: SpreadData | None) -> str:
        change = spread.spread_percent - previous.spread_percent if previous else 0.0
        emoji = "📈" if change > 0 else "📉" if change < 0 else "➡️"
        return (
            f"{spread.buy_venue.value}({spread.market1_kind.value}): {spread.buy_price:g}\n"
            f"{spread.sell_venue.value}({spread.market2_kind.value}): {spread.sell_price:g}\n"
            f"💰 {spread.spread_percent:.2f}% {emoji}{change:.2f}%"
        )

    # ------------------------------------------------------------------
    # Command replies
    # ------------------------------------------------------------------
    def tracking_list(self, entries: Sequence[Tuple["TrackingTask", AggregatedView | None]]) -> str:
        lines = ["📋 Active tracking:", ""]
        for task, view in entries:
            if view is None:
                lines.extend([f"{escape(task.symbol)}: failed to fetch data", ""])
                continue
            lines.append(f"{escape(task.symbol)}: {view.spread_percent:.2f}%")
            lines.append(
                f"{view.best_ask.venue.value}({view.best_ask.kind.value}) ➜ "
                f"{view.best_bid.venue.value}({view.best_bid.kind.value})"
            )
            lines.append("")
        return "\n".join(lines).rstrip()

    def contracts(self, token: str, contracts: Mapping[VenueId, Mapping[str, str]]) -> str:
        if not contracts:
            return f"No contracts found for {escape(token)}"
        blocks = []
        for venue, networks in contracts.items():
            network_lines = "\n".join(
                f"  {escape(network)}: <code>{escape(contract)}</code>" for network, contract in networks.items()
            )
            blocks.append(f"{venue.value}:\n{network_lines}")
        return f"Contracts for {escape(token)}:\n\n" + "\n\n".join(blocks)


__all__ = ["MessageFormatter"]
