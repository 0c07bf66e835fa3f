from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Awaitable, Callable, Sequence

from telegram import BotCommand, InlineKeyboardButton, InlineKeyboardMarkup, LinkPreviewOptions, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
)

from spread_tracker.config.models import TrackerSettings
from spread_tracker.core.errors import TransportError
from spread_tracker.interfaces.command_service import CommandService
from spread_tracker.interfaces.commands import KIND_PAIRS, POPULAR_PAIRS, pair_callback_data
from spread_tracker.interfaces.formatter import MessageFormatter
from spread_tracker.market.aggregator import MarketAggregator
from spread_tracker.telemetry.storage import TelemetryStorage
from spread_tracker.tracking.manager import TrackingManager

LOGGER = logging.getLogger(__name__)

Handler = Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]

BOT_COMMANDS: Sequence[tuple[str, str]] = (
    ("start", "Start the bot"),
    ("help", "Show help"),
    ("track", "Start tracking a pair"),
    ("stop", "Stop tracking a pair"),
    ("stopall", "Stop all tracking"),
    ("list", "Tracked pairs"),
    ("pairs", "Popular trading pairs"),
    ("contracts", "Token contract addresses"),
    ("track_link", "Track by link"),
    ("stop_link", "Stop tracking by link"),
    ("track_pair", "Track the spread between two links"),
)

_NO_PREVIEW = LinkPreviewOptions(is_disabled=True)


class TelegramBotInterface:
    """Telegram layer: chat commands in, tracker messages out.

    Handlers run on the application's asyncio loop and hand the blocking
    command logic to worker threads. Trackers call :meth:`send_message` from
    their own threads; the call is scheduled onto the bot loop and waited
    for, so a tracker knows whether its message went out.
    """

    def __init__(
        self,
        *,
        token: str,
        aggregator: MarketAggregator,
        settings: TrackerSettings,
        journal: TelemetryStorage | None = None,
        formatter: MessageFormatter | None = None,
        admin_chat_id: int | None = None,
        send_timeout: float = 15.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._formatter = formatter or MessageFormatter()
        self._manager = TrackingManager(aggregator, self, settings, formatter=self._formatter, journal=journal)
        self._commands = CommandService(self._manager, settings, formatter=self._formatter)
        self._admin_chat_id = admin_chat_id
        self._notifications_enabled = settings.notifications_enabled
        self._send_timeout = send_timeout
        self._logger = logger or LOGGER
        self._loop: asyncio.AbstractEventLoop | None = None
        self._seen_chats: set[int] = set()
        self._chats_lock = threading.Lock()
        self._application: Application = (
            ApplicationBuilder()
            .token(token)
            .post_init(self._post_init)
            .post_stop(self._post_stop)
            .build()
        )
        self._register_handlers()

    @property
    def manager(self) -> TrackingManager:
        return self._manager

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def run(self) -> None:
        """Poll until SIGINT/SIGTERM; trackers are stopped on the way out."""

        self._logger.info("Telegram bot polling started")
        self._application.run_polling(allowed_updates=Update.ALL_TYPES, drop_pending_updates=True)
        self._logger.info("Telegram bot polling stopped")

    async def _post_init(self, application: Application) -> None:
        self._loop = asyncio.get_running_loop()
        await application.bot.set_my_commands([BotCommand(name, description) for name, description in BOT_COMMANDS])
        if self._admin_chat_id and self._notifications_enabled:
            await self._broadcast([self._admin_chat_id], self._formatter.restart_message())

    async def _post_stop(self, application: Application) -> None:
        chat_ids = self.list_active_chat_ids()
        stopped = await asyncio.to_thread(self._manager.shutdown)
        self._logger.info("Trackers stopped on shutdown", extra={"stopped": stopped})
        if self._notifications_enabled:
            await self._broadcast(chat_ids, self._formatter.shutdown_message())
        self._loop = None

    async def _broadcast(self, chat_ids: Sequence[int], text: str) -> None:
        for chat_id in chat_ids:
            try:
                await self._application.bot.send_message(
                    chat_id=chat_id,
                    text=text,
                    parse_mode=ParseMode.HTML,
                    link_preview_options=_NO_PREVIEW,
                )
            except TelegramError as exc:
                self._logger.warning("Broadcast failed", extra={"chat_id": chat_id, "error": str(exc)})

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def send_message(self, chat_id: int, text: str) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            raise TransportError("Telegram application is not running")
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            raise TransportError("send_message must not be called from the bot event loop")

        future = asyncio.run_coroutine_threadsafe(
            self._application.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=ParseMode.HTML,
                link_preview_options=_NO_PREVIEW,
            ),
            loop,
        )
        try:
            future.result(timeout=self._send_timeout)
        except concurrent.futures.TimeoutError as exc:
            future.cancel()
            raise TransportError(f"Timed out sending message to chat {chat_id}") from exc
        except TelegramError as exc:
            raise TransportError(f"Failed to send message to chat {chat_id}: {exc}") from exc

    def list_active_chat_ids(self) -> list[int]:
        with self._chats_lock:
            chats = set(self._seen_chats)
        chats.update(self._manager.active_chat_ids())
        return sorted(chats)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def _register_handlers(self) -> None:
        app = self._application
        app.add_handler(CommandHandler("start", self._wrap(self._cmd_start)))
        app.add_handler(CommandHandler("help", self._wrap(self._cmd_help)))
        app.add_handler(CommandHandler("track", self._wrap(self._cmd_track)))
        app.add_handler(CommandHandler("stop", self._wrap(self._cmd_stop)))
        app.add_handler(CommandHandler("stopall", self._wrap(self._cmd_stop_all)))
        app.add_handler(CommandHandler("list", self._wrap(self._cmd_list)))
        app.add_handler(CommandHandler("pairs", self._wrap(self._cmd_pairs)))
        app.add_handler(CommandHandler("contracts", self._wrap(self._cmd_contracts)))
        app.add_handler(CommandHandler("track_link", self._wrap(self._cmd_track_link)))
        app.add_handler(CommandHandler("stop_link", self._wrap(self._cmd_stop_link)))
        app.add_handler(CommandHandler("track_pair", self._wrap(self._cmd_track_pair)))
        app.add_handler(CallbackQueryHandler(self._wrap(self._on_pair_selected), pattern=r"^track_"))

    def _wrap(self, handler: Handler) -> Handler:
        async def wrapped(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
            chat = update.effective_chat
            if chat is None:
                return
            with self._chats_lock:
                self._seen_chats.add(chat.id)
            try:
                await handler(update, context)
            except Exception as exc:
                self._logger.exception("Telegram handler failed", extra={"chat_id": chat.id})
                await self._reply(update, f"Command failed: {exc.__class__.__name__}")

        return wrapped

    async def _reply(self, update: Update, text: str | None, **kwargs) -> None:
        if not text or update.effective_chat is None:
            return
        await update.effective_chat.send_message(
            text,
            parse_mode=ParseMode.HTML,
            link_preview_options=_NO_PREVIEW,
            **kwargs,
        )

    async def _cmd_start(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply(update, self._commands.start())

    async def _cmd_help(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply(update, self._commands.help())

    async def _cmd_track(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        reply = await asyncio.to_thread(self._commands.track, update.effective_chat.id, list(context.args or []))
        await self._reply(update, reply)

    async def _cmd_stop(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        reply = await asyncio.to_thread(self._commands.stop, update.effective_chat.id, list(context.args or []))
        await self._reply(update, reply)

    async def _cmd_stop_all(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        reply = await asyncio.to_thread(self._commands.stop_all, update.effective_chat.id)
        await self._reply(update, reply)

    async def _cmd_list(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        reply = await asyncio.to_thread(self._commands.list_tracking, update.effective_chat.id)
        await self._reply(update, reply)

    async def _cmd_contracts(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        reply = await asyncio.to_thread(self._commands.contracts, list(context.args or []))
        await self._reply(update, reply)

    async def _cmd_track_link(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        reply = await asyncio.to_thread(
            self._commands.track_link, update.effective_chat.id, list(context.args or [])
        )
        await self._reply(update, reply)

    async def _cmd_stop_link(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        reply = await asyncio.to_thread(self._commands.stop_link, update.effective_chat.id, list(context.args or []))
        await self._reply(update, reply)

    async def _cmd_track_pair(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        reply = await asyncio.to_thread(
            self._commands.track_pair, update.effective_chat.id, list(context.args or [])
        )
        await self._reply(update, reply)

    async def _cmd_pairs(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        rows = [
            [
                InlineKeyboardButton(
                    f"{pair} {kind1.value.upper()}-{kind2.value.upper()}",
                    callback_data=pair_callback_data(pair, kind1, kind2),
                )
            ]
            for pair in POPULAR_PAIRS
            for kind1, kind2 in KIND_PAIRS
        ]
        await self._reply(update, self._formatter.pairs_prompt(), reply_markup=InlineKeyboardMarkup(rows))

    async def _on_pair_selected(self, update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if query is None:
            return
        await query.answer()
        reply = await asyncio.to_thread(
            self._commands.track_popular_pair, update.effective_chat.id, query.data or ""
        )
        await self._reply(update, reply)


__all__ = ["BOT_COMMANDS", "TelegramBotInterface"]
