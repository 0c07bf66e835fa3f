"""Outbound message channel used by trackers."""
from __future__ import annotations

from typing import Protocol


class MessageTransport(Protocol):
    """Delivers text to a chat.

    ``send_message`` is called from tracker worker threads and must block
    until the message is delivered or raise :class:`TransportError`.
    """

    def send_message(self, chat_id: int, text: str) -> None:
        ...

    def list_active_chat_ids(self) -> list[int]:
        ...


__all__ = ["MessageTransport"]
