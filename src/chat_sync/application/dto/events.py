from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.chat import Chat
from chat_sync.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class DeliveredMessage:
    """Outbound ``MESSAGE_DELIVERED`` payload: the message plus its chat, when known."""

    message: Message
    chat: Chat | None = None
