from __future__ import annotations

from dataclasses import dataclass, field

from chat_sync.domain.entities.chat import Chat
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.ids import ChatId


@dataclass(frozen=True, slots=True)
class SessionState:
    """Read-only view of the session handed to listeners and callers."""

    chats: tuple[Chat, ...] = ()
    active_chat_id: ChatId | None = None
    message_buffer: tuple[Message, ...] = ()
    unread_by_chat: dict[ChatId, int] = field(default_factory=dict)
    typing_peer: bool = False
    is_self_typing: bool = False
    draft: str = ""
    connected: bool = False
