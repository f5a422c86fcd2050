from __future__ import annotations

from collections import deque

from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.ids import ChatId

MAX_HELD_MESSAGES = 200


class UnreadTracker:
    """Per-chat unread counters for messages that arrive off-screen.

    Messages counted here are also held until their chat is selected, so a
    message that the history snapshot does not (yet) contain is not lost.
    """

    def __init__(self, max_held: int = MAX_HELD_MESSAGES) -> None:
        self._counts: dict[ChatId, int] = {}
        self._held: dict[ChatId, deque[Message]] = {}
        self._max_held = max_held

    def increment(self, message: Message) -> int:
        chat_id = message.chat_id
        self._counts[chat_id] = self._counts.get(chat_id, 0) + 1
        self._held.setdefault(chat_id, deque(maxlen=self._max_held)).append(message)
        return self._counts[chat_id]

    def reset(self, chat_id: ChatId) -> None:
        if chat_id in self._counts:
            self._counts[chat_id] = 0

    def take(self, chat_id: ChatId) -> list[Message]:
        """Remove and return the messages held for ``chat_id`` in arrival order."""
        return list(self._held.pop(chat_id, ()))

    def is_held(self, message: Message) -> bool:
        return any(m.id == message.id for m in self._held.get(message.chat_id, ()))

    def count(self, chat_id: ChatId) -> int:
        return self._counts.get(chat_id, 0)

    def snapshot(self) -> dict[ChatId, int]:
        return dict(self._counts)

    def clear(self) -> None:
        self._counts.clear()
        self._held.clear()
