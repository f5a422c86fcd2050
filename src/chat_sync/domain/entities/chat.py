from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import User
from chat_sync.domain.value_objects.ids import ChatId, UserId

UNNAMED_CHAT = "Unnamed Chat"


@dataclass(frozen=True, slots=True)
class Chat:
    id: ChatId
    is_group: bool
    name: str
    users: tuple[User, ...] = ()
    latest_message: Message | None = None

    def display_name(self, self_id: UserId | None = None) -> str:
        """Group name, or the other participant's name for a 1:1 chat."""
        if self.is_group:
            return self.name or UNNAMED_CHAT
        for user in self.users:
            if user.id != self_id:
                return user.name or UNNAMED_CHAT
        return UNNAMED_CHAT
