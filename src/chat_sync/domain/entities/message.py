from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_sync.domain.entities.user import User
from chat_sync.domain.value_objects.ids import ChatId, MessageId


@dataclass(frozen=True, slots=True)
class Message:
    id: MessageId
    chat_id: ChatId
    sender: User
    content: str
    created_at: datetime
    pending: bool = False
