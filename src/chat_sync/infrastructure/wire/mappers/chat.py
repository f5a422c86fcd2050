from __future__ import annotations

from chat_sync.domain.entities.chat import Chat
from chat_sync.domain.value_objects.ids import ChatId
from chat_sync.infrastructure.wire.mappers import message as message_mapper
from chat_sync.infrastructure.wire.mappers import user as user_mapper
from chat_sync.infrastructure.wire.schemas import ChatPayload, MessagePayload


def payload_to_entity(payload: ChatPayload) -> Chat:
    latest = None
    if isinstance(payload.latest_message, MessagePayload):
        latest = message_mapper.payload_to_entity(payload.latest_message)
    return Chat(
        id=ChatId(payload.id),
        is_group=payload.is_group,
        name=payload.name,
        users=tuple(user_mapper.payload_to_entity(u) for u in payload.users),
        latest_message=latest,
    )
