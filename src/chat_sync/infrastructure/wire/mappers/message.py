from __future__ import annotations

from typing import Any

from chat_sync.domain.entities.chat import Chat
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.ids import ChatId, MessageId
from chat_sync.infrastructure.wire.mappers import user as user_mapper
from chat_sync.infrastructure.wire.schemas import ChatPayload, MessagePayload


def payload_to_entity(payload: MessagePayload) -> Message:
    return Message(
        id=MessageId(payload.id),
        chat_id=ChatId(payload.chat_id),
        sender=user_mapper.payload_to_entity(payload.sender),
        content=payload.content,
        created_at=payload.created_at,
    )


def entity_to_payload(entity: Message, chat: Chat | None = None) -> MessagePayload:
    """Build the wire form of a message.

    The push server routes ``new message`` by the participants of the
    embedded chat, so the chat is embedded whenever it is known.
    """
    chat_ref: ChatPayload | str = entity.chat_id
    if chat is not None:
        chat_ref = ChatPayload(
            id=chat.id,
            is_group=chat.is_group,
            name=chat.name,
            users=[user_mapper.entity_to_payload(u) for u in chat.users],
        )
    return MessagePayload(
        id=entity.id,
        chat=chat_ref,
        sender=user_mapper.entity_to_payload(entity.sender),
        content=entity.content,
        created_at=entity.created_at,
    )


def entity_to_wire(entity: Message, chat: Chat | None = None) -> dict[str, Any]:
    return entity_to_payload(entity, chat).model_dump(by_alias=True, mode="json")
