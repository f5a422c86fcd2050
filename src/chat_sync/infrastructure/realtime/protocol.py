"""Socket.IO event names and payload shapes of the push channel."""
from __future__ import annotations

from typing import Any

from chat_sync.application.dto.events import DeliveredMessage
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ChatId
from chat_sync.infrastructure.wire.mappers import message as message_mapper
from chat_sync.infrastructure.wire.schemas import MessagePayload

SETUP = "setup"
JOIN_CHAT = "join chat"

# Client -> Server
OUTBOUND: dict[ChannelEvent, str] = {
    ChannelEvent.MESSAGE_DELIVERED: "new message",
    ChannelEvent.TYPING_STARTED: "typing",
    ChannelEvent.TYPING_STOPPED: "stop typing",
}

# Server -> Client
INBOUND: dict[str, ChannelEvent] = {
    "message received": ChannelEvent.MESSAGE_DELIVERED,
    "typing": ChannelEvent.PEER_TYPING_STARTED,
    "stop typing": ChannelEvent.PEER_TYPING_STOPPED,
}

_SCOPE_KEYS = ("chatId", "chat_id", "room", "_id")


def parse_inbound(kind: ChannelEvent, raw: Any) -> Any:
    """Turn a raw event argument into the value handed to handlers.

    Raises ``pydantic.ValidationError`` for a malformed message payload.
    """
    if kind is ChannelEvent.MESSAGE_DELIVERED:
        return message_mapper.payload_to_entity(MessagePayload.model_validate(raw))
    return parse_scope(raw)


def parse_scope(raw: Any) -> ChatId | None:
    """Chat id carried by a typing event; bare events carry none."""
    if isinstance(raw, str) and raw.strip():
        return ChatId(raw.strip())
    if isinstance(raw, dict):
        for key in _SCOPE_KEYS:
            value = raw.get(key)
            if isinstance(value, str) and value.strip():
                return ChatId(value.strip())
    return None


def build_outbound(kind: ChannelEvent, payload: Any) -> Any:
    if kind is ChannelEvent.MESSAGE_DELIVERED:
        if not isinstance(payload, DeliveredMessage):
            raise TypeError("MESSAGE_DELIVERED expects a DeliveredMessage payload")
        return message_mapper.entity_to_wire(payload.message, payload.chat)
    return str(payload)
