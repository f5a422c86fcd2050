from __future__ import annotations

from enum import StrEnum


class ChannelEvent(StrEnum):
    """Events crossing the realtime channel, in either direction."""

    MESSAGE_DELIVERED = "message_delivered"
    PEER_TYPING_STARTED = "peer_typing_started"
    PEER_TYPING_STOPPED = "peer_typing_stopped"
    TYPING_STARTED = "typing_started"
    TYPING_STOPPED = "typing_stopped"
    READY = "ready"
    DISCONNECTED = "disconnected"


class TypingState(StrEnum):
    IDLE = "idle"
    TYPING = "typing"
