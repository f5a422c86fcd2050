from __future__ import annotations

from typing import Any, Callable, Protocol

from chat_sync.application.dto.credential import CredentialContext
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ChatId

ChannelHandler = Callable[[Any], None]


class RealtimeChannel(Protocol):
    @property
    def connected(self) -> bool: ...

    async def connect(self, credential: CredentialContext) -> None: ...

    def register(self, credential: CredentialContext) -> None: ...

    def join_scope(self, chat_id: ChatId) -> None: ...

    def on(self, kind: ChannelEvent, handler: ChannelHandler) -> None: ...

    def emit(self, kind: ChannelEvent, payload: Any) -> None: ...

    async def close(self) -> None: ...
