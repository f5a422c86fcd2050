from __future__ import annotations

from typing import Protocol, Sequence

from chat_sync.application.dto.credential import CredentialContext
from chat_sync.domain.entities.chat import Chat
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import User
from chat_sync.domain.value_objects.ids import ChatId, UserId


class SnapshotClient(Protocol):
    async def fetch_chat_list(self, credential: CredentialContext) -> list[Chat]: ...

    async def fetch_message_history(
        self, chat_id: ChatId, credential: CredentialContext,
    ) -> list[Message]: ...

    async def post_message(
        self, chat_id: ChatId, content: str, credential: CredentialContext,
    ) -> Message: ...


class ChatDirectory(Protocol):
    async def search_users(self, query: str, credential: CredentialContext) -> list[User]: ...

    async def create_chat(self, user_id: UserId, credential: CredentialContext) -> Chat: ...

    async def create_group_chat(
        self, name: str, user_ids: Sequence[UserId], credential: CredentialContext,
    ) -> Chat: ...


class AuthGateway(Protocol):
    async def login(self, email: str, password: str) -> str: ...

    async def register(self, name: str, email: str, password: str) -> str: ...
