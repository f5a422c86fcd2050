"""REST snapshot client backed by httpx."""
from __future__ import annotations

import json
import logging
from typing import Any, Sequence

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from chat_sync.application.dto.credential import CredentialContext
from chat_sync.application.exceptions import AuthError, NetworkError, ValidationError
from chat_sync.application.policies.validation import (
    assert_credential,
    assert_group_request,
    assert_message_content,
    assert_required,
)
from chat_sync.application.ports.clock import Clock, SystemClock
from chat_sync.domain.entities.chat import Chat
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import User
from chat_sync.domain.value_objects.ids import ChatId, UserId
from chat_sync.infrastructure.wire.mappers import chat as chat_mapper
from chat_sync.infrastructure.wire.mappers import message as message_mapper
from chat_sync.infrastructure.wire.mappers import user as user_mapper
from chat_sync.infrastructure.wire.schemas import (
    ChatPayload,
    MessagePayload,
    TokenPayload,
    UserPayload,
)

logger = logging.getLogger(__name__)

_CHATS = TypeAdapter(list[ChatPayload])
_MESSAGES = TypeAdapter(list[MessagePayload])
_USERS = TypeAdapter(list[UserPayload])
_CHAT = TypeAdapter(ChatPayload)
_MESSAGE = TypeAdapter(MessagePayload)
_TOKEN = TypeAdapter(TokenPayload)


class HttpSnapshotClient:
    """Implements application.ports.snapshot.SnapshotClient, ChatDirectory and AuthGateway.

    Holds no state beyond the shared ``httpx.AsyncClient``, whose ``base_url``
    points at the REST API root.
    """

    def __init__(self, http: httpx.AsyncClient, clock: Clock | None = None) -> None:
        self._http = http
        self._clock = clock or SystemClock()

    # ---- snapshots ---------------------------------------------------------

    async def fetch_chat_list(self, credential: CredentialContext) -> list[Chat]:
        data = await self._request("GET", "/chats", credential)
        return [chat_mapper.payload_to_entity(p) for p in _parse(_CHATS, data, "chat list")]

    async def fetch_message_history(
        self, chat_id: ChatId, credential: CredentialContext,
    ) -> list[Message]:
        data = await self._request("GET", f"/messages/{chat_id}", credential)
        return [message_mapper.payload_to_entity(p) for p in _parse(_MESSAGES, data, "message history")]

    async def post_message(
        self, chat_id: ChatId, content: str, credential: CredentialContext,
    ) -> Message:
        assert_message_content(content)
        data = await self._request(
            "POST", "/messages", credential, body={"chatId": chat_id, "content": content},
        )
        payload = _parse(_MESSAGE, data, "message")
        return message_mapper.payload_to_entity(payload)

    # ---- directory ---------------------------------------------------------

    async def search_users(self, query: str, credential: CredentialContext) -> list[User]:
        if not query.strip():
            return []
        data = await self._request("GET", "/users/search", credential, params={"q": query.strip()})
        return [user_mapper.payload_to_entity(p) for p in _parse(_USERS, data, "user list")]

    async def create_chat(self, user_id: UserId, credential: CredentialContext) -> Chat:
        assert_required(user_id=user_id)
        data = await self._request("POST", "/chats", credential, body={"userId": user_id})
        return chat_mapper.payload_to_entity(_parse(_CHAT, data, "chat"))

    async def create_group_chat(
        self, name: str, user_ids: Sequence[UserId], credential: CredentialContext,
    ) -> Chat:
        members = assert_group_request(name, user_ids)
        # The server expects the member list as a JSON-encoded string.
        body = {"name": name.strip(), "users": json.dumps(members)}
        data = await self._request("POST", "/chats/group", credential, body=body)
        return chat_mapper.payload_to_entity(_parse(_CHAT, data, "group chat"))

    # ---- auth --------------------------------------------------------------

    async def login(self, email: str, password: str) -> str:
        assert_required(email=email, password=password)
        data = await self._request(
            "POST",
            "/auth/login",
            None,
            public=True,
            body={"email": email, "password": password},
        )
        return _parse(_TOKEN, data, "login response").token

    async def register(self, name: str, email: str, password: str) -> str:
        assert_required(name=name, email=email, password=password)
        data = await self._request(
            "POST",
            "/auth/register",
            None,
            public=True,
            body={"name": name, "email": email, "password": password},
        )
        return _parse(_TOKEN, data, "register response").token

    # ---- transport ---------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        credential: CredentialContext | None,
        *,
        body: Any = None,
        params: dict[str, Any] | None = None,
        public: bool = False,
    ) -> Any:
        headers: dict[str, str] = {}
        if not public:
            headers["Authorization"] = assert_credential(credential, self._clock.now()).bearer

        try:
            resp = await self._http.request(method, path, headers=headers, json=body, params=params)
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {path}: {exc}") from exc

        if resp.status_code in (401, 403):
            raise AuthError(_detail(resp))
        if resp.status_code in (400, 422):
            raise ValidationError(_detail(resp))
        if resp.is_error:
            raise NetworkError(f"{method} {path} failed with {resp.status_code}")

        try:
            return resp.json()
        except ValueError as exc:
            raise NetworkError(f"{method} {path} returned a non-JSON body") from exc


def _parse(adapter: TypeAdapter[Any], data: Any, what: str) -> Any:
    try:
        return adapter.validate_python(data)
    except SchemaError as exc:
        logger.warning("Malformed %s payload: %s", what, exc)
        raise NetworkError(f"Malformed {what} payload") from exc


def _detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or resp.reason_phrase)
    return resp.reason_phrase
