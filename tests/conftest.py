"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import jwt
import pytest

from chat_sync.application.dto.credential import CredentialContext
from chat_sync.application.exceptions import ChannelConnectionError
from chat_sync.application.policies.validation import assert_message_content
from chat_sync.domain.entities.chat import Chat
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import User
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ChatId, MessageId, UserId
from chat_sync.services.session_store import SessionStore

SELF_ID = UserId("u-self")
PEER_ID = UserId("u-peer")

_ids = itertools.count(1)


def make_token(user_id: str = SELF_ID, *, expires_in: timedelta | None = timedelta(hours=1)) -> str:
    claims: dict[str, Any] = {"userId": user_id}
    if expires_in is not None:
        claims["exp"] = datetime.now(timezone.utc) + expires_in
    return jwt.encode(claims, "test-secret", algorithm="HS256")


def make_user(user_id: str = PEER_ID, name: str = "Peer") -> User:
    return User(id=UserId(user_id), name=name, email=f"{user_id}@example.com")


def make_chat(
    chat_id: str = "A",
    *,
    is_group: bool = False,
    name: str = "",
    users: tuple[User, ...] | None = None,
) -> Chat:
    return Chat(
        id=ChatId(chat_id),
        is_group=is_group,
        name=name,
        users=users if users is not None else (make_user(SELF_ID, "Me"), make_user()),
    )


def make_message(
    chat_id: str = "A",
    content: str = "hello",
    *,
    message_id: str | None = None,
    sender: User | None = None,
) -> Message:
    return Message(
        id=MessageId(message_id or f"m-{next(_ids)}"),
        chat_id=ChatId(chat_id),
        sender=sender or make_user(),
        content=content,
        created_at=datetime.now(timezone.utc),
    )


@dataclass
class FakeSnapshotClient:
    """In-memory SnapshotClient; ``gates`` and ``post_gate`` hold a call in flight."""

    chats: list[Chat] = field(default_factory=list)
    histories: dict[str, list[Message]] = field(default_factory=dict)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    post_error: Exception | None = None
    post_gate: asyncio.Event | None = None
    calls: list[tuple[str, Any]] = field(default_factory=list)
    posted: list[Message] = field(default_factory=list)

    async def fetch_chat_list(self, credential: CredentialContext) -> list[Chat]:
        self.calls.append(("fetch_chat_list", None))
        return list(self.chats)

    async def fetch_message_history(self, chat_id: ChatId, credential: CredentialContext) -> list[Message]:
        self.calls.append(("fetch_message_history", chat_id))
        gate = self.gates.get(chat_id)
        if gate is not None:
            await gate.wait()
        return list(self.histories.get(chat_id, []))

    async def post_message(self, chat_id: ChatId, content: str, credential: CredentialContext) -> Message:
        self.calls.append(("post_message", (chat_id, content)))
        assert_message_content(content)
        if self.post_gate is not None:
            await self.post_gate.wait()
        if self.post_error is not None:
            raise self.post_error
        message = make_message(
            chat_id,
            content,
            message_id=f"srv-{len(self.posted) + 1}",
            sender=make_user(credential.user_id or SELF_ID, "Me"),
        )
        self.posted.append(message)
        return message

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


@dataclass
class FakeRealtimeChannel:
    """In-memory RealtimeChannel recording emissions; ``deliver`` simulates a push."""

    fail_connects: int = 0
    emitted: list[tuple[ChannelEvent, Any]] = field(default_factory=list)
    joined: list[ChatId] = field(default_factory=list)
    registered: list[str] = field(default_factory=list)
    connect_calls: int = 0
    close_calls: int = 0
    _handlers: dict[ChannelEvent, list[Callable[[Any], None]]] = field(default_factory=dict)
    _connected: bool = False
    _scopes: set[ChatId] = field(default_factory=set)

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self, credential: CredentialContext) -> None:
        self.connect_calls += 1
        self._connected = False
        self._scopes.clear()
        if self.fail_connects > 0:
            self.fail_connects -= 1
            raise ChannelConnectionError("refused")
        self._connected = True
        self.deliver(ChannelEvent.READY, None)

    def register(self, credential: CredentialContext) -> None:
        self.registered.append(credential.token)

    def join_scope(self, chat_id: ChatId) -> None:
        if chat_id in self._scopes or not self._connected:
            return
        self._scopes.add(chat_id)
        self.joined.append(chat_id)

    def on(self, kind: ChannelEvent, handler: Callable[[Any], None]) -> None:
        self._handlers.setdefault(kind, []).append(handler)

    def emit(self, kind: ChannelEvent, payload: Any) -> None:
        self.emitted.append((kind, payload))

    async def close(self) -> None:
        self.close_calls += 1
        self._connected = False

    def deliver(self, kind: ChannelEvent, payload: Any) -> None:
        for handler in self._handlers.get(kind, []):
            handler(payload)

    def drop(self) -> None:
        self._connected = False
        self.deliver(ChannelEvent.DISCONNECTED, None)

    def kinds(self) -> list[ChannelEvent]:
        return [kind for kind, _ in self.emitted]


@dataclass
class _Timer:
    due: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Scheduler driven by ``advance`` instead of the event loop."""

    now: float = 0.0
    timers: list[_Timer] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted(
                (t for t in self.timers if not t.cancelled and t.due <= target),
                key=lambda t: t.due,
            )
            if not due:
                break
            timer = due[0]
            self.timers.remove(timer)
            self.now = timer.due
            timer.callback()
        self.now = target

    @property
    def pending(self) -> list[_Timer]:
        return [t for t in self.timers if not t.cancelled]


@pytest.fixture
def credential() -> CredentialContext:
    return CredentialContext(token=make_token())


@pytest.fixture
def snapshots() -> FakeSnapshotClient:
    return FakeSnapshotClient(chats=[make_chat("A"), make_chat("B")])


@pytest.fixture
def channel() -> FakeRealtimeChannel:
    return FakeRealtimeChannel()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store(credential, snapshots, channel, scheduler) -> SessionStore:
    return SessionStore(
        credential,
        snapshots,
        channel,
        scheduler=scheduler,
        typing_debounce_seconds=3.0,
        reconnect_base_delay=0.01,
        reconnect_max_delay=0.02,
    )
