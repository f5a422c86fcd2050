"""The session's single point of state mutation.

Snapshot results (pull) and realtime events (push) both land here. Channel
handlers are bound methods registered once, so they always observe the
current active chat rather than the one active when they were registered.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace
from typing import Callable

from chat_sync.application.dto.credential import CredentialContext
from chat_sync.application.dto.events import DeliveredMessage
from chat_sync.application.dto.session import SessionState
from chat_sync.application.exceptions import ChannelConnectionError
from chat_sync.application.ports.channel import RealtimeChannel
from chat_sync.application.ports.clock import Clock, Scheduler, SystemClock
from chat_sync.application.ports.snapshot import SnapshotClient
from chat_sync.domain.entities.chat import Chat
from chat_sync.domain.entities.message import Message
from chat_sync.domain.entities.user import User
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ChatId, MessageId, UserId
from chat_sync.services.typing_coordinator import DEFAULT_DEBOUNCE_SECONDS, TypingCoordinator
from chat_sync.services.unread_tracker import UnreadTracker

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState], None]

BASE_RECONNECT_DELAY_SECONDS = 1.0
MAX_RECONNECT_DELAY_SECONDS = 30.0


def _calc_backoff(attempt: int, base: float, maximum: float) -> float:
    return min(base * (2 ** attempt), maximum)


class SessionStore:
    """Holds chats, the active chat's message buffer, unread counters and typing flags."""

    def __init__(
        self,
        credential: CredentialContext,
        snapshots: SnapshotClient,
        channel: RealtimeChannel,
        *,
        scheduler: Scheduler | None = None,
        clock: Clock | None = None,
        typing_debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        reconnect_base_delay: float = BASE_RECONNECT_DELAY_SECONDS,
        reconnect_max_delay: float = MAX_RECONNECT_DELAY_SECONDS,
    ) -> None:
        self._credential = credential
        self._snapshots = snapshots
        self._channel = channel
        self._clock = clock or SystemClock()
        self._reconnect_base_delay = reconnect_base_delay
        self._reconnect_max_delay = reconnect_max_delay

        self._chats: list[Chat] = []
        self._active_chat_id: ChatId | None = None
        self._buffer: list[Message] = []
        self._buffer_ids: set[MessageId] = set()
        self._draft = ""
        self._selection_seq = 0

        self._unread = UnreadTracker()
        self._typing = TypingCoordinator(
            channel, scheduler, typing_debounce_seconds, on_change=self._notify,
        )

        self._listeners: list[StateListener] = []
        self._reconnect_task: asyncio.Task[None] | None = None
        self._closed = False

        channel.on(ChannelEvent.READY, self._on_ready)
        channel.on(ChannelEvent.DISCONNECTED, self._on_disconnected)
        channel.on(ChannelEvent.MESSAGE_DELIVERED, self.receive_message)
        channel.on(ChannelEvent.PEER_TYPING_STARTED, self._on_peer_typing_started)
        channel.on(ChannelEvent.PEER_TYPING_STOPPED, self._on_peer_typing_stopped)

    # ---- read side ---------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return SessionState(
            chats=tuple(self._chats),
            active_chat_id=self._active_chat_id,
            message_buffer=tuple(self._buffer),
            unread_by_chat=self._unread.snapshot(),
            typing_peer=self._typing.peer_typing,
            is_self_typing=self._typing.is_self_typing,
            draft=self._draft,
            connected=self._channel.connected,
        )

    @property
    def credential(self) -> CredentialContext:
        return self._credential

    @property
    def self_id(self) -> UserId | None:
        return self._credential.user_id

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh state after every mutation."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---- lifecycle ---------------------------------------------------------

    async def start(self) -> list[Chat]:
        """Connect the channel, then load the chat list.

        A channel that cannot connect does not fail the session; it is retried
        in the background. Snapshot errors propagate.
        """
        try:
            await self._channel.connect(self._credential)
        except ChannelConnectionError as exc:
            logger.warning("Realtime channel unavailable (%s), retrying in background", exc.detail)
            self._schedule_reconnect()
        return await self.refresh_chats()

    async def refresh_chats(self) -> list[Chat]:
        chats = await self._snapshots.fetch_chat_list(self._credential)
        self._chats = list(chats)
        logger.info("Loaded %d chats", len(self._chats))
        self._notify()
        return list(self._chats)

    async def close(self) -> None:
        already_closed, self._closed = self._closed, True
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._typing.reset()
        self._unread.clear()
        await self._channel.close()
        if not already_closed:
            logger.info("Session closed")

    # ---- user actions ------------------------------------------------------

    async def select_chat(self, chat: Chat) -> None:
        """Make ``chat`` active and load its history.

        A history result that resolves after another selection has been made
        is discarded.
        """
        self._typing.chat_changed()
        self._selection_seq += 1
        seq = self._selection_seq

        self._active_chat_id = chat.id
        self._buffer = []
        self._buffer_ids = set()
        for held in self._unread.take(chat.id):
            self._append(held)
        self._unread.reset(chat.id)
        self._channel.join_scope(chat.id)
        self._notify()

        history = await self._snapshots.fetch_message_history(chat.id, self._credential)
        if seq != self._selection_seq:
            logger.debug("Discarding stale history for chat %s", chat.id)
            return
        self._merge_history(history)
        self._notify()

    def update_draft(self, text: str) -> None:
        self._draft = text
        self._typing.input_changed(self._active_chat_id)
        self._notify()

    async def send_message(self, content: str | None = None) -> Message | None:
        """Post ``content`` (the draft when omitted) to the active chat.

        Returns the server's message, or None when there was nothing to send.
        """
        text = self._draft if content is None else content
        chat_id = self._active_chat_id
        if chat_id is None or not text.strip():
            return None

        placeholder = self._placeholder(chat_id, text)
        self._append(placeholder)
        self._notify()
        try:
            message = await self._snapshots.post_message(chat_id, text, self._credential)
        except BaseException:
            self._discard(placeholder.id)
            self._notify()
            raise

        if self._swap(placeholder.id, message):
            self._touch_latest(message)
        else:
            self.receive_message(message)
        self._draft = ""
        self._channel.emit(
            ChannelEvent.MESSAGE_DELIVERED,
            DeliveredMessage(message=message, chat=self._find_chat(message.chat_id)),
        )
        self._typing.force_idle(chat_id)
        self._notify()
        return message

    def add_chat(self, chat: Chat) -> None:
        """Put a newly created (or re-opened) chat at the top of the list."""
        self._chats = [chat, *(c for c in self._chats if c.id != chat.id)]
        self._notify()

    # ---- inbound -----------------------------------------------------------

    def receive_message(self, message: Message) -> None:
        """Single dispatch point for every inbound message."""
        if message.chat_id == self._active_chat_id:
            if message.id in self._buffer_ids:
                return
            self._append(message)
        elif message.sender.id == self.self_id:
            logger.debug("Own message %s for background chat %s", message.id, message.chat_id)
        else:
            if self._unread.is_held(message):
                return
            count = self._unread.increment(message)
            logger.debug("Unread in chat %s: %d", message.chat_id, count)
        self._touch_latest(message)
        self._notify()

    def _on_ready(self, _payload: object) -> None:
        self._channel.register(self._credential)
        if self._active_chat_id is not None:
            self._channel.join_scope(self._active_chat_id)
        self._notify()

    def _on_disconnected(self, _payload: object) -> None:
        self._notify()
        self._schedule_reconnect()

    def _on_peer_typing_started(self, chat_id: ChatId | None) -> None:
        if self._typing.peer_signal(True, chat_id, self._active_chat_id):
            self._notify()

    def _on_peer_typing_stopped(self, chat_id: ChatId | None) -> None:
        if self._typing.peer_signal(False, chat_id, self._active_chat_id):
            self._notify()

    # ---- reconnect ---------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        if self._closed:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect_loop(), name="session-reconnect",
        )

    async def _reconnect_loop(self) -> None:
        attempt = 0
        while not self._closed:
            delay = _calc_backoff(attempt, self._reconnect_base_delay, self._reconnect_max_delay)
            logger.info("Reconnecting realtime channel in %.1fs (attempt %d)", delay, attempt + 1)
            await asyncio.sleep(delay)
            try:
                await self._channel.connect(self._credential)
            except ChannelConnectionError as exc:
                logger.warning("Reconnect attempt %d failed: %s", attempt + 1, exc.detail)
            else:
                if self._channel.connected:
                    return
            attempt += 1

    # ---- buffer helpers ----------------------------------------------------

    def _append(self, message: Message) -> None:
        self._buffer.append(message)
        self._buffer_ids.add(message.id)

    def _merge_history(self, history: list[Message]) -> None:
        active = self._active_chat_id
        ordered = [m for m in history if m.chat_id == active]
        history_ids = {m.id for m in ordered}
        live = [m for m in self._buffer if m.id not in history_ids]
        self._buffer = [*ordered, *live]
        self._buffer_ids = history_ids | {m.id for m in live}

    def _swap(self, placeholder_id: MessageId, message: Message) -> bool:
        for index, existing in enumerate(self._buffer):
            if existing.id == placeholder_id:
                self._buffer_ids.discard(placeholder_id)
                if message.id in self._buffer_ids:
                    del self._buffer[index]
                else:
                    self._buffer[index] = message
                    self._buffer_ids.add(message.id)
                return True
        return False

    def _discard(self, message_id: MessageId) -> None:
        self._buffer = [m for m in self._buffer if m.id != message_id]
        self._buffer_ids.discard(message_id)

    def _placeholder(self, chat_id: ChatId, text: str) -> Message:
        return Message(
            id=MessageId(f"local-{uuid.uuid4().hex}"),
            chat_id=chat_id,
            sender=User(id=self.self_id or UserId(""), name=""),
            content=text,
            created_at=self._clock.now(),
            pending=True,
        )

    def _find_chat(self, chat_id: ChatId) -> Chat | None:
        return next((c for c in self._chats if c.id == chat_id), None)

    def _touch_latest(self, message: Message) -> None:
        self._chats = [
            replace(c, latest_message=message) if c.id == message.chat_id else c
            for c in self._chats
        ]

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session state listener failed")
