"""Self and peer typing state for the active chat."""
from __future__ import annotations

import logging
from typing import Callable

from chat_sync.application.ports.channel import RealtimeChannel
from chat_sync.application.ports.clock import LoopScheduler, Scheduler, TimerHandle
from chat_sync.domain.value_objects.enums import ChannelEvent, TypingState
from chat_sync.domain.value_objects.ids import ChatId

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 3.0


class TypingCoordinator:
    """Debounced ``typing`` / ``stop typing`` emission plus the peer flag.

    Self-typing goes IDLE -> TYPING on the first keystroke and back to IDLE
    when the debounce timer fires uncancelled or a message is sent. Each
    keystroke cancels the pending timer and arms a new one, so at most one
    timer is ever pending. ``on_change`` is called when the timer, rather
    than a caller, moves self-typing back to IDLE.
    """

    def __init__(
        self,
        channel: RealtimeChannel,
        scheduler: Scheduler | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._channel = channel
        self._on_change = on_change
        self._scheduler = scheduler or LoopScheduler()
        self._debounce = debounce_seconds
        self._state = TypingState.IDLE
        self._typing_chat_id: ChatId | None = None
        self._timer: TimerHandle | None = None
        self._peer_typing = False

    @property
    def is_self_typing(self) -> bool:
        return self._state is TypingState.TYPING

    @property
    def peer_typing(self) -> bool:
        return self._peer_typing

    # ---- self typing -------------------------------------------------------

    def input_changed(self, chat_id: ChatId | None) -> None:
        if chat_id is None:
            return
        if self._state is TypingState.TYPING and self._typing_chat_id != chat_id:
            self._stop(self._typing_chat_id)
        if self._state is TypingState.IDLE:
            self._state = TypingState.TYPING
            self._typing_chat_id = chat_id
            self._channel.emit(ChannelEvent.TYPING_STARTED, chat_id)
        self._cancel_timer()
        self._timer = self._scheduler.call_later(self._debounce, self._on_quiet)

    def force_idle(self, chat_id: ChatId) -> None:
        """Stop typing now, emitting ``TYPING_STOPPED`` whatever the state."""
        self._cancel_timer()
        self._state = TypingState.IDLE
        self._typing_chat_id = None
        self._channel.emit(ChannelEvent.TYPING_STOPPED, chat_id)

    def chat_changed(self) -> None:
        """Leave the previous chat: stop self-typing there and drop the peer flag."""
        if self._state is TypingState.TYPING:
            self._stop(self._typing_chat_id)
        self._peer_typing = False

    def _on_quiet(self) -> None:
        self._timer = None
        if self._state is TypingState.TYPING:
            self._stop(self._typing_chat_id)
            if self._on_change is not None:
                self._on_change()

    def _stop(self, chat_id: ChatId | None) -> None:
        self._cancel_timer()
        self._state = TypingState.IDLE
        self._typing_chat_id = None
        if chat_id is not None:
            self._channel.emit(ChannelEvent.TYPING_STOPPED, chat_id)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # ---- peer typing -------------------------------------------------------

    def peer_signal(
        self, typing: bool, event_chat_id: ChatId | None, active_chat_id: ChatId | None,
    ) -> bool:
        """Apply a peer typing event; returns True if the flag changed.

        Events naming another chat are ignored. Events without a chat id
        apply to the active chat.
        """
        if active_chat_id is None:
            return False
        if event_chat_id is not None and event_chat_id != active_chat_id:
            logger.debug("Ignoring typing signal for background chat %s", event_chat_id)
            return False
        if self._peer_typing == typing:
            return False
        self._peer_typing = typing
        return True

    def reset(self) -> None:
        """Drop all state without emitting; used on session teardown."""
        self._cancel_timer()
        self._state = TypingState.IDLE
        self._typing_chat_id = None
        self._peer_typing = False
