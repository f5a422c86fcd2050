from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from chat_sync.application.dto.credential import CredentialContext
from chat_sync.config import Settings, settings
from chat_sync.infrastructure.http.snapshot_client import HttpSnapshotClient
from chat_sync.infrastructure.http.timing import timing_hooks
from chat_sync.infrastructure.realtime.socketio_channel import SocketIORealtimeChannel
from chat_sync.services.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChatSession:
    store: SessionStore
    api: HttpSnapshotClient


def create_http_client(app_settings: Settings = settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=app_settings.API_BASE_URL,
        timeout=app_settings.HTTP_TIMEOUT_SECONDS,
        event_hooks=timing_hooks(),
    )


def create_channel(app_settings: Settings = settings) -> SocketIORealtimeChannel:
    return SocketIORealtimeChannel(
        app_settings.SOCKET_URL,
        socketio_path=app_settings.SOCKET_PATH,
        connect_timeout=app_settings.SOCKET_CONNECT_TIMEOUT_SECONDS,
    )


@asynccontextmanager
async def open_session(
    credential: CredentialContext,
    http: httpx.AsyncClient,
    app_settings: Settings = settings,
) -> AsyncIterator[ChatSession]:
    """Session lifecycle: connect and load chats on entry, tear down on exit."""
    api = HttpSnapshotClient(http)
    store = SessionStore(
        credential,
        api,
        create_channel(app_settings),
        typing_debounce_seconds=app_settings.typing_debounce_seconds,
        reconnect_base_delay=app_settings.RECONNECT_BASE_DELAY_SECONDS,
        reconnect_max_delay=app_settings.RECONNECT_MAX_DELAY_SECONDS,
    )
    try:
        await store.start()
        logger.info("Session started for user %s", store.self_id)
        yield ChatSession(store=store, api=api)
    finally:
        await store.close()
