"""Push channel over a single python-socketio client connection."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import socketio
from pydantic import ValidationError as SchemaError

from chat_sync.application.dto.credential import CredentialContext
from chat_sync.application.exceptions import ChannelConnectionError
from chat_sync.application.ports.channel import ChannelHandler
from chat_sync.domain.value_objects.enums import ChannelEvent
from chat_sync.domain.value_objects.ids import ChatId
from chat_sync.infrastructure.realtime import protocol

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], socketio.AsyncClient]


def _default_client() -> socketio.AsyncClient:
    # Reconnection belongs to the session, not the transport.
    return socketio.AsyncClient(reconnection=False, logger=False, engineio_logger=False)


class SocketIORealtimeChannel:
    """Implements application.ports.channel.RealtimeChannel.

    Owns at most one ``socketio.AsyncClient``. Events from a client that has
    since been replaced or closed are ignored.
    """

    def __init__(
        self,
        url: str,
        *,
        socketio_path: str = "/socket.io",
        connect_timeout: float = 10.0,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._socketio_path = socketio_path.strip("/") or "socket.io"
        self._connect_timeout = connect_timeout
        self._client_factory = client_factory or _default_client
        self._client: socketio.AsyncClient | None = None
        self._connected = False
        self._closed = False
        self._handlers: dict[ChannelEvent, list[ChannelHandler]] = {}
        self._joined: set[ChatId] = set()
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def connected(self) -> bool:
        return self._connected

    # ---- lifecycle ---------------------------------------------------------

    async def connect(self, credential: CredentialContext) -> None:
        await self._teardown()
        self._closed = False

        client = self._client_factory()
        self._bind(client)
        self._client = client
        try:
            await client.connect(
                self._url,
                transports=["websocket"],
                socketio_path=self._socketio_path,
                auth={"token": credential.token},
                wait_timeout=self._connect_timeout,
            )
        except (socketio.exceptions.ConnectionError, OSError) as exc:
            logger.warning("Realtime connect to %s failed: %s", self._url, exc)
            if self._client is client:
                self._client = None
            await _quiet_disconnect(client)
            raise ChannelConnectionError(str(exc)) from exc

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._teardown()
        logger.info("Realtime channel closed")

    async def _teardown(self) -> None:
        for task in self._pending:
            task.cancel()
        self._pending.clear()
        self._joined.clear()
        self._connected = False
        client, self._client = self._client, None
        if client is not None:
            await _quiet_disconnect(client)

    # ---- subscriptions -----------------------------------------------------

    def on(self, kind: ChannelEvent, handler: ChannelHandler) -> None:
        self._handlers.setdefault(kind, []).append(handler)

    def register(self, credential: CredentialContext) -> None:
        self._send(protocol.SETUP, {"token": credential.token})

    def join_scope(self, chat_id: ChatId) -> None:
        if chat_id in self._joined:
            return
        if not self._connected:
            logger.debug("Not connected, join of %s deferred to next connect", chat_id)
            return
        self._joined.add(chat_id)
        self._send(protocol.JOIN_CHAT, chat_id)

    def emit(self, kind: ChannelEvent, payload: Any) -> None:
        event = protocol.OUTBOUND.get(kind)
        if event is None:
            raise ValueError(f"{kind} cannot be emitted by the client")
        self._send(event, protocol.build_outbound(kind, payload))

    # ---- internals ---------------------------------------------------------

    def _bind(self, client: socketio.AsyncClient) -> None:
        async def on_connect() -> None:
            if client is not self._client:
                return
            self._connected = True
            self._joined.clear()
            logger.info("Realtime channel connected to %s", self._url)
            self._dispatch(ChannelEvent.READY, None)

        async def on_disconnect(*_args: Any) -> None:
            if client is not self._client or self._closed:
                return
            self._connected = False
            self._joined.clear()
            logger.warning("Realtime channel disconnected")
            self._dispatch(ChannelEvent.DISCONNECTED, None)

        async def on_connect_error(data: Any) -> None:
            logger.error("Realtime connect error: %s", data)

        client.on("connect", on_connect)
        client.on("disconnect", on_disconnect)
        client.on("connect_error", on_connect_error)
        for event in protocol.INBOUND:
            client.on(event, self._inbound_handler(client, event))

    def _inbound_handler(self, client: socketio.AsyncClient, event: str) -> Callable[..., Any]:
        kind = protocol.INBOUND[event]

        async def handler(*args: Any) -> None:
            if client is not self._client:
                return
            raw = args[0] if args else None
            try:
                payload = protocol.parse_inbound(kind, raw)
            except SchemaError:
                logger.warning("Dropping malformed %r event", event, exc_info=True)
                return
            self._dispatch(kind, payload)

        return handler

    def _dispatch(self, kind: ChannelEvent, payload: Any) -> None:
        for handler in list(self._handlers.get(kind, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception("Error in %s handler", kind)

    def _send(self, event: str, data: Any) -> None:
        client = self._client
        if client is None or not self._connected:
            logger.debug("Realtime channel not connected, dropping %r", event)
            return
        task = asyncio.get_running_loop().create_task(
            self._emit(client, event, data), name=f"realtime-emit-{event}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _emit(client: socketio.AsyncClient, event: str, data: Any) -> None:
        try:
            await client.emit(event, data)
        except Exception:
            logger.exception("Failed to emit %r", event)


async def _quiet_disconnect(client: socketio.AsyncClient) -> None:
    try:
        await client.disconnect()
    except Exception:
        logger.debug("Ignoring error while disconnecting socket", exc_info=True)
