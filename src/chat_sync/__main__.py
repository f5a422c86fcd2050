"""Entrypoint: python -m chat_sync [--chat NAME]

Lines typed on stdin are sent to the selected chat.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from chat_sync.app import create_http_client, open_session
from chat_sync.application.dto.credential import CredentialContext
from chat_sync.application.dto.session import SessionState
from chat_sync.application.exceptions import AppError, AuthError
from chat_sync.config import Settings, settings
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.ids import UserId
from chat_sync.infrastructure.http.snapshot_client import HttpSnapshotClient
from chat_sync.services import auth_service

logger = logging.getLogger("chat_sync")


class _ConsoleView:
    """Prints buffer additions and unread changes as the state moves."""

    def __init__(self, self_id: UserId | None) -> None:
        self._self_id = self_id
        self._seen: set[str] = set()
        self._unread: dict[str, int] = {}

    def __call__(self, state: SessionState) -> None:
        for message in state.message_buffer:
            if message.pending or message.id in self._seen:
                continue
            self._seen.add(message.id)
            print(self._format(message))
        for chat_id, count in state.unread_by_chat.items():
            if count > self._unread.get(chat_id, 0):
                print(f"* {count} unread in chat {chat_id}")
        self._unread = dict(state.unread_by_chat)

    def _format(self, message: Message) -> str:
        who = "(you)" if message.sender.id == self._self_id else message.sender.name or message.sender.id
        return f"[{message.created_at:%H:%M}] {who}: {message.content}"


async def _resolve_credential(api: HttpSnapshotClient, app_settings: Settings) -> CredentialContext:
    if app_settings.CHAT_TOKEN:
        return CredentialContext(token=app_settings.CHAT_TOKEN)
    if app_settings.CHAT_EMAIL and app_settings.CHAT_PASSWORD:
        return await auth_service.login(app_settings.CHAT_EMAIL, app_settings.CHAT_PASSWORD, api)
    raise AuthError("Set CHAT_TOKEN, or CHAT_EMAIL and CHAT_PASSWORD")


async def run(chat_name: str | None, app_settings: Settings = settings) -> None:
    async with create_http_client(app_settings) as http:
        credential = await _resolve_credential(HttpSnapshotClient(http), app_settings)
        async with open_session(credential, http, app_settings) as session:
            store = session.store
            for chat in store.state.chats:
                logger.info("chat %s: %s", chat.id, chat.display_name(store.self_id))

            store.subscribe(_ConsoleView(store.self_id))
            if chat_name:
                chat = next(
                    (c for c in store.state.chats
                     if chat_name in (c.id, c.display_name(store.self_id))),
                    None,
                )
                if chat is None:
                    logger.error("No chat named %r", chat_name)
                    return
                await store.select_chat(chat)

            while True:
                line = await asyncio.to_thread(sys.stdin.readline)
                if not line:
                    break
                store.update_draft(line.rstrip("\n"))
                try:
                    await store.send_message()
                except AppError as exc:
                    logger.error("Send failed: %s", exc.detail)


def main() -> None:
    parser = argparse.ArgumentParser(prog="chat_sync")
    parser.add_argument("--chat", help="chat id or display name to open")
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(args.chat))
    except AuthError as exc:
        logger.error("Authentication required: %s", exc.detail)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
