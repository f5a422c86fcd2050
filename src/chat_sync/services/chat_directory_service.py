from __future__ import annotations

import logging
from typing import Sequence

from chat_sync.application.policies.validation import assert_group_request
from chat_sync.application.ports.snapshot import ChatDirectory
from chat_sync.domain.entities.chat import Chat
from chat_sync.domain.entities.user import User
from chat_sync.domain.value_objects.ids import UserId
from chat_sync.services.session_store import SessionStore

logger = logging.getLogger(__name__)


async def search_users(
    query: str,
    store: SessionStore,
    directory: ChatDirectory,
) -> list[User]:
    """Find users to chat with, leaving out the current user."""
    if not query.strip():
        return []
    users = await directory.search_users(query, store.credential)
    return [u for u in users if u.id != store.self_id]


async def start_direct_chat(
    user_id: UserId,
    store: SessionStore,
    directory: ChatDirectory,
) -> Chat:
    """Open (or re-open) a 1:1 chat and put it at the top of the list."""
    chat = await directory.create_chat(user_id, store.credential)
    store.add_chat(chat)
    logger.info("Opened chat %s with user %s", chat.id, user_id)
    return chat


async def create_group_chat(
    name: str,
    members: Sequence[User],
    store: SessionStore,
    directory: ChatDirectory,
) -> Chat:
    """Create a group chat.

    Rejected locally, without a request, when the name is blank or fewer
    than two distinct members are given.
    """
    user_ids = assert_group_request(name, [m.id for m in members])
    chat = await directory.create_group_chat(name, user_ids, store.credential)
    store.add_chat(chat)
    logger.info("Created group chat %s with %d members", chat.id, len(user_ids))
    return chat
