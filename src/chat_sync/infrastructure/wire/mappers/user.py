from __future__ import annotations

from chat_sync.domain.entities.user import User
from chat_sync.domain.value_objects.ids import UserId
from chat_sync.infrastructure.wire.schemas import UserPayload


def payload_to_entity(payload: UserPayload | str) -> User:
    if isinstance(payload, str):
        return User(id=UserId(payload), name="")
    return User(id=UserId(payload.id), name=payload.name, email=payload.email)


def entity_to_payload(entity: User) -> UserPayload:
    return UserPayload(id=entity.id, name=entity.name, email=entity.email)
