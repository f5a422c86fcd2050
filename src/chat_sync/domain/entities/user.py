from __future__ import annotations

from dataclasses import dataclass

from chat_sync.domain.value_objects.ids import UserId


@dataclass(frozen=True, slots=True)
class User:
    id: UserId
    name: str
    email: str = ""
