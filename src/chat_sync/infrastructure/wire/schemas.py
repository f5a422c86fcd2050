"""Pydantic models for REST responses and push-event payloads."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

_WIRE = ConfigDict(populate_by_name=True, extra="ignore")


class UserPayload(BaseModel):
    id: str = Field(alias="_id")
    name: str = ""
    email: str = ""

    model_config = _WIRE


class ChatPayload(BaseModel):
    id: str = Field(alias="_id")
    is_group: bool = Field(default=False, alias="isGroupChat")
    name: str = Field(default="", alias="chatName")
    users: list[UserPayload] = []
    # Either a populated message or the bare id the server did not populate.
    latest_message: MessagePayload | str | None = Field(default=None, alias="latestMessage")

    model_config = _WIRE


class MessagePayload(BaseModel):
    id: str = Field(alias="_id")
    chat: ChatPayload | str
    sender: UserPayload | str
    content: str = ""
    created_at: datetime = Field(alias="createdAt")

    model_config = _WIRE

    @property
    def chat_id(self) -> str:
        return self.chat if isinstance(self.chat, str) else self.chat.id


class TokenPayload(BaseModel):
    token: str

    model_config = _WIRE


ChatPayload.model_rebuild()
