from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import cached_property
from typing import Any

import jwt

from chat_sync.domain.value_objects.ids import UserId

logger = logging.getLogger(__name__)

_USER_ID_CLAIMS = ("userId", "sub", "id")


@dataclass(frozen=True)
class CredentialContext:
    """Opaque access token for the current session.

    The token is never verified here; the server does that. Claims are only
    decoded so the client can recognise its own user id and spot an expired
    token before spending a request on it.
    """

    token: str

    @cached_property
    def claims(self) -> dict[str, Any]:
        if not self.token:
            return {}
        try:
            return jwt.decode(
                self.token,
                options={"verify_signature": False, "verify_exp": False},
            )
        except jwt.PyJWTError:
            logger.debug("Credential is not a decodable JWT", exc_info=True)
            return {}

    @property
    def user_id(self) -> UserId | None:
        for key in _USER_ID_CLAIMS:
            value = self.claims.get(key)
            if value:
                return UserId(str(value))
        return None

    @property
    def expires_at(self) -> datetime | None:
        exp = self.claims.get("exp")
        if not isinstance(exp, (int, float)):
            return None
        return datetime.fromtimestamp(exp, tz=timezone.utc)

    def is_expired(self, now: datetime) -> bool:
        expires_at = self.expires_at
        return expires_at is not None and expires_at <= now

    @property
    def bearer(self) -> str:
        return f"Bearer {self.token}"
