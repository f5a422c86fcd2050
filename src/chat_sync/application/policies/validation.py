from __future__ import annotations

from datetime import datetime
from typing import Sequence

from chat_sync.application.dto.credential import CredentialContext
from chat_sync.application.exceptions import AuthError, ValidationError
from chat_sync.domain.value_objects.ids import UserId

MIN_GROUP_MEMBERS = 2


def assert_credential(credential: CredentialContext | None, now: datetime) -> CredentialContext:
    """Raise if the credential is absent or already expired."""
    if credential is None or not credential.token.strip():
        raise AuthError("Not authenticated")
    if credential.is_expired(now):
        raise AuthError("Credential expired")
    return credential


def assert_message_content(content: str) -> str:
    if not content or not content.strip():
        raise ValidationError("Message content is empty")
    return content


def assert_group_request(name: str, user_ids: Sequence[UserId]) -> list[UserId]:
    unique = list(dict.fromkeys(user_ids))
    if not name.strip() or len(unique) < MIN_GROUP_MEMBERS:
        raise ValidationError(
            f"Group needs a name and at least {MIN_GROUP_MEMBERS} users",
        )
    return unique


def assert_required(**fields: str) -> None:
    missing = [key for key, value in fields.items() if not value or not value.strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
