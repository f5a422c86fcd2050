from __future__ import annotations

from chat_sync.application.dto.credential import CredentialContext
from chat_sync.application.ports.snapshot import AuthGateway


async def login(email: str, password: str, gateway: AuthGateway) -> CredentialContext:
    token = await gateway.login(email.strip(), password)
    return CredentialContext(token=token)


async def register(
    name: str,
    email: str,
    password: str,
    gateway: AuthGateway,
) -> CredentialContext:
    token = await gateway.register(name.strip(), email.strip(), password)
    return CredentialContext(token=token)
