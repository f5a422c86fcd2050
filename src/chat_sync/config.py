from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:5000/api"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    SOCKET_URL: str = "http://localhost:5000"
    SOCKET_PATH: str = "/socket.io"
    SOCKET_CONNECT_TIMEOUT_SECONDS: float = 10.0

    TYPING_DEBOUNCE_MS: int = 3000

    RECONNECT_BASE_DELAY_SECONDS: float = 1.0
    RECONNECT_MAX_DELAY_SECONDS: float = 30.0

    LOG_LEVEL: str = "INFO"

    CHAT_TOKEN: str | None = None
    CHAT_EMAIL: str | None = None
    CHAT_PASSWORD: str | None = None

    @property
    def typing_debounce_seconds(self) -> float:
        return self.TYPING_DEBOUNCE_MS / 1000.0

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
