from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    CHAT_ORIGIN: str = "http://localhost:8000"
    CHAT_WS_PATH: str = "/ws/chat"

    RECONNECT_BACKOFF_MS: list[int] = [1000, 2000, 5000, 10000, 30000]
    HEARTBEAT_INTERVAL_MS: int = 25000
    TYPING_TIMEOUT_MS: int = 3000

    WS_HEARTBEAT_SECONDS: float = 30
    WS_OPEN_TIMEOUT_SECONDS: float = 10.0

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "chat.fanout"
    RELAY_FANOUT_ENABLED: bool = False

    CORS_ORIGINS: list[str] = ["*"]

    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
