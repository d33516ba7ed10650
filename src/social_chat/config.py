from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"

    PRESENCE_BACKEND: Literal["memory", "redis"] = "memory"
    PRESENCE_KEY_PREFIX: str = "chat:presence"

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    # AES-256 key, exactly 32 bytes once UTF-8 encoded
    CHAT_ENCRYPTION_KEY: str

    CORS_ORIGINS: list[str] = ["*"]

    WS_HEARTBEAT_SECONDS: int = 30

    HISTORY_DEFAULT_LIMIT: int = 20
    HISTORY_MAX_LIMIT: int = 100

    LOG_LEVEL: str = "INFO"

    @field_validator("CHAT_ENCRYPTION_KEY")
    @classmethod
    def _check_key_length(cls, value: str) -> str:
        if len(value.encode("utf-8")) != 32:
            raise ValueError("CHAT_ENCRYPTION_KEY must be exactly 32 bytes")
        return value

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
