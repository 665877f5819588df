from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    REDIS_URL: str | None = None
    REDIS_PASSWORD: str | None = None
    REDIS_SOCKET_TIMEOUT: float = 5.0
    ACTIVITY_LOG_LIMIT: int = 50
    BREAKER_FAIL_MAX: int = 5
    BREAKER_RESET_TIMEOUT: int = 60
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
