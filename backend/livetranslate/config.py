from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Relay server settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True)

    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(3001, alias="PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # CORS: only the frontend origin may talk to the relay
    frontend_url: str = Field("http://localhost:5173", alias="FRONTEND_URL")

    # Translation backend
    translation_provider: str = Field("openai", alias="TRANSLATION_PROVIDER")  # openai|mock
    openai_api_key: str = Field("", alias="OPENAI_API_KEY")
    openai_api_url: str = Field("https://api.openai.com/v1/chat/completions", alias="OPENAI_API_URL")
    openai_translation_model: str = Field("gpt-4o-mini", alias="OPENAI_TRANSLATION_MODEL")
    openai_temperature: float = Field(0.2, alias="OPENAI_TEMPERATURE")
    translation_timeout_ms: int = Field(10000, alias="TRANSLATION_TIMEOUT_MS")
    mock_translation_delay_ms: int = Field(500, alias="MOCK_TRANSLATION_DELAY_MS")

    @field_validator("translation_provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("openai", "mock"):
            raise ValueError(f"Unknown translation provider: {value}")
        return value

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.frontend_url.split(",") if origin.strip()]


class ClientSettings(BaseSettings):
    """Client-side channel settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True)

    socket_url: str = Field("http://localhost:3001", alias="SOCKET_URL")
    reconnection_delay_ms: int = Field(1000, alias="RECONNECTION_DELAY_MS")
    reconnection_attempts: int = Field(5, alias="RECONNECTION_ATTEMPTS")
    log_level: str = Field("WARNING", alias="LOG_LEVEL")


settings = Settings()
