"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .services.tts.delimiters import DEFAULT_DELIMITERS

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openrouter_api_key: SecretStr = Field(
        ...,
        validation_alias=AliasChoices("OPENROUTER_API_KEY", "openrouter_api_key"),
    )
    openrouter_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://openrouter.ai/api/v1"),
        validation_alias=AliasChoices(
            "OPENROUTER_BASE_URL", "base_url", "openrouter_base_url"
        ),
    )
    openrouter_app_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "OPENROUTER_APP_TITLE", "X_TITLE", "openrouter_app_name"
        ),
    )
    default_model: str = Field(
        default="openrouter/auto",
        validation_alias=AliasChoices("OPENROUTER_DEFAULT_MODEL", "default_model"),
    )
    system_prompt: Optional[str] = Field(
        default=(
            "You are a knowledgeable, helpful assistant. Answer accurately and in "
            "a friendly tone. When code helps, include clear code examples."
        ),
        validation_alias=AliasChoices("CHAT_SYSTEM_PROMPT", "system_prompt"),
    )
    temperature: float = Field(
        default=0.7,
        ge=0,
        le=2,
        validation_alias=AliasChoices("CHAT_TEMPERATURE", "temperature"),
    )
    request_timeout: float = Field(
        default=120.0,
        validation_alias=AliasChoices(
            "OPENROUTER_TIMEOUT", "timeout", "request_timeout"
        ),
        ge=1,
    )

    narration_enabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("NARRATION_ENABLED", "narration_enabled"),
    )
    speech_delimiters: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DELIMITERS),
        validation_alias=AliasChoices("SPEECH_DELIMITERS", "speech_delimiters"),
    )
    speech_rate: float = Field(
        default=1.8,
        gt=0,
        le=10,
        validation_alias=AliasChoices("SPEECH_RATE", "speech_rate"),
    )

    logging_settings_path: Path = Field(
        default_factory=lambda: Path("logging_settings.conf"),
        validation_alias=AliasChoices("LOGGING_SETTINGS_PATH", "logging_settings_path"),
    )
    log_dir: Path = Field(
        default_factory=lambda: Path("logs/sessions"),
        validation_alias=AliasChoices("LOG_DIR", "log_dir"),
    )

    @field_validator("speech_delimiters")
    @classmethod
    def _require_delimiters(cls, value: list[str]) -> list[str]:
        cleaned = [item for item in value if item]
        if not cleaned:
            raise ValueError("speech_delimiters must contain at least one entry")
        return cleaned


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["Settings", "get_settings"]
