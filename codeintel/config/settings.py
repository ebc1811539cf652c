"""Application configuration powered by ``pydantic-settings``."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COMPLETION_MAX_RESPONSE_TOKENS = 1024
DEFAULT_CHAT_MAX_RESPONSE_TOKENS = 8192


class StorageSettings(BaseSettings):
    """Where persisted preferences live and under which keys."""

    directory: Path = Field(
        default_factory=lambda: Path.home() / ".codeintel",
        description="Directory holding one JSON file per preference key",
    )
    templates_key: str = Field(
        default="promptTemplates", description="Key of the ordered template list"
    )
    overlays_key: str = Field(
        default="customConfigurationParameters",
        description="Key of the per-connection overlay map",
    )
    connections_key: str = Field(
        default="apiConnections", description="Key of the API connection registry"
    )

    model_config = SettingsConfigDict(env_prefix="CODEINTEL_STORAGE_", extra="ignore")


class LoggingSettings(BaseSettings):
    """Logging verbosity and prompt debugging switches."""

    level: str = Field(default="INFO", description="Root log level")
    debug_log_prompts: bool = Field(
        default=False, description="Log every rendered prompt at debug level"
    )

    model_config = SettingsConfigDict(env_prefix="CODEINTEL_LOGGING_", extra="ignore")


class RequestSettings(BaseSettings):
    """Defaults applied to request bodies when no overlay sets them."""

    completion_max_response_tokens: int = Field(
        default=DEFAULT_COMPLETION_MAX_RESPONSE_TOKENS,
        description="Token limit for code completion responses",
    )
    chat_max_response_tokens: int = Field(
        default=DEFAULT_CHAT_MAX_RESPONSE_TOKENS,
        description="Token limit for chat responses",
    )

    model_config = SettingsConfigDict(env_prefix="CODEINTEL_REQUESTS_", extra="ignore")

    @field_validator("completion_max_response_tokens")
    @classmethod
    def _completion_default(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_COMPLETION_MAX_RESPONSE_TOKENS

    @field_validator("chat_max_response_tokens")
    @classmethod
    def _chat_default(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_CHAT_MAX_RESPONSE_TOKENS


class Settings(BaseSettings):
    """Top-level application settings namespace."""

    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    requests: RequestSettings = Field(default_factory=RequestSettings)

    model_config = SettingsConfigDict(
        env_prefix="CODEINTEL_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance for application use."""

    return Settings()


__all__ = [
    "DEFAULT_CHAT_MAX_RESPONSE_TOKENS",
    "DEFAULT_COMPLETION_MAX_RESPONSE_TOKENS",
    "LoggingSettings",
    "RequestSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
