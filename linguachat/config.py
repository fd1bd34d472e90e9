"""Service configuration loaded from the environment."""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    env: Optional[str]
    commit_hash: Optional[str]
    host: str
    port: int
    database_url: str
    sql_debug: bool
    log_level: str
    llm_api_url: str
    llm_api_key: str
    llm_model: str
    translation_timeout_seconds: float
    companion_timeout_seconds: float
    send_timeout_seconds: float
    conversation_update_attempts: int
    link_preview_timeout_seconds: float

    @property
    def is_prod(self) -> bool:
        return self.env == "prod"


def _float_env(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got '{raw}'") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive")
    return value


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got '{raw}'") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive")
    return value


def load_settings() -> Settings:
    """Read settings from environment variables and the optional .env file."""
    load_dotenv()

    env = os.getenv("ENV")
    commit_hash = os.getenv("COMMIT_HASH")
    if not commit_hash and env == "prod":
        raise ConfigError("COMMIT_HASH is required for production environments")

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ConfigError("DATABASE_URL environment variable is required")

    return Settings(
        env=env,
        commit_hash=commit_hash,
        host=os.getenv("HOST", "0.0.0.0"),
        port=_int_env("PORT", "8000"),
        database_url=database_url,
        sql_debug=os.getenv("SQL_DEBUG", "false").lower() == "true",
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        llm_api_url=os.getenv("LLM_API_URL", "https://openrouter.ai/api/v1"),
        llm_api_key=os.getenv("LLM_API_KEY", ""),
        llm_model=os.getenv("LLM_MODEL", "google/gemini-2.0-flash-001"),
        translation_timeout_seconds=_float_env("TRANSLATION_TIMEOUT_SECONDS", "8"),
        companion_timeout_seconds=_float_env("COMPANION_TIMEOUT_SECONDS", "15"),
        send_timeout_seconds=_float_env("SEND_TIMEOUT_SECONDS", "20"),
        conversation_update_attempts=_int_env("CONVERSATION_UPDATE_ATTEMPTS", "3"),
        link_preview_timeout_seconds=_float_env("LINK_PREVIEW_TIMEOUT_SECONDS", "5"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
