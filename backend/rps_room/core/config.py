"""Application configuration.

Uses Pydantic BaseSettings for declarative environment variable binding.
All game timing windows are expressed in seconds.
"""
import logging
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

__all__ = ["Settings", "settings", "ENV_FILE_PATH", "ENV_FILE_LOADED"]

# Resolved .env path used at startup
ENV_FILE_PATH: Optional[Path] = None
ENV_FILE_LOADED: bool = False


def _find_env_file() -> Optional[Path]:
    """Find .env file from multiple possible locations."""
    global ENV_FILE_PATH, ENV_FILE_LOADED
    current_file = Path(__file__).resolve()
    possible_paths = [
        current_file.parent.parent.parent / '.env',
        current_file.parent.parent.parent.parent / '.env',
        Path.cwd() / '.env',
    ]

    for env_path in possible_paths:
        if env_path.exists():
            ENV_FILE_PATH = env_path
            ENV_FILE_LOADED = True
            logger.info(f"Found .env at: {env_path}")
            return env_path

    logger.debug("No .env file found - using environment variables and defaults")
    return None


_env_path = _find_env_file()
if _env_path:
    load_dotenv(dotenv_path=_env_path, override=False)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Game timing ---
    GAME_START_TIME_SECOND: int = 60
    GAME_PREPARATION_TIME_SECOND: int = 120
    # One consider window for submission checks and round expiry alike
    GAME_CONSIDER_TIME_SECOND: int = 20
    POLL_INTERVAL_SECOND: float = 5.0

    # --- Shared store ---
    STORE_BACKEND: str = "memory"
    REDIS_URL: str = ""
    REDIS_KEY_PREFIX: str = "rps:"
    LOCK_TTL_SECOND: int = 30
    LOCK_ACQUIRE_TIMEOUT_SECOND: float = 10.0

    # --- Application ---
    LANGUAGE: str = "en"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: Any = "*"  # str from env, overwritten to list[str] by validator

    @field_validator(
        "GAME_START_TIME_SECOND",
        "GAME_PREPARATION_TIME_SECOND",
        "GAME_CONSIDER_TIME_SECOND",
        "POLL_INTERVAL_SECOND",
    )
    @classmethod
    def _positive_window(cls, value):
        if value <= 0:
            raise ValueError("time windows must be positive")
        return value

    @field_validator("STORE_BACKEND")
    @classmethod
    def _normalize_backend(cls, value: str) -> str:
        return value.lower().strip()

    @model_validator(mode="after")
    def _finalize(self) -> "Settings":
        if isinstance(self.CORS_ORIGINS, str):
            self.CORS_ORIGINS = [
                origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()
            ] or ["*"]

        if self.GAME_START_TIME_SECOND > self.GAME_PREPARATION_TIME_SECOND:
            logger.warning(
                "GAME_START_TIME_SECOND (%s) exceeds GAME_PREPARATION_TIME_SECOND (%s); "
                "games with two players will never auto-start before expiry",
                self.GAME_START_TIME_SECOND,
                self.GAME_PREPARATION_TIME_SECOND,
            )
        return self

    @property
    def start_delay_ms(self) -> int:
        return self.GAME_START_TIME_SECOND * 1000

    @property
    def preparation_ms(self) -> int:
        return self.GAME_PREPARATION_TIME_SECOND * 1000

    @property
    def consider_ms(self) -> int:
        return self.GAME_CONSIDER_TIME_SECOND * 1000


settings = Settings()
