"""Settings and logging setup, loaded from environment variables."""

import logging
from functools import lru_cache
from pathlib import Path

import platformdirs
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from api_doc_builder.document.history import DEFAULT_HISTORY_LIMIT
from api_doc_builder.storage.state import STORAGE_KEY

APP_NAME = "api-doc-builder"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _default_storage_path() -> Path:
    return Path(platformdirs.user_data_dir(APP_NAME)) / "storage.json"


class Settings(BaseSettings):
    """Settings read from ``API_DOC_BUILDER_*`` variables or a local .env file"""

    model_config = SettingsConfigDict(
        env_prefix="API_DOC_BUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    storage_path: Path = Field(default_factory=_default_storage_path)
    storage_key: str = STORAGE_KEY
    history_limit: int = Field(DEFAULT_HISTORY_LIMIT, ge=1)
    log_level: str = "WARNING"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def configure_logging(level: str | int = "WARNING") -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
