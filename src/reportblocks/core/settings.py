"""Editor configuration and the shared logger factory.

Values come from the process environment first, then from `.env`-style files
in the working directory. Call sites read them through :func:`load_settings`,
which caches one instance; tests rebuild it with `load_settings.cache_clear()`.

Environment variables
---------------------
- `REPORTBLOCKS_ENV`                : dev | test | prod (reported by `/health`)
- `LOG_LEVEL`                       : level applied by :func:`get_logger`
- `REPORTBLOCKS_ID_PREFIX`          : prefix of generated block ids
- `REPORTBLOCKS_MAX_LAYOUT_COLUMNS` : mutation-time column limit (1..3)
- `REPORTBLOCKS_DEFAULT_TEXT`       : content of a new text block
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class Settings(BaseSettings):
    """Typed editor settings; field aliases are the environment variable names."""

    environment: EnvName = Field(default="dev", alias="REPORTBLOCKS_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    id_prefix: str = Field(default="block", min_length=1, alias="REPORTBLOCKS_ID_PREFIX")
    # the model caps layouts at 3 columns; deployments may only go lower
    max_layout_columns: int = Field(
        default=3, ge=1, le=3, alias="REPORTBLOCKS_MAX_LAYOUT_COLUMNS"
    )
    default_text: str = Field(
        default="Enter your text here.", alias="REPORTBLOCKS_DEFAULT_TEXT"
    )

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def log_level_numeric(self) -> int:
        """Map `log_level` onto the `logging` module constant."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Build the settings once per process (until `cache_clear()`)."""
    os.environ.setdefault("REPORTBLOCKS_ENV", "dev")
    return Settings()


settings: Settings = load_settings()


def get_logger(name: str = "reportblocks") -> logging.Logger:
    """Return ``name``'s logger with a single stderr handler at the configured level."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger
