# koolpresets/utils/config.py
from __future__ import annotations

import functools
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------- Enums ----------

class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Central configuration for kool-presets.

    Values load in this order of precedence:
      1) Environment variables
      2) .env file in the current directory
      3) Defaults below
    """

    # ---- Definition sources (user overrides shadow built-ins) ----
    PRESETS_DIR: Optional[Path] = Field(default=None, description="Extra presets: <id>/config.yml")
    RECIPES_DIR: Optional[Path] = Field(default=None, description="Extra recipes: <id>.yml")
    TEMPLATES_DIR: Optional[Path] = Field(default=None, description="Templates searched before built-ins")

    # ---- Execution ----
    NON_INTERACTIVE: bool = Field(default=False, description="Never prompt; always take prompt defaults")
    KOOL_VERBOSE: bool = Field(default=False, description="Exported to scripts and raises log verbosity")
    SCRIPT_SHELL: Optional[str] = Field(default=None, description="Shell executable for script lines")

    # ---- Logging ----
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_TO_FILE: bool = Field(default=False)
    LOG_FILE: Path = Field(default=Path("./kool-presets.log"))
    COLORIZED_OUTPUT: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # the .env file is shared with the project itself
    )

    @field_validator("PRESETS_DIR", "RECIPES_DIR", "TEMPLATES_DIR", mode="after")
    @classmethod
    def _absolutize_dirs(cls, v: Optional[Path]):
        if v is None:
            return v
        v = v.expanduser()
        return v if v.is_absolute() else Path.cwd() / v

    @field_validator("LOG_FILE", mode="after")
    @classmethod
    def _absolutize_log_file(cls, v: Path):
        return v if v.is_absolute() else Path.cwd() / v

    def ensure_dirs(self) -> None:
        """Create the log directory when file logging is enabled (idempotent)."""
        if self.LOG_TO_FILE:
            self.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    def script_variables(self) -> dict[str, str]:
        """Variables exported to every spawned script."""
        return {"KOOL_VERBOSE": "true"} if self.KOOL_VERBOSE else {}


# --------- Public accessor (memoized) ---------

@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache settings once per process.
    Call `get_settings.cache_clear()` if you need to reload after changing env.
    """
    s = Settings()
    s.ensure_dirs()
    return s
