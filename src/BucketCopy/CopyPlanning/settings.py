# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.settings",
#   "purpose": "Environment-driven settings for copy planning, logging, and pipeline tuning",
#   "sections": [
#     {"id": "loggingconfiguration", "name": "LoggingConfiguration", "anchor": "class-loggingconfiguration", "kind": "class"},
#     {"id": "copyplanningsettings", "name": "CopyPlanningSettings", "anchor": "class-copyplanningsettings", "kind": "class"},
#     {"id": "get-settings", "name": "get_settings", "anchor": "function-get-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Settings for the copy planner.

Values come from ``BUCKETCOPY_*`` environment variables (or a ``.env`` file)
through :mod:`pydantic_settings`.  CLI flags override individual fields with
``model_copy(update=...)`` rather than mutating the cached instance.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "CONFIG_DIR",
    "LOG_DIR",
    "LoggingConfiguration",
    "CopyPlanningSettings",
    "get_settings",
    "invalidate_settings_cache",
]

DATA_ROOT = Path(os.environ.get("BUCKETCOPY_HOME", Path.home() / ".bucketcopy"))
CONFIG_DIR = DATA_ROOT
LOG_DIR = DATA_ROOT / "logs"

_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class LoggingConfiguration(BaseModel):
    """Logging-related configuration for copy planning."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    max_log_size_mb: int = Field(default=100, gt=0, description="Maximum size of rotated log files")
    retention_days: int = Field(default=30, ge=1, description="Retention period for log files")
    log_dir: Optional[Path] = Field(default=None, description="Directory for JSON log files")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Normalise logging levels and ensure they match the supported set."""

        upper = value.upper()
        if upper not in _VALID_LEVELS:
            raise ValueError(f"level must be one of {_VALID_LEVELS}")
        return upper

    model_config = {"validate_assignment": True}


class CopyPlanningSettings(BaseSettings):
    """Pydantic settings model exposing environment-derived configuration."""

    config_path: Path = Field(
        default=CONFIG_DIR / "aliases.yaml",
        description="YAML file mapping alias names to fsspec URLs",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[Path] = Field(default=None, description="Override for the JSON log directory")
    log_retention_days: int = Field(default=30, ge=1)
    max_log_size_mb: int = Field(default=100, gt=0)
    channel_capacity: int = Field(
        default=1, ge=1, description="Items buffered between pipeline stages"
    )
    poll_interval: float = Field(
        default=0.05, gt=0, description="Seconds between cancellation checks while blocked"
    )
    source_concurrency: int = Field(
        default=1, ge=1, description="Sources listed concurrently for multi-source copies"
    )
    join_timeout: float = Field(
        default=5.0, gt=0, description="Seconds to wait for pipeline threads on close"
    )

    model_config = SettingsConfigDict(
        env_prefix="BUCKETCOPY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _VALID_LEVELS:
            raise ValueError(f"log_level must be one of {_VALID_LEVELS}")
        return upper

    @property
    def logging(self) -> LoggingConfiguration:
        return LoggingConfiguration(
            level=self.log_level,
            max_log_size_mb=self.max_log_size_mb,
            retention_days=self.log_retention_days,
            log_dir=self.log_dir,
        )


_SETTINGS_CACHE: Optional[CopyPlanningSettings] = None
_SETTINGS_LOCK = threading.Lock()


def get_settings() -> CopyPlanningSettings:
    """Return the process-wide settings, loading them on first use."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        if _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = CopyPlanningSettings()
        return _SETTINGS_CACHE


def invalidate_settings_cache() -> None:
    """Invalidate the cached settings so the next call re-reads the environment."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None
