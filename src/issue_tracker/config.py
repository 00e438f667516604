"""Configuration for the issue tracker CLI.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

The `--data-file` command-line option takes precedence over `TRACKER_DATA_FILE`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from issue_tracker.logging import LogFormat
from issue_tracker.service import DEFAULT_MAX_TITLE_LENGTH


class TrackerSettings(BaseSettings):
    """Settings for the tracker.

    Environment variables:
    - TRACKER_DATA_FILE         (optional)
    - LOG_LEVEL                 (optional)
    - LOG_FORMAT                (optional)
    - TRACKER_AUTO_ROLLUP       (optional)
    - TRACKER_MAX_TITLE_LENGTH  (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `TrackerSettings(_env_file=path_to_env)`.
    """

    data_file: Path = Field(
        default=Path("data/db.json"),
        validation_alias="TRACKER_DATA_FILE",
        description="JSON file holding the whole issue board",
    )

    log_level: str = Field(
        default="WARNING",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    log_format: LogFormat = Field(
        default="json",
        validation_alias="LOG_FORMAT",
        description="Log record format: json | text",
    )

    auto_rollup: bool = Field(
        default=True,
        validation_alias="TRACKER_AUTO_ROLLUP",
        description="Recompute Story/Epic status from their children after each change",
    )

    max_title_length: int = Field(
        default=DEFAULT_MAX_TITLE_LENGTH,
        gt=0,
        validation_alias="TRACKER_MAX_TITLE_LENGTH",
        description="Longest accepted issue title",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value!r}")
        return level
