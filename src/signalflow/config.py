"""Configuration for the signal engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Every variable is prefixed with `SIGNALFLOW_` to avoid collisions with the
host application's own settings.
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SignalflowSettings(BaseSettings):
    """Settings for compiled signals.

    Environment variables:
    - SIGNALFLOW_LOG_LEVEL                (optional)
    - SIGNALFLOW_JSON_LOGS                (optional)
    - SIGNALFLOW_CHECK_SERIALIZABLE_ARGS  (optional)
    - SIGNALFLOW_RECORD_MUTATIONS         (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `SignalflowSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        description="Root logging level",
    )
    json_logs: bool = Field(
        default=True,
        description="Emit log records as JSON lines instead of plain text",
    )
    check_serializable_args: bool = Field(
        default=True,
        description="Reject runs whose initial arguments cannot be serialized to JSON",
    )
    record_mutations: bool = Field(
        default=True,
        description="Record store mutations dispatched by synchronous steps on their branch",
    )

    model_config = SettingsConfigDict(
        env_prefix="SIGNALFLOW_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level
