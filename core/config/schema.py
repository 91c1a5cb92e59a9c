# ==============================
# Config Schemas (Pydantic)
# ==============================
"""
Pydantic settings models for msgtrace.

Notes:
- Keep these schemas stable: many modules will depend on them.
- No env reads here. No file IO here. Pure types + defaults.
- loader.py builds a single Settings object with precedence merging.

Precedence (implemented in loader.py):
env > .env > configs/*.yaml > defaults
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _level_number(name: str) -> int:
    value = logging.getLevelName(name.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {name}")
    return value


# ==============================
# App Settings
# ==============================


class PathsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    repo_root: str = Field(default=".", description="Repo root (relative or absolute)")


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    api_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the admin API used by the CLI.",
    )
    paths: PathsConfig = Field(default_factory=PathsConfig)


# ==============================
# Logging Settings
# ==============================


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    level: str = Field(default="INFO", description="Operator-configured global level")
    console: bool = Field(default=True)
    json_lines: bool = Field(default=True, alias="json", description="JSON-lines console output")

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        _level_number(v)
        return v.upper()


# ==============================
# Tracing Settings
# ==============================


class TracingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="DEBUG", description="Minimum level of every trace sink")
    flush_interval_ms: int = Field(default=1000, ge=0, description="Sink file sync cadence")
    sys_prefix: str = Field(default="$SYS/", description="Reserved system topic prefix, never traced")
    target_logger: str = Field(
        default="",
        description="Logger whose level is gated and where sinks attach ('' = root)",
    )
    trace_logger: str = Field(default="msgtrace.trace", description="Logger publish traces are emitted on")

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        _level_number(v)
        return v.upper()

    def level_number(self) -> int:
        return _level_number(self.level)


# ==============================
# Top-Level Settings
# ==============================


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    app: AppConfig = Field(default_factory=AppConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tracing: TracingConfig = Field(default_factory=TracingConfig)
