from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError

DEFAULT_CACHE_DIR = "/tmp/trivy"
DEFAULT_BACKUP_DIR = "/tmp/trivy_save"
DEFAULT_TRIVY_BIN = "trivy"


class RefreshSettings(BaseModel):
    cache_dir: Path = Field(default=Path(DEFAULT_CACHE_DIR))
    backup_dir: Path = Field(default=Path(DEFAULT_BACKUP_DIR))
    trivy_bin: str = Field(default=DEFAULT_TRIVY_BIN, min_length=1)
    logs_dir: Optional[Path] = None
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level

    @model_validator(mode="after")
    def _separate_slots(self) -> "RefreshSettings":
        cache = self.cache_dir.resolve()
        backup = self.backup_dir.resolve()
        if cache == backup:
            raise ValueError("backup_dir must differ from cache_dir")
        if backup.is_relative_to(cache) or cache.is_relative_to(backup):
            raise ValueError("backup_dir and cache_dir must not be nested in one another")
        return self


def _cli_or_env(cli_args: dict[str, Any], key: str, env_key: str, default: Optional[str]) -> Optional[str]:
    value = cli_args.get(key)
    if value:
        return str(value)
    env_value = os.getenv(env_key)
    if env_value is None or env_value.strip() == "":
        return default
    return env_value


def _as_path(value: Optional[str]) -> Optional[Path]:
    if value is None:
        return None
    return Path(value).expanduser()


def load_settings(cli_args: dict[str, Any] | None = None) -> RefreshSettings:
    load_dotenv()
    cli_args = cli_args or {}

    data: dict[str, Any] = {
        "cache_dir": _as_path(_cli_or_env(cli_args, "cache_dir", "TRIVY_CACHE_DIR", DEFAULT_CACHE_DIR)),
        "backup_dir": _as_path(_cli_or_env(cli_args, "backup_dir", "TRIVY_BACKUP_DIR", DEFAULT_BACKUP_DIR)),
        "trivy_bin": _cli_or_env(cli_args, "trivy_bin", "TRIVY_BIN", DEFAULT_TRIVY_BIN),
        "logs_dir": _as_path(_cli_or_env(cli_args, "logs_dir", "LOGS_DIR", None)),
        "log_level": _cli_or_env(cli_args, "log_level", "LOG_LEVEL", "INFO"),
    }

    try:
        return RefreshSettings(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
