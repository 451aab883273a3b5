"""Configuration loading from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ObserveConfig:
    log_level: str = "warning"
    chart_file: Optional[str] = None


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"STACK_OBSERVE_{key}", default)


def validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {sorted(valid)}")
    return value.lower()


def load_config() -> ObserveConfig:
    """Load configuration from STACK_OBSERVE_* environment variables."""
    return ObserveConfig(
        log_level=validate_log_level(_env("LOG_LEVEL", "warning")),
        chart_file=_env("CHART_FILE") or None,
    )
