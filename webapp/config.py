"""Configuration helpers for the roster web application."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from roster.config import get_settings as get_roster_settings


def _env(name: str, default: Optional[str] = None) -> str:
    value = os.environ.get(name, default)
    return value or ""


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be an integer") from exc


@dataclass(slots=True)
class Settings:
    filter_mode: str = "any"
    max_upload_files: int = 10
    max_upload_bytes: int = 20 * 1024 * 1024
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    title: str = "Roster API"


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""
    origins = [origin.strip() for origin in _env("ROSTER_CORS_ORIGINS", "*").split(",") if origin.strip()]
    return Settings(
        filter_mode=get_roster_settings().filter_mode,
        max_upload_files=_env_int("ROSTER_MAX_UPLOAD_FILES", 10),
        max_upload_bytes=_env_int("ROSTER_MAX_UPLOAD_BYTES", 20 * 1024 * 1024),
        cors_origins=origins or ["*"],
        title=_env("ROSTER_APP_TITLE", "Roster API"),
    )
