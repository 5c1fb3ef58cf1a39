"""Configuration for the roster import pipeline and query service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

FILTER_MODES = ("any", "all")


def _env(name: str, default: Optional[str] = None) -> str:
    value = os.environ.get(name, default)
    return value or ""


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_path(name: str) -> Optional[Path]:
    value = _env(name).strip()
    return Path(value).expanduser().resolve() if value else None


@dataclass(slots=True)
class ImportOptions:
    """Options passed explicitly into every import run.

    ``replace_days`` wipes all entries of every date touched by a batch before
    writing it; without it entries are only upserted per (employee, date).
    """

    replace_days: bool = True
    dry_run: bool = False
    intermediate_dir: Optional[Path] = None


@dataclass(slots=True)
class Settings:
    input_dir: Optional[Path] = None
    intermediate_dir: Optional[Path] = None
    replace_days: bool = True
    filter_mode: str = "any"
    log_level: str = "INFO"

    def import_options(self, *, dry_run: bool = False) -> ImportOptions:
        return ImportOptions(
            replace_days=self.replace_days,
            dry_run=dry_run,
            intermediate_dir=self.intermediate_dir,
        )


@lru_cache()
def get_settings() -> Settings:
    """Return cached roster settings read from the environment."""
    filter_mode = _env("ROSTER_FILTER_MODE", "any").strip().lower()
    if filter_mode not in FILTER_MODES:
        raise RuntimeError(f"ROSTER_FILTER_MODE must be one of {', '.join(FILTER_MODES)}")
    return Settings(
        input_dir=_env_path("ROSTER_INPUT_DIR"),
        intermediate_dir=_env_path("ROSTER_INTERMEDIATE_DIR"),
        replace_days=_env_bool("ROSTER_REPLACE_DAYS", True),
        filter_mode=filter_mode,
        log_level=_env("ROSTER_LOG_LEVEL", "INFO").upper(),
    )
