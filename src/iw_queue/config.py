# src/iw_queue/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every value has a default.
- Engine code never reads settings directly: callers pass what they need.
"""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import load_dotenv

ENV_PREFIX = "IW"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local paths ----
    data_dir: Path
    vault_dir: Path

    # ---- Queues ----
    queue_folder_path: str
    queue_file_name: str
    queue_tags: List[str]

    # ---- Adding items ----
    default_priority_min: int
    default_priority_max: int
    default_first_rep_date: str

    # ---- Auto-add watcher ----
    auto_add_new_notes: bool
    watch_interval_seconds: float

    def default_queue_path(self) -> str:
        return posixpath.join(self.queue_folder_path, self.queue_file_name)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "iw")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/iw"))
        vault_dir = _env_path(_k("VAULT_DIR"), Path("."))

        queue_folder_path = _env(_k("QUEUE_FOLDER"), "IW-Queues").strip().strip("/")
        queue_file_name = _env(_k("QUEUE_FILE"), "IW-Queue.md").strip()
        if not queue_file_name.lower().endswith(".md"):
            queue_file_name += ".md"
        queue_tags = _env_list(_k("QUEUE_TAGS"), ["iw-queue"])

        pmin = _env_int(_k("PRIORITY_MIN"), 10)
        pmax = _env_int(_k("PRIORITY_MAX"), 50)
        # min and max may come in swapped.
        default_priority_min, default_priority_max = sorted(
            (max(0, min(100, pmin)), max(0, min(100, pmax)))
        )
        # 1970-01-01 makes new items due immediately.
        default_first_rep_date = _env(_k("FIRST_REP_DATE"), "1970-01-01")

        auto_add_new_notes = _env_bool(_k("AUTO_ADD_NEW_NOTES"), False)
        watch_interval_seconds = _env_float(_k("WATCH_INTERVAL_SECONDS"), 5.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            vault_dir=vault_dir,
            queue_folder_path=queue_folder_path,
            queue_file_name=queue_file_name,
            queue_tags=queue_tags,
            default_priority_min=default_priority_min,
            default_priority_max=default_priority_max,
            default_first_rep_date=default_first_rep_date,
            auto_add_new_notes=auto_add_new_notes,
            watch_interval_seconds=watch_interval_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
