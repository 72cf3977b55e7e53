# src/iw_queue/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (vault files, dates, notifier),
- loads the default queue.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import get_settings
from ..core.notify import LogNotifier
from ..core.state import AppState
from ..dates import NaturalDateResolver
from ..vault.files import VaultFiles

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    state = AppState(
        settings=settings,
        docs=VaultFiles(settings.vault_dir),
        dates=NaturalDateResolver(),
        notifier=LogNotifier(),
    )
    logger.info("Vault: %s", Path(settings.vault_dir).resolve())
    state.load_queue(settings.default_queue_path())
    return state
