# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from iw_queue.core.state import AppState
from iw_queue.dates import NaturalDateResolver
from iw_queue.queue.store import QueueStore
from iw_queue.vault.files import VaultFiles

from .fakes import MemoryDocs, RecordingNotifier

# A Sunday.
TODAY = date(2024, 3, 10)
QUEUE_PATH = "IW-Queues/IW-Queue.md"


@pytest.fixture()
def today() -> date:
    return TODAY


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    vault = tmp_path / "vault"
    vault.mkdir()
    return SimpleNamespace(
        app_name="iw-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        vault_dir=vault,
        queue_folder_path="IW-Queues",
        queue_file_name="IW-Queue.md",
        queue_tags=["iw-queue"],
        default_priority_min=10,
        default_priority_max=50,
        default_first_rep_date="1970-01-01",
        auto_add_new_notes=False,
        watch_interval_seconds=0.01,
        default_queue_path=lambda: QUEUE_PATH,
    )


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def docs() -> MemoryDocs:
    return MemoryDocs()


@pytest.fixture()
def store(docs: MemoryDocs, notifier: RecordingNotifier) -> QueueStore:
    return QueueStore(QUEUE_PATH, docs, NaturalDateResolver(), notifier)


@pytest.fixture()
def vault(settings: SimpleNamespace) -> Path:
    return settings.vault_dir


@pytest.fixture()
def state(settings: SimpleNamespace, notifier: RecordingNotifier) -> AppState:
    """
    AppState over a real (tmp) vault directory with a fixed clock.

    NOTE: We keep the real VaultFiles here because reading and writing real
    files is part of what the command tests exercise.
    """
    st = AppState(
        settings=settings,
        docs=VaultFiles(settings.vault_dir),
        dates=NaturalDateResolver(),
        notifier=notifier,
        clock=lambda: TODAY,
    )
    st.load_queue(QUEUE_PATH)
    return st
