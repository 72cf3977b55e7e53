# src/iw_queue/core/state.py

from __future__ import annotations

import logging
import posixpath
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..queue.store import QueueStore
from ..vault.files import normalize_path, with_md_extension
from .ports import DateResolver, DocumentStore, Notifier

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """
    Everything a command needs, passed explicitly.

    `queue` is the active queue. It is replaced (never mutated) by load_queue().
    `lock` serializes queue operations between the console and the watcher
    thread: hold it around every load-mutate-save.
    """

    settings: Any
    docs: DocumentStore
    dates: DateResolver
    notifier: Notifier

    queue: QueueStore | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)
    # The only place the wall clock is read; the engine gets `today` passed in.
    clock: Callable[[], date] = date.today

    def today(self) -> date:
        return self.clock()

    def queue_path(self, name: str) -> str:
        """
        Path of a queue given by name.

        Bare names live in the queue folder ("Books" -> "IW-Queues/Books.md");
        names with a folder part are taken as vault paths.
        """
        name = normalize_path(name)
        if not name:
            return self.settings.default_queue_path()
        name = with_md_extension(name)
        folder = normalize_path(self.settings.queue_folder_path)
        if "/" in name or not folder:
            return name
        return posixpath.join(folder, name)

    def store_for(self, path: str) -> QueueStore:
        return QueueStore(path, self.docs, self.dates, self.notifier)

    def load_queue(self, path: str) -> QueueStore:
        self.queue = self.store_for(path)
        logger.info("Loaded queue: %s", path)
        return self.queue

    def queue_files(self) -> list[str]:
        folder = normalize_path(self.settings.queue_folder_path)
        return [p for p in self.docs.list_markdown(folder) if posixpath.dirname(p) == folder]
