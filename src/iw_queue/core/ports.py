# src/iw_queue/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the queue engine.

The engine depends on Protocols instead of concrete implementations.
This keeps the vault/date/notification collaborators swappable and makes
testing easier.
"""

from datetime import date
from typing import Protocol


class DocumentStore(Protocol):
    """
    Text documents addressed by vault-relative paths ("IW-Queues/IW-Queue.md").

    read() raises OSError when the document cannot be read; write() raises
    OSError when it cannot be written.
    """

    def read(self, path: str) -> str: ...
    def write(self, path: str, text: str) -> None: ...
    def exists(self, path: str) -> bool: ...
    def list_markdown(self, folder: str = "") -> list[str]: ...


class DateResolver(Protocol):
    """Turns user-entered text ("tomorrow", "2024-05-01", "in 3 days") into a date."""

    def parse_date(self, text: str, today: date) -> date | None: ...


class Notifier(Protocol):
    """User-visible messages. level is a logging level (logging.INFO, ...)."""

    def notify(self, level: int, message: str) -> None: ...
