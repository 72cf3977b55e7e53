# src/iw_queue/queue/errors.py

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .scheduler import QueueTable


class QueueError(Exception):
    """Base class for everything the queue engine reports to its callers."""


class ValidationError(QueueError, ValueError):
    """Bad input for a row (empty link, unresolvable date, ...). Nothing was mutated."""


class QueueLoadError(QueueError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to load queue {path}: {reason}")
        self.path = path
        self.reason = reason


class QueueSaveError(QueueError):
    """
    The queue document could not be written.

    The mutated table travels with the exception so the caller can retry the
    save without re-deriving the mutation.
    """

    def __init__(self, path: str, reason: str, table: QueueTable | None = None) -> None:
        super().__init__(f"Failed to save queue {path}: {reason}")
        self.path = path
        self.reason = reason
        self.table = table


class QueueConflictError(QueueSaveError):
    """The document changed on disk between load and save."""
