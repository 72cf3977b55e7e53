"""
Queue engine.

Components:
- models.py: Row, RepState, priority clamping
- codec.py: Markdown table <-> rows, document surgery
- index.py: due filtering and ordering (date, then priority)
- scheduler.py: QueueTable and its repetition transitions
- store.py: load / mutate / save against a document store
"""

from .errors import (
    QueueConflictError,
    QueueError,
    QueueLoadError,
    QueueSaveError,
    ValidationError,
)
from .models import RepState, Row, clamp_priority
from .scheduler import OutcomeStatus, QueueTable, RepOutcome, Reschedule
from .store import QueueStore

__all__ = [
    "OutcomeStatus",
    "QueueConflictError",
    "QueueError",
    "QueueLoadError",
    "QueueSaveError",
    "QueueStore",
    "QueueTable",
    "RepOutcome",
    "RepState",
    "Reschedule",
    "Row",
    "ValidationError",
    "clamp_priority",
]
