# src/iw_queue/queue/models.py

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import StrEnum

from .errors import ValidationError

PRIORITY_MIN = 0
PRIORITY_MAX = 100


def clamp_priority(priority: int) -> int:
    return max(PRIORITY_MIN, min(PRIORITY_MAX, int(priority)))


def _single_line(text: str) -> str:
    # Table cells cannot hold line breaks.
    return " ".join(text.splitlines()).strip()


class RepState(StrEnum):
    """
    Derived repetition state of a row.

    Never stored in the document:
    - SCHEDULED: next repetition date is in the future
    - DUE: next repetition date is today or earlier
    - ACTIVE: due and at the head of the due ordering (at most one row)
    """

    SCHEDULED = "scheduled"
    DUE = "due"
    ACTIVE = "active"


@dataclass(slots=True, frozen=True)
class Row:
    """
    One queue entry.

    Rows compare by value, but a queue entry is identified by its position in
    the table: two equal rows are two distinct entries.
    """

    link: str
    priority: int
    notes: str
    repetition_count: int
    next_repetition_date: date

    @classmethod
    def create(
        cls,
        link: str,
        priority: int,
        notes: str = "",
        repetition_count: int = 1,
        next_repetition_date: date | None = None,
    ) -> Row:
        link = _single_line(link or "")
        if not link:
            raise ValidationError("link is required")

        if next_repetition_date is None:
            raise ValidationError(f"no next repetition date for {link}")
        if isinstance(next_repetition_date, datetime):
            next_repetition_date = next_repetition_date.date()
        if not isinstance(next_repetition_date, date):
            raise ValidationError(f"invalid next repetition date: {next_repetition_date!r}")

        try:
            priority = clamp_priority(priority)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"invalid priority: {priority!r}") from e

        if repetition_count is None:
            repetition_count = 1
        if int(repetition_count) < 0:
            raise ValidationError(f"repetition count must be >= 0, got {repetition_count}")

        return cls(
            link=link,
            priority=priority,
            notes=_single_line(notes or ""),
            repetition_count=int(repetition_count),
            next_repetition_date=next_repetition_date,
        )

    def with_priority(self, priority: int) -> Row:
        return replace(self, priority=clamp_priority(priority))

    def with_notes(self, notes: str) -> Row:
        return replace(self, notes=_single_line(notes or ""))

    def with_next_repetition(self, next_repetition_date: date) -> Row:
        return replace(self, next_repetition_date=next_repetition_date)

    def is_due(self, today: date) -> bool:
        return self.next_repetition_date <= today
