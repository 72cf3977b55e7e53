# src/iw_queue/queue/scheduler.py

from __future__ import annotations

"""
Repetition state machine over an in-memory queue table.

Row states are derived (see index.RepState):
- SCHEDULED -> DUE happens by the calendar, not by a transition here
- DUE -> ACTIVE happens by ordering (head of the due set)
- ACTIVE -> removed (advance / dismiss), optionally re-added as a new row
  with repetition_count + 1 and a caller-supplied date
- ACTIVE -> ACTIVE with new fields (edit_current)

Every transition mutates only the table; persisting it is the store's job.
Transitions that need a due row return an EMPTY outcome instead of raising.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date
from enum import StrEnum

from . import index
from .codec import DecodedDocument, ParseWarning, render_document
from .models import Row, clamp_priority

logger = logging.getLogger(__name__)


class OutcomeStatus(StrEnum):
    ADVANCED = "advanced"
    RESCHEDULED = "rescheduled"
    DISMISSED = "dismissed"
    EDITED = "edited"
    EMPTY = "empty"


@dataclass(slots=True, frozen=True)
class Reschedule:
    """Caller-chosen follow-up for the row being advanced."""

    next_repetition_date: date
    priority: int | None = None


@dataclass(slots=True, frozen=True)
class RepOutcome:
    status: OutcomeStatus
    row: Row | None = None
    rescheduled: Row | None = None

    @property
    def empty(self) -> bool:
        return self.status == OutcomeStatus.EMPTY


EMPTY = RepOutcome(status=OutcomeStatus.EMPTY)


@dataclass(slots=True)
class QueueTable:
    """
    One loaded queue document.

    `rows` is the working sequence; `document` keeps everything around the
    table so it can be written back unchanged. `digest` identifies the
    document content this table was loaded from.
    """

    path: str
    rows: list[Row] = field(default_factory=list)
    document: DecodedDocument = field(default_factory=DecodedDocument)
    digest: str | None = None

    @property
    def warnings(self) -> list[ParseWarning]:
        return self.document.warnings

    def render(self) -> str:
        return render_document(self.document, self.rows)

    # ---- read-only ----

    def due_rows(self, today: date) -> index.DueRows:
        return index.due_rows(self.rows, today)

    def has_reps(self, today: date) -> bool:
        return index.has_reps(self.rows, today)

    def current_rep(self, today: date) -> Row | None:
        return index.current_rep(self.rows, today)

    def contains_link(self, link: str) -> bool:
        return any(r.link == link for r in self.rows)

    # ---- transitions ----

    def add(self, row: Row) -> None:
        self.rows.append(row)

    def add_multiple(self, rows: Iterable[Row]) -> int:
        before = len(self.rows)
        self.rows.extend(rows)
        return len(self.rows) - before

    def advance(self, today: date, reschedule: Reschedule | None = None) -> RepOutcome:
        i = index.current_index(self.rows, today)
        if i is None:
            return EMPTY

        current = self.rows.pop(i)
        if reschedule is None:
            logger.debug("Advanced past %s (dropped)", current.link)
            return RepOutcome(status=OutcomeStatus.ADVANCED, row=current)

        priority = current.priority if reschedule.priority is None else reschedule.priority
        follow_up = replace(
            current,
            priority=clamp_priority(priority),
            repetition_count=current.repetition_count + 1,
            next_repetition_date=reschedule.next_repetition_date,
        )
        self.rows.append(follow_up)
        logger.debug(
            "Rescheduled %s to %s (rep %d)",
            follow_up.link,
            follow_up.next_repetition_date,
            follow_up.repetition_count,
        )
        return RepOutcome(status=OutcomeStatus.RESCHEDULED, row=current, rescheduled=follow_up)

    def dismiss(self, today: date) -> RepOutcome:
        outcome = self.advance(today)
        if outcome.empty:
            return outcome
        return replace(outcome, status=OutcomeStatus.DISMISSED)

    def edit_current(
        self,
        today: date,
        *,
        priority: int | None = None,
        notes: str | None = None,
        next_repetition_date: date | None = None,
    ) -> RepOutcome:
        i = index.current_index(self.rows, today)
        if i is None:
            return EMPTY

        row = self.rows[i]
        if priority is not None:
            row = row.with_priority(priority)
        if notes is not None:
            row = row.with_notes(notes)
        if next_repetition_date is not None:
            row = row.with_next_repetition(next_repetition_date)

        self.rows[i] = row
        return RepOutcome(status=OutcomeStatus.EDITED, row=row)
