# src/iw_queue/queue/index.py

"""
Priority / due ordering.

Rows are ordered by next repetition date (oldest first), then by priority
(lower value first). Ties keep their source order. Nothing here mutates rows.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import date

from .models import RepState, Row


def sort_key(row: Row) -> tuple[date, int]:
    return (row.next_repetition_date, row.priority)


def sort_rows(rows: Sequence[Row]) -> list[Row]:
    return sorted(rows, key=sort_key)


class DueRows:
    """
    Lazy view over the due rows of a sequence.

    Iterating it again starts over; it reflects the sequence at iteration time.
    """

    __slots__ = ("_rows", "_today")

    def __init__(self, rows: Sequence[Row], today: date) -> None:
        self._rows = rows
        self._today = today

    def indexed(self) -> Iterator[tuple[int, Row]]:
        due = [(i, r) for i, r in enumerate(self._rows) if r.is_due(self._today)]
        due.sort(key=lambda pair: sort_key(pair[1]))
        yield from due

    def __iter__(self) -> Iterator[Row]:
        for _, row in self.indexed():
            yield row

    def __bool__(self) -> bool:
        return any(r.is_due(self._today) for r in self._rows)

    def __len__(self) -> int:
        return sum(1 for r in self._rows if r.is_due(self._today))


def due_rows(rows: Sequence[Row], today: date) -> DueRows:
    return DueRows(rows, today)


def has_reps(rows: Sequence[Row], today: date) -> bool:
    return bool(due_rows(rows, today))


def current_index(rows: Sequence[Row], today: date) -> int | None:
    """Position (in `rows`) of the current repetition, or None if nothing is due."""
    for i, _ in due_rows(rows, today).indexed():
        return i
    return None


def current_rep(rows: Sequence[Row], today: date) -> Row | None:
    i = current_index(rows, today)
    return None if i is None else rows[i]


def rep_state(rows: Sequence[Row], index: int, today: date) -> RepState:
    row = rows[index]
    if not row.is_due(today):
        return RepState.SCHEDULED
    if current_index(rows, today) == index:
        return RepState.ACTIVE
    return RepState.DUE
