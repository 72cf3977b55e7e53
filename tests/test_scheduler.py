# tests/test_scheduler.py

from __future__ import annotations

from datetime import timedelta

from iw_queue.queue import OutcomeStatus, QueueTable, Reschedule, Row
from iw_queue.queue.codec import decode, encode

from .conftest import QUEUE_PATH, TODAY


def _table(*rows: Row) -> QueueTable:
    text = encode(rows)
    return QueueTable(path=QUEUE_PATH, rows=list(rows), document=decode(text))


def test_advance_without_reschedule_drops_row() -> None:
    row = Row.create("[[Note]]", 30, "", 1, TODAY)
    table = _table(row)

    outcome = table.advance(TODAY)

    assert outcome.status == OutcomeStatus.ADVANCED
    assert outcome.row == row
    assert table.rows == []
    assert decode(table.render()).rows == []


def test_advance_with_reschedule_appends_follow_up() -> None:
    row = Row.create("[[Note]]", 30, "keep", 1, TODAY)
    table = _table(row)

    outcome = table.advance(TODAY, Reschedule(TODAY + timedelta(days=3)))

    assert outcome.status == OutcomeStatus.RESCHEDULED
    (follow_up,) = table.rows
    assert follow_up is outcome.rescheduled
    assert follow_up.link == "[[Note]]"
    assert follow_up.notes == "keep"
    assert follow_up.priority == 30
    assert follow_up.repetition_count == 2
    assert follow_up.next_repetition_date == TODAY + timedelta(days=3)
    assert not table.has_reps(TODAY)


def test_reschedule_priority_is_clamped() -> None:
    table = _table(Row.create("[[Note]]", 30, "", 4, TODAY))
    outcome = table.advance(TODAY, Reschedule(TODAY + timedelta(days=1), priority=250))
    assert outcome.rescheduled.priority == 100
    assert outcome.rescheduled.repetition_count == 5


def test_advance_removes_only_the_active_entry_among_duplicates() -> None:
    row = Row.create("[[Same]]", 10, "", 1, TODAY)
    later = Row.create("[[Later]]", 10, "", 1, TODAY + timedelta(days=5))
    table = _table(row, later, row)

    table.advance(TODAY)

    assert table.rows == [later, row]


def test_dismiss() -> None:
    a = Row.create("[[A]]", 10, "", 1, TODAY)
    b = Row.create("[[B]]", 20, "", 1, TODAY)
    table = _table(a, b)

    outcome = table.dismiss(TODAY)

    assert outcome.status == OutcomeStatus.DISMISSED
    assert outcome.row == a
    assert table.rows == [b]
    assert table.current_rep(TODAY) == b


def test_empty_queue_transitions_are_noops() -> None:
    future = Row.create("[[Later]]", 10, "", 1, TODAY + timedelta(days=1))
    table = _table(future)
    before = table.render()

    for outcome in (
        table.advance(TODAY),
        table.advance(TODAY, Reschedule(TODAY)),
        table.dismiss(TODAY),
        table.edit_current(TODAY, priority=1),
    ):
        assert outcome.empty
        assert outcome.status == OutcomeStatus.EMPTY

    assert table.rows == [future]
    assert table.render() == before


def test_edit_current_in_place() -> None:
    a = Row.create("[[A]]", 10, "old", 1, TODAY)
    b = Row.create("[[B]]", 20, "", 1, TODAY)
    table = _table(a, b)

    outcome = table.edit_current(TODAY, priority=-3, notes="new\nnotes", next_repetition_date=TODAY + timedelta(days=2))

    assert outcome.status == OutcomeStatus.EDITED
    assert table.rows[0].link == "[[A]]"
    assert table.rows[0].priority == 0
    assert table.rows[0].notes == "new notes"
    assert table.rows[0].next_repetition_date == TODAY + timedelta(days=2)
    assert table.rows[0].repetition_count == 1
    assert table.rows[1] == b


def test_contains_link_and_add_multiple() -> None:
    table = _table()
    added = table.add_multiple(Row.create(f"[[N{i}]]", i, "", 1, TODAY) for i in range(3))
    assert added == 3
    assert table.contains_link("[[N1]]")
    assert not table.contains_link("[[N9]]")
