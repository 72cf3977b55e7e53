# tests/test_store.py

from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path

import pytest

from iw_queue.dates import NaturalDateResolver
from iw_queue.queue import (
    OutcomeStatus,
    QueueConflictError,
    QueueLoadError,
    QueueSaveError,
    QueueStore,
    Reschedule,
    Row,
    ValidationError,
)
from iw_queue.queue.codec import HEADER_LINE, SEPARATOR_LINE, decode
from iw_queue.queue.store import NO_REPETITIONS
from iw_queue.vault.files import VaultFiles

from .conftest import QUEUE_PATH, TODAY
from .fakes import FailingWriteDocs, MemoryDocs, RecordingNotifier, UnreadableDocs


def _row(link: str, priority: int = 30, when: date = TODAY) -> Row:
    return Row.create(link, priority, "", 1, when)


def test_missing_document_is_empty_queue(store: QueueStore) -> None:
    table = store.load()
    assert table.rows == []
    assert not store.has_reps(TODAY)
    assert store.current_rep(TODAY) is None


def test_add_creates_document_and_load_sorts(store: QueueStore, docs: MemoryDocs) -> None:
    store.add(_row("[[Later]]", 10, TODAY + timedelta(days=1)))
    store.add(_row("[[Low]]", 80))
    store.add(_row("[[High]]", 20))

    assert QUEUE_PATH in docs.files
    assert docs.writes == 3
    assert [r.link for r in store.load().rows] == ["[[High]]", "[[Low]]", "[[Later]]"]
    assert store.current_rep(TODAY).link == "[[High]]"


def test_next_repetition_reschedules_and_saves(store: QueueStore, docs: MemoryDocs) -> None:
    store.add(_row("[[Note]]"))

    outcome = store.next_repetition(TODAY, Reschedule(TODAY + timedelta(days=3)))

    assert outcome.status == OutcomeStatus.RESCHEDULED
    (row,) = decode(docs.files[QUEUE_PATH]).rows
    assert row.repetition_count == 2
    assert row.next_repetition_date == TODAY + timedelta(days=3)
    assert not store.has_reps(TODAY)


def test_next_repetition_drops_row(store: QueueStore, docs: MemoryDocs) -> None:
    store.add(_row("[[Note]]"))
    outcome = store.next_repetition(TODAY)
    assert outcome.status == OutcomeStatus.ADVANCED
    assert decode(docs.files[QUEUE_PATH]).rows == []


def test_empty_queue_does_not_write(store: QueueStore, docs: MemoryDocs, notifier: RecordingNotifier) -> None:
    assert store.dismiss_current(TODAY).empty
    assert store.next_repetition(TODAY).empty
    assert store.edit_current(TODAY, priority=5).empty

    assert docs.writes == 0
    assert notifier.messages.count(NO_REPETITIONS) == 3


def test_dismiss_keeps_surrounding_text(docs: MemoryDocs, notifier: RecordingNotifier) -> None:
    text = (
        "---\ntags: [iw-queue]\n---\n# Reading\n\n"
        + HEADER_LINE
        + SEPARATOR_LINE
        + "| [[B]] | 20 | | 1 | 2024-03-01 |\n"
        + "| [[A]] | 10 | | 1 | 2024-03-01 |\n"
        + "\nfooter text\n"
    )
    docs.files[QUEUE_PATH] = text
    store = QueueStore(QUEUE_PATH, docs, NaturalDateResolver(), notifier)

    outcome = store.dismiss_current(TODAY)

    assert outcome.row.link == "[[A]]"
    saved = docs.files[QUEUE_PATH]
    assert saved.startswith("---\ntags: [iw-queue]\n---\n# Reading\n\n")
    assert saved.endswith("\nfooter text\n")
    assert [r.link for r in decode(saved).rows] == ["[[B]]"]


def test_malformed_rows_warn_and_survive_save(docs: MemoryDocs, notifier: RecordingNotifier) -> None:
    bad = "| [[Broken]] | lots | | 1 | 2024-03-01 |\n"
    docs.files[QUEUE_PATH] = HEADER_LINE + SEPARATOR_LINE + "| [[A]] | 10 | | 1 | 2024-03-01 |\n" + bad
    store = QueueStore(QUEUE_PATH, docs, NaturalDateResolver(), notifier)

    table = store.load()
    assert [r.link for r in table.rows] == ["[[A]]"]
    assert any(n.level == logging.WARNING for n in notifier.notices)

    store.dismiss_current(TODAY)
    assert bad in docs.files[QUEUE_PATH]


def test_failed_save_keeps_pending_until_retry(notifier: RecordingNotifier) -> None:
    docs = FailingWriteDocs()
    store = QueueStore(QUEUE_PATH, docs, NaturalDateResolver(), notifier)

    with pytest.raises(QueueSaveError) as excinfo:
        store.add(_row("[[Note]]"))

    assert store.pending is not None
    assert excinfo.value.table is store.pending
    assert QUEUE_PATH not in docs.files

    docs.fail_writes = False
    assert store.retry_save() is True
    assert store.pending is None
    assert [r.link for r in store.load().rows] == ["[[Note]]"]
    assert store.retry_save() is False


def test_concurrent_change_is_detected(store: QueueStore, docs: MemoryDocs) -> None:
    store.add(_row("[[A]]"))
    table = store.load()
    table.dismiss(TODAY)

    # Someone else edits the document between our load and our save.
    docs.files[QUEUE_PATH] += "| [[Hand added]] | 5 | | 1 | 2024-03-01 |\n"

    with pytest.raises(QueueConflictError) as excinfo:
        store.save(table)

    assert "[[Hand added]]" in docs.files[QUEUE_PATH]
    assert excinfo.value.table is table
    # A stale table is never kept for retry.
    assert store.pending is None
    assert store.retry_save() is False


def test_retry_after_conflict_drops_pending(notifier: RecordingNotifier) -> None:
    docs = FailingWriteDocs()
    store = QueueStore(QUEUE_PATH, docs, NaturalDateResolver(), notifier)
    docs.fail_writes = False
    store.add(_row("[[A]]"))

    docs.fail_writes = True
    with pytest.raises(QueueSaveError):
        store.dismiss_current(TODAY)
    assert store.pending is not None

    docs.files[QUEUE_PATH] += "| [[Hand added]] | 5 | | 1 | 2024-03-01 |\n"
    docs.fail_writes = False

    with pytest.raises(QueueConflictError):
        store.retry_save()

    assert store.pending is None
    assert store.retry_save() is False
    assert [r.link for r in store.load().rows] == ["[[Hand added]]", "[[A]]"]


def test_successful_save_reports_discarded_pending(notifier: RecordingNotifier) -> None:
    docs = FailingWriteDocs()
    store = QueueStore(QUEUE_PATH, docs, NaturalDateResolver(), notifier)

    with pytest.raises(QueueSaveError):
        store.add(_row("[[Lost]]"))

    docs.fail_writes = False
    store.add(_row("[[Kept]]"))

    assert store.pending is None
    assert [r.link for r in store.load().rows] == ["[[Kept]]"]
    assert any(n.level == logging.WARNING and "Discarded" in n.message for n in notifier.notices)


def test_non_utf8_document_is_a_load_error(tmp_path: Path, notifier: RecordingNotifier) -> None:
    files = VaultFiles(tmp_path)
    (tmp_path / "IW-Queues").mkdir()
    (tmp_path / QUEUE_PATH).write_bytes(b"\xff\xfe garbage\n")
    store = QueueStore(QUEUE_PATH, files, NaturalDateResolver(), notifier)

    with pytest.raises(QueueLoadError):
        store.load()
    with pytest.raises(QueueLoadError):
        store.add(_row("[[A]]"))
    assert (tmp_path / QUEUE_PATH).read_bytes() == b"\xff\xfe garbage\n"


def test_unreadable_document(notifier: RecordingNotifier) -> None:
    docs = UnreadableDocs({QUEUE_PATH: "anything"})
    store = QueueStore(QUEUE_PATH, docs, NaturalDateResolver(), notifier)
    with pytest.raises(QueueLoadError):
        store.load()


def test_edit_with_bad_date_keeps_old_date(store: QueueStore, notifier: RecordingNotifier) -> None:
    store.add(_row("[[Note]]", 40))

    outcome = store.edit_current(TODAY, priority=120, notes="draft two", next_rep="###")

    assert outcome.status == OutcomeStatus.EDITED
    row = store.load().rows[0]
    assert row.next_repetition_date == TODAY
    assert row.priority == 100
    assert row.notes == "draft two"
    assert any(n.level == logging.WARNING and "###" in n.message for n in notifier.notices)


def test_edit_with_out_of_range_date_keeps_old_date(store: QueueStore, notifier: RecordingNotifier) -> None:
    store.add(_row("[[Note]]", 40))

    outcome = store.edit_current(TODAY, notes="kept", next_rep="in 999999999 days")

    assert outcome.status == OutcomeStatus.EDITED
    row = store.load().rows[0]
    assert row.next_repetition_date == TODAY
    assert row.notes == "kept"
    assert any(n.level == logging.WARNING for n in notifier.notices)


def test_out_of_range_reschedule_is_a_validation_error(store: QueueStore, docs: MemoryDocs) -> None:
    store.add(_row("[[Note]]"))
    writes = docs.writes

    with pytest.raises(ValidationError):
        store.resolve_date("in 99999 years", TODAY)

    assert docs.writes == writes
    assert store.current_rep(TODAY).link == "[[Note]]"


def test_edit_with_natural_date(store: QueueStore) -> None:
    store.add(_row("[[Note]]", 40))
    store.edit_current(TODAY, next_rep="in 3 days")
    assert store.load().rows[0].next_repetition_date == TODAY + timedelta(days=3)


def test_resolve_date(store: QueueStore) -> None:
    assert store.resolve_date("tomorrow", TODAY) == TODAY + timedelta(days=1)
    with pytest.raises(ValidationError):
        store.resolve_date("", TODAY)
    with pytest.raises(ValidationError):
        store.resolve_date("###", TODAY)


def test_add_multiple_skip_existing(store: QueueStore, docs: MemoryDocs, notifier: RecordingNotifier) -> None:
    store.add(_row("[[A]]"))

    added = store.add_multiple([_row("[[A]]"), _row("[[B]]"), _row("[[B]]")], skip_existing=True)

    assert added == 1
    assert [r.link for r in store.load().rows] == ["[[A]]", "[[B]]"]
    assert "Skipped 2 already queued" in notifier.messages[-1]

    writes = docs.writes
    assert store.add_multiple([_row("[[A]]")], skip_existing=True) == 0
    assert docs.writes == writes


def test_add_multiple_allows_duplicates_by_default(store: QueueStore) -> None:
    assert store.add_multiple([_row("[[A]]"), _row("[[A]]")]) == 2
    assert len(store.load().rows) == 2


def test_create_writes_front_matter(store: QueueStore, docs: MemoryDocs) -> None:
    assert store.create(["iw-queue", "reading"]) is True
    text = docs.files[QUEUE_PATH]
    assert text.startswith("---\ntags: [iw-queue, reading]\n---\n")
    assert HEADER_LINE in text
    assert store.create(["iw-queue"]) is False
    assert store.name == "IW-Queue"
