# src/iw_queue/queue/store.py

from __future__ import annotations

import hashlib
import logging
import posixpath
from collections.abc import Callable, Iterable
from datetime import date
from typing import TypeVar

from ..core.ports import DateResolver, DocumentStore, Notifier
from . import index
from .codec import decode, encode
from .errors import QueueConflictError, QueueLoadError, QueueSaveError, ValidationError
from .models import Row
from .scheduler import OutcomeStatus, QueueTable, RepOutcome, Reschedule

logger = logging.getLogger(__name__)

T = TypeVar("T")

NO_REPETITIONS = "No repetitions!"


def content_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class QueueStore:
    """
    Load / mutate / save orchestration for one queue document.

    Every operation:
    - reads and decodes the document (rows re-sorted by the due ordering)
    - applies one transition to the in-memory table
    - encodes and writes the whole document back

    Concurrency:
    - the digest of the loaded text is checked again right before writing;
      if someone else wrote the document in between, QueueConflictError is
      raised instead of overwriting their change
    - a table whose save failed is kept in `pending` for retry_save()
    """

    def __init__(
        self,
        path: str,
        docs: DocumentStore,
        dates: DateResolver,
        notifier: Notifier,
    ) -> None:
        self.path = path
        self._docs = docs
        self._dates = dates
        self._notifier = notifier
        self.pending: QueueTable | None = None

    @property
    def name(self) -> str:
        base = posixpath.basename(self.path)
        return base[:-3] if base.lower().endswith(".md") else base

    def __repr__(self) -> str:
        return f"QueueStore({self.path!r})"

    # ---- load / save ----

    def exists(self) -> bool:
        return self._docs.exists(self.path)

    def load(self) -> QueueTable:
        try:
            if not self._docs.exists(self.path):
                logger.debug("Queue %s does not exist yet; empty table.", self.path)
                return QueueTable(path=self.path)
            text = self._docs.read(self.path)
        except (OSError, UnicodeDecodeError) as e:
            raise QueueLoadError(self.path, str(e)) from e

        doc = decode(text)
        table = QueueTable(
            path=self.path,
            rows=index.sort_rows(doc.rows),
            document=doc,
            digest=content_digest(text),
        )
        if doc.warnings:
            self._notifier.notify(
                logging.WARNING,
                f"Skipped {len(doc.warnings)} malformed row(s) in {self.path}.",
            )
        logger.debug("Loaded queue %s rows=%d", self.path, len(table.rows))
        return table

    def _current_digest(self) -> str | None:
        if not self._docs.exists(self.path):
            return None
        return content_digest(self._docs.read(self.path))

    def save(self, table: QueueTable) -> None:
        try:
            on_disk = self._current_digest()
        except (OSError, UnicodeDecodeError) as e:
            self.pending = table
            raise QueueSaveError(self.path, str(e), table) from e

        if on_disk != table.digest:
            # A stale table can never be written; the change has to be redone.
            self.pending = None
            raise QueueConflictError(
                self.path, "document changed since it was loaded; the change was not saved, redo it", table
            )

        text = table.render()
        try:
            self._docs.write(self.path, text)
        except OSError as e:
            self.pending = table
            raise QueueSaveError(self.path, str(e), table) from e

        table.digest = content_digest(text)
        if self.pending is not None and self.pending is not table:
            self._notifier.notify(
                logging.WARNING,
                f"Discarded the unsaved change from an earlier failed save of {self.path}.",
            )
        self.pending = None
        logger.debug("Saved queue %s rows=%d", self.path, len(table.rows))

    def retry_save(self) -> bool:
        """
        Write the table of the last failed save again. False if nothing is pending.

        Raises QueueConflictError (and drops the pending table) when the
        document was changed in the meantime.
        """
        if self.pending is None:
            return False
        self.save(self.pending)
        return True

    def create(self, tags: Iterable[str] = ()) -> bool:
        """Write an empty queue document (front matter + table header). False if it exists."""
        if self.exists():
            return False
        tags = [t for t in tags if t]
        front = f"---\ntags: [{', '.join(tags)}]\n---\n" if tags else ""
        try:
            self._docs.write(self.path, front + encode([]))
        except OSError as e:
            raise QueueSaveError(self.path, str(e)) from e
        logger.info("Created queue %s", self.path)
        return True

    def _mutate(self, fn: Callable[[QueueTable], T], *, changed: Callable[[T], bool]) -> T:
        table = self.load()
        result = fn(table)
        if changed(result):
            self.save(table)
        return result

    # ---- read-only accessors ----

    def current_rep(self, today: date) -> Row | None:
        return self.load().current_rep(today)

    def has_reps(self, today: date) -> bool:
        return self.load().has_reps(today)

    def resolve_date(self, text: str, today: date) -> date:
        value = self._dates.parse_date(text, today) if text and text.strip() else None
        if value is None:
            raise ValidationError(f"Could not parse date: {text!r}")
        return value

    # ---- bulk appends ----

    def add(self, row: Row) -> Row:
        self._mutate(lambda t: t.add(row), changed=lambda _: True)
        logger.info("Added to queue %s: %s", self.path, row.link)
        self._notifier.notify(logging.INFO, f"Added {row.link} to {self.name}.")
        return row

    def add_multiple(self, rows: Iterable[Row], *, skip_existing: bool = False) -> int:
        rows = list(rows)

        def apply(table: QueueTable) -> int:
            todo = rows
            if skip_existing:
                seen: set[str] = set()
                todo = []
                for r in rows:
                    if r.link in seen or table.contains_link(r.link):
                        logger.debug("Skipping %s: already in queue", r.link)
                        continue
                    seen.add(r.link)
                    todo.append(r)
            return table.add_multiple(todo)

        added = self._mutate(apply, changed=lambda n: n > 0)
        skipped = len(rows) - added
        msg = f"Added {added} item(s) to {self.name}."
        if skipped:
            msg += f" Skipped {skipped} already queued."
        self._notifier.notify(logging.INFO, msg)
        return added

    # ---- repetitions ----

    def _report(self, outcome: RepOutcome) -> RepOutcome:
        if outcome.empty:
            self._notifier.notify(logging.INFO, NO_REPETITIONS)
        return outcome

    def next_repetition(self, today: date, reschedule: Reschedule | None = None) -> RepOutcome:
        outcome = self._mutate(lambda t: t.advance(today, reschedule), changed=lambda o: not o.empty)
        if outcome.status == OutcomeStatus.RESCHEDULED and outcome.rescheduled is not None:
            logger.info(
                "Repetition done: %s, next on %s",
                outcome.rescheduled.link,
                outcome.rescheduled.next_repetition_date,
            )
        elif outcome.row is not None:
            logger.info("Repetition done: %s", outcome.row.link)
        return self._report(outcome)

    def dismiss_current(self, today: date) -> RepOutcome:
        outcome = self._mutate(lambda t: t.dismiss(today), changed=lambda o: not o.empty)
        if outcome.row is not None:
            logger.info("Dismissed: %s", outcome.row.link)
            self._notifier.notify(logging.INFO, f"Dismissed {outcome.row.link}.")
        return self._report(outcome)

    def edit_current(
        self,
        today: date,
        *,
        priority: int | None = None,
        notes: str | None = None,
        next_rep: str | date | None = None,
    ) -> RepOutcome:
        """
        Edit the current repetition in place.

        An unparseable date never fails the edit: the old date is kept and a
        warning is reported; priority is clamped.
        """
        next_date: date | None = None
        if isinstance(next_rep, date):
            next_date = next_rep
        elif next_rep:
            try:
                next_date = self.resolve_date(next_rep, today)
            except ValidationError as e:
                self._notifier.notify(logging.WARNING, f"{e}; keeping the current date.")

        outcome = self._mutate(
            lambda t: t.edit_current(
                today, priority=priority, notes=notes, next_repetition_date=next_date
            ),
            changed=lambda o: not o.empty,
        )
        if outcome.row is not None:
            logger.info("Edited current repetition: %s", outcome.row.link)
        return self._report(outcome)
