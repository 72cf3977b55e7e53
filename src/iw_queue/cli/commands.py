# src/iw_queue/cli/commands.py

from __future__ import annotations

import inspect
import logging
import posixpath
import random
import shlex
from collections.abc import Callable
from datetime import date
from typing import cast

from ..core.state import AppState
from ..queue import QueueError, QueueStore, Reschedule, Row, ValidationError
from ..queue.index import rep_state
from ..queue.store import NO_REPETITIONS
from ..vault import links
from ..vault.files import normalize_path, with_md_extension

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console and the one-shot CLI (/help, /next, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Queue errors (load/save failures, bad input) become the reply text.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except QueueError as e:
            logger.info("/%s failed: %s", name, e)
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate `key=value` options from positional arguments."""
    positional: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key and key.isidentifier():
            opts[key.lower()] = value
        else:
            positional.append(a)
    return positional, opts


def _int_opt(opts: dict[str, str], key: str, default: int | None = None) -> int | None:
    raw = opts.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid {key}: {raw!r}") from None


def _active_queue(state: AppState) -> QueueStore:
    if state.queue is None:
        raise ValidationError("No queue loaded. Use /load <name> or /create <name>.")
    return state.queue


def _target_queue(state: AppState, opts: dict[str, str]) -> QueueStore:
    name = opts.get("queue")
    if name:
        return state.store_for(state.queue_path(name))
    return _active_queue(state)


def _note_path(state: AppState, raw: str) -> str:
    path = with_md_extension(normalize_path(raw))
    if not state.docs.exists(path):
        raise ValidationError(f"Note not found: {raw}")
    return path


def _first_rep(state: AppState, store: QueueStore, opts: dict[str, str], today: date) -> date:
    text = opts.get("date") or state.settings.default_first_rep_date
    return store.resolve_date(text, today)


def _random_priority(state: AppState) -> int:
    lo, hi = sorted((state.settings.default_priority_min, state.settings.default_priority_max))
    return random.randint(lo, hi)


def spread_priorities(count: int, pmin: int, pmax: int) -> list[int]:
    """Evenly spread `count` priorities from pmin towards pmax (first item gets pmin)."""
    if count <= 0:
        return []
    step = (pmax - pmin) / count
    return [round(pmin + step * i) for i in range(count)]


def _describe(row: Row) -> str:
    notes = f" - {row.notes}" if row.notes else ""
    return (
        f"{row.link} (priority {row.priority}, rep {row.repetition_count}, "
        f"next {row.next_repetition_date.isoformat()}){notes}"
    )


def _bulk_add(state: AppState, link_list: list[str], opts: dict[str, str], what: str) -> str:
    if not link_list:
        return f"No {what} to add."

    store = _target_queue(state, opts)
    today = state.today()
    pmin = _int_opt(opts, "min", state.settings.default_priority_min)
    pmax = _int_opt(opts, "max", state.settings.default_priority_max)
    first_rep = _first_rep(state, store, opts, today)

    rows = [
        Row.create(link, priority, "", 1, first_rep)
        for link, priority in zip(link_list, spread_priorities(len(link_list), pmin, pmax))
    ]
    added = store.add_multiple(rows, skip_existing=True)
    skipped = len(rows) - added
    reply = f"Added {added} of {len(rows)} {what} to {store.name}."
    if skipped:
        reply += f" {skipped} already queued."
    return reply


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    store = _active_queue(state)
    today = state.today()
    table = store.load()
    current = table.current_rep(today)
    lines = [
        "Status:",
        f"  Queue: {store.path}{'' if store.exists() else ' (not created yet)'}",
        f"  Items: {len(table.rows)} ({len(table.due_rows(today))} due)",
        f"  Current: {_describe(current) if current else '-'}",
    ]
    if table.warnings:
        lines.append(f"  Malformed rows: {len(table.warnings)}")
    if store.pending is not None:
        lines.append("  Unsaved changes pending: use /retry")
    return "\n".join(lines)


def cmd_queues(state: AppState, args: list[str]) -> str:
    files = state.queue_files()
    if not files:
        return f"No queues in {state.settings.queue_folder_path}."
    active = state.queue.path if state.queue else None
    lines = ["Queues:"]
    for path in files:
        mark = "*" if path == active else " "
        lines.append(f" {mark} {path}")
    return "\n".join(lines)


def cmd_load(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /load <queue name>"
    path = state.queue_path(" ".join(args))
    if not state.docs.exists(path):
        return f"Queue not found: {path}"
    state.load_queue(path)
    return f"Loaded queue: {path}"


def cmd_create(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /create <queue name>"
    path = state.queue_path(" ".join(args))
    store = state.store_for(path)
    created = store.create(state.settings.queue_tags)
    state.load_queue(path)
    if not created:
        return f"Queue already exists, loaded: {path}"
    return f"Created and loaded queue: {path}"


def cmd_current(state: AppState, args: list[str]) -> str:
    current = _active_queue(state).current_rep(state.today())
    if current is None:
        return NO_REPETITIONS
    return f"Current repetition: {_describe(current)}"


def cmd_next(state: AppState, args: list[str]) -> str:
    """
    /next                       -> done with the current rep, drop it
    /next <date> [priority=N]   -> done, schedule it again on <date>
    """
    store = _active_queue(state)
    today = state.today()
    positional, opts = split_options(args)

    reschedule = None
    date_text = " ".join(positional) or opts.get("date", "")
    if date_text:
        reschedule = Reschedule(
            next_repetition_date=store.resolve_date(date_text, today),
            priority=_int_opt(opts, "priority"),
        )
    elif "priority" in opts:
        return "Usage: /next <date> [priority=N] (a priority needs a date)."

    outcome = store.next_repetition(today, reschedule)
    if outcome.empty:
        return NO_REPETITIONS

    lines = [f"Done: {outcome.row.link}"]
    if outcome.rescheduled is not None:
        lines.append(f"Next repetition of it: {outcome.rescheduled.next_repetition_date.isoformat()}")
    upcoming = store.current_rep(today)
    lines.append(f"Current repetition: {_describe(upcoming)}" if upcoming else NO_REPETITIONS)
    return "\n".join(lines)


def cmd_dismiss(state: AppState, args: list[str]) -> str:
    store = _active_queue(state)
    today = state.today()
    outcome = store.dismiss_current(today)
    if outcome.empty:
        return NO_REPETITIONS
    upcoming = store.current_rep(today)
    return f"Dismissed: {outcome.row.link}\n" + (
        f"Current repetition: {_describe(upcoming)}" if upcoming else NO_REPETITIONS
    )


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit priority=20 notes="reread chapter 2" date="next week"
    """
    _, opts = split_options(args)
    if not any(k in opts for k in ("priority", "notes", "date")):
        return "Usage: /edit [priority=N] [notes=text] [date=when]"
    store = _active_queue(state)
    try:
        priority = _int_opt(opts, "priority")
    except ValidationError as e:
        state.notifier.notify(logging.WARNING, f"{e}; keeping the current priority.")
        priority = None
    outcome = store.edit_current(
        state.today(),
        priority=priority,
        notes=opts.get("notes"),
        next_rep=opts.get("date"),
    )
    if outcome.empty:
        return NO_REPETITIONS
    return f"Edited: {_describe(outcome.row)}"


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list      -> due items in review order
    /list all  -> every item with its state
    """
    store = _active_queue(state)
    today = state.today()
    table = store.load()
    show_all = bool(args) and args[0].lower() == "all"

    if show_all:
        if not table.rows:
            return f"{store.name} is empty."
        lines = [f"{store.name}: {len(table.rows)} item(s)"]
        for i, row in enumerate(table.rows):
            lines.append(f"  [{rep_state(table.rows, i, today).value}] {_describe(row)}")
        return "\n".join(lines)

    due = list(table.due_rows(today))
    if not due:
        return NO_REPETITIONS
    lines = [f"{store.name}: {len(due)} due"]
    for n, row in enumerate(due, start=1):
        lines.append(f"  {n}. {_describe(row)}")
    return "\n".join(lines)


def cmd_retry(state: AppState, args: list[str]) -> str:
    store = _active_queue(state)
    if not store.retry_save():
        return "Nothing to retry."
    return f"Saved {store.path}."


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <note> [priority=N] [date=when] [notes=text] [queue=name]
    """
    positional, opts = split_options(args)
    if not positional:
        return "Usage: /add <note> [priority=N] [date=when] [notes=text] [queue=name]"
    note = _note_path(state, " ".join(positional))
    store = _target_queue(state, opts)
    today = state.today()

    row = Row.create(
        link=links.to_link_text(note),
        priority=_int_opt(opts, "priority", _random_priority(state)),
        notes=opts.get("notes", ""),
        repetition_count=1,
        next_repetition_date=_first_rep(state, store, opts, today),
    )
    store.add(row)
    return f"Added to {store.name}: {_describe(row)}"


def cmd_addblock(state: AppState, args: list[str]) -> str:
    """
    /addblock <note> <line> [ref=name] [priority=N] [date=when] [notes=text] [queue=name]

    Lines are 1-based. A block id is appended to the line when it has none.
    """
    positional, opts = split_options(args)
    if len(positional) < 2:
        return "Usage: /addblock <note> <line> [ref=name] [priority=N] [date=when] [notes=text]"
    note = _note_path(state, " ".join(positional[:-1]))
    try:
        line_no = int(positional[-1]) - 1
    except ValueError:
        return f"Invalid line number: {positional[-1]}"

    store = _target_queue(state, opts)
    today = state.today()
    priority = _int_opt(opts, "priority", _random_priority(state))
    first_rep = _first_rep(state, store, opts, today)

    text = state.docs.read(note)
    try:
        new_text, block_id = links.ensure_block_ref(text, line_no, opts.get("ref", ""))
    except (IndexError, ValueError) as e:
        return f"Failed to add block: {e}."
    if new_text != text:
        state.docs.write(note, new_text)

    row = Row.create(
        link=links.to_link_text(note, f"#^{block_id}"),
        priority=priority,
        notes=opts.get("notes", ""),
        repetition_count=1,
        next_repetition_date=first_rep,
    )
    store.add(row)
    return f"Added to {store.name}: {_describe(row)}"


def cmd_addlinks(state: AppState, args: list[str]) -> str:
    """/addlinks <note> [min=N] [max=N] [date=when] [queue=name]"""
    positional, opts = split_options(args)
    if not positional:
        return "Usage: /addlinks <note> [min=N] [max=N] [date=when] [queue=name]"
    note = _note_path(state, " ".join(positional))
    found = links.links_in_note(state.docs.read(note), note, state.docs.list_markdown(""))
    return _bulk_add(state, found, opts, "links")


def cmd_addblocks(state: AppState, args: list[str]) -> str:
    """/addblocks <note> [min=N] [max=N] [date=when] [queue=name]"""
    positional, opts = split_options(args)
    if not positional:
        return "Usage: /addblocks <note> [min=N] [max=N] [date=when] [queue=name]"
    note = _note_path(state, " ".join(positional))
    found = links.block_links(state.docs.read(note), note)
    return _bulk_add(state, found, opts, "block references")


def cmd_addfolder(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/addfolder <folder> [min=N] [max=N] [date=when] [queue=name]"""
    positional, opts = split_options(args)
    if not positional:
        return "Usage: /addfolder <folder> [min=N] [max=N] [date=when] [queue=name]"
    folder = normalize_path(" ".join(positional))
    queue_folder = normalize_path(state.settings.queue_folder_path)
    notes = [
        p
        for p in state.docs.list_markdown(folder)
        if not (queue_folder and posixpath.dirname(p) == queue_folder)
    ]
    if not notes:
        return f"Folder contains no notes: {folder or '/'}"
    if emit is not None:
        emit(f"Found {len(notes)} note(s) in {folder or '/'}, adding...")
    return _bulk_add(state, [links.to_link_text(p) for p in notes], opts, "notes")


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show the active queue and its current repetition.")
registry.register("queues", cmd_queues, help_text="List queues in the queue folder.")
registry.register("load", cmd_load, help_text="Load a queue: /load <name>.")
registry.register("create", cmd_create, help_text="Create and load a new queue: /create <name>.")
registry.register("current", cmd_current, help_text="Show the current repetition.", aliases=["cur"])
registry.register(
    "next",
    cmd_next,
    help_text="Next repetition: /next | /next <date> [priority=N] to schedule it again.",
    aliases=["n"],
)
registry.register("dismiss", cmd_dismiss, help_text="Dismiss the current repetition for good.")
registry.register(
    "edit", cmd_edit, help_text="Edit the current rep: /edit [priority=N] [notes=text] [date=when]."
)
registry.register("list", cmd_list, help_text="List due items: /list | /list all.", aliases=["ls"])
registry.register("retry", cmd_retry, help_text="Retry the last failed save.")
registry.register(
    "add", cmd_add, help_text="Add a note: /add <note> [priority=N] [date=when] [notes=text] [queue=name]."
)
registry.register("addblock", cmd_addblock, help_text="Add a block of a note: /addblock <note> <line> [ref=name].")
registry.register("addlinks", cmd_addlinks, help_text="Bulk add the links inside a note: /addlinks <note>.")
registry.register("addblocks", cmd_addblocks, help_text="Bulk add the block references of a note: /addblocks <note>.")
registry.register("addfolder", cmd_addfolder, help_text="Bulk add every note in a folder: /addfolder <folder>.")
