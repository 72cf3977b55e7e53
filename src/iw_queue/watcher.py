# src/iw_queue/watcher.py

from __future__ import annotations

"""
Auto-add watcher.

A small polling loop that:
- snapshots the Markdown notes in the vault,
- on every tick, finds notes that appeared since the last tick,
- adds each new note to the active queue with a random default priority
  and the default first repetition date.

Notes inside the queue folder (the queues themselves) are never added.
Queue operations run under state.lock so they never interleave with the console.
"""

import asyncio
import contextlib
import logging
import random
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from .core.state import AppState
from .queue import QueueError, Row
from .vault import links
from .vault.files import normalize_path

logger = logging.getLogger(__name__)


def _snapshot(state: AppState) -> set[str]:
    queue_folder = normalize_path(state.settings.queue_folder_path)
    return {
        p
        for p in state.docs.list_markdown("")
        if not (queue_folder and (p == queue_folder or p.startswith(queue_folder + "/")))
    }


def add_new_notes(state: AppState, paths: list[str], today: date, rng: random.Random | None = None) -> int:
    """Add newly created notes to the active queue. Returns how many were added."""
    store = state.queue
    if store is None or not paths:
        return 0

    r = rng or random
    settings = state.settings
    lo, hi = sorted((settings.default_priority_min, settings.default_priority_max))
    try:
        first_rep = store.resolve_date(settings.default_first_rep_date, today)
        rows = [
            Row.create(
                link=links.to_link_text(p),
                priority=r.randint(lo, hi),
                notes="",
                repetition_count=1,
                next_repetition_date=first_rep,
            )
            for p in sorted(paths)
        ]
        for row in rows:
            logger.info("Auto adding new note to queue %s: %s", store.path, row.link)
        with state.lock:
            return store.add_multiple(rows, skip_existing=True)
    except QueueError:
        logger.exception("Auto-add failed for %d note(s)", len(paths))
        return 0


async def run_auto_adder(
    state: AppState,
    *,
    today_fn: Callable[[], date] | None = None,
    interval_seconds: float = 5.0,
    stop_event: asyncio.Event | None = None,
) -> None:
    """
    Polling watcher. Runs until stop_event is set or the task is cancelled.

    The first snapshot is the baseline: notes that already exist are not added.
    """
    sleep_s = max(0.01, float(interval_seconds))
    today_fn = today_fn or state.today

    try:
        known = _snapshot(state)
    except OSError:
        logger.exception("Initial vault snapshot failed")
        known = set()
    logger.info("Auto-add watcher started (%d notes known).", len(known))

    while stop_event is None or not stop_event.is_set():
        if stop_event is None:
            await asyncio.sleep(sleep_s)
        else:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)
            if stop_event.is_set():
                break

        try:
            current = _snapshot(state)
        except OSError:
            logger.exception("Vault snapshot failed")
            continue

        created = current - known
        known = current
        if created:
            add_new_notes(state, list(created), today_fn())

    logger.info("Auto-add watcher stopped.")


@dataclass
class WatcherRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal watcher stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_auto_adder_in_background(state: AppState) -> WatcherRunner | None:
    """
    Start the watcher in a background thread (so the console REPL can run in parallel).
    """
    if not state.settings.auto_add_new_notes:
        logger.info("Auto-add of new notes disabled, not starting.")
        return None

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_auto_adder(
                    state,
                    interval_seconds=state.settings.watch_interval_seconds,
                    stop_event=stop_event,
                )
            )
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="iw-auto-add", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Watcher thread did not initialize properly.")
        return None

    logger.info("Auto-add watcher thread started.")
    return WatcherRunner(thread=t, loop=loop, stop_event=stop_event)
