# src/iw_queue/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- runs one command given on the command line (`iwq next "in 3 days"`), or
- starts the console REPL in the main thread,
with the auto-add watcher in a background thread (optional).
"""

from __future__ import annotations

import logging
import shlex
import signal
import sys

from ..cli.bootstrap import create_initial_state
from ..cli.commands import registry as command_registry
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..watcher import WatcherRunner, start_auto_adder_in_background

logger = logging.getLogger(__name__)


def run_once(state, argv: list[str]) -> int:
    """Run a single command from argv. Returns the process exit code."""
    line = "/" + " ".join(shlex.quote(a) for a in argv)
    try:
        with state.lock:
            reply = command_registry.handle(state, line, emit=print)
    except Exception:
        logger.exception("Command handler crashed.")
        print("Internal error while handling a command.")
        return 1
    print(reply)
    return 0


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    args = list(sys.argv[1:] if argv is None else argv)

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    # a one-shot command prints its reply; keep the console for warnings then
    if args:
        console_level = max(console_level, logging.WARNING)

    setup_logging(log_dir=getattr(settings, "data_dir", ".local/iw"), console_level=console_level)

    state = create_initial_state(settings=settings)

    if args:
        return run_once(state, args)

    logger.info("Starting %s...", getattr(settings, "app_name", "iw"))

    watcher: WatcherRunner | None = start_auto_adder_in_background(state)

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        raise KeyboardInterrupt

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except Exception:
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        run_console_loop(state)
    finally:
        if watcher is not None:
            watcher.stop()
            watcher.join(timeout=10.0)
        if state.queue is not None and state.queue.pending is not None:
            logger.warning("Unsaved queue changes for %s were not written.", state.queue.path)
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
