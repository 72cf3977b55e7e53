# src/iw_queue/core/notify.py

from __future__ import annotations

import logging

logger = logging.getLogger("iw_queue.notify")


class LogNotifier:
    """
    Notifier backed by logging.

    The console handler only shows WARNING+ from this logger (command replies
    already carry the informational messages); the file log gets everything.
    """

    def notify(self, level: int, message: str) -> None:
        logger.log(level, "%s", message)
