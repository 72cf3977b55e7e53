# src/iw_queue/dates.py

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_RELATIVE_RE = re.compile(
    r"^(?:in\s+)?\+?(\d+)\s*(d|day|days|w|week|weeks|m|month|months|y|year|years)$"
)
_AGO_RE = re.compile(r"^(\d+)\s*(day|days|week|weeks|month|months)\s+ago$")
_NEXT_RE = re.compile(r"^next\s+(\w+)$")


def _shift(today: date, amount: int, unit: str) -> date:
    u = unit[0]
    if u == "d":
        return today + timedelta(days=amount)
    if u == "w":
        return today + timedelta(weeks=amount)
    if u == "m":
        return today + relativedelta(months=amount)
    return today + relativedelta(years=amount)


def _weekday_after(today: date, name: str) -> date | None:
    name = name.lower()
    for i, day in enumerate(_WEEKDAYS):
        if day.startswith(name) and len(name) >= 3:
            ahead = (i - today.weekday()) % 7 or 7
            return today + timedelta(days=ahead)
    return None


class NaturalDateResolver:
    """
    Small natural-language date resolver.

    Understands, relative to the given `today`:
    - today / tomorrow / yesterday / now
    - "in 3 days", "+2w", "1 month", "3 days ago"
    - weekday names and "next friday" (strictly after today)
    - "next week" / "next month" / "next year"
    - anything dateutil can parse ("2024-05-01", "May 3 2025", ...)
    """

    def parse_date(self, text: str, today: date) -> date | None:
        s = " ".join((text or "").strip().lower().split())
        if not s:
            return None

        try:
            return self._resolve(s, today)
        except (ValueError, OverflowError):
            # Offsets past date.max, years dateutil cannot represent, ...
            logger.debug("Unparseable date text: %r", text)
            return None

    def _resolve(self, s: str, today: date) -> date | None:
        if s in ("today", "now"):
            return today
        if s == "tomorrow":
            return today + timedelta(days=1)
        if s == "yesterday":
            return today - timedelta(days=1)

        m = _RELATIVE_RE.match(s)
        if m:
            return _shift(today, int(m.group(1)), m.group(2))

        m = _AGO_RE.match(s)
        if m:
            return _shift(today, -int(m.group(1)), m.group(2))

        m = _NEXT_RE.match(s)
        if m:
            unit = m.group(1)
            if unit in ("week", "month", "year"):
                return _shift(today, 1, unit)
            return _weekday_after(today, unit)

        day = _weekday_after(today, s)
        if day is not None:
            return day

        return date_parser.parse(s, default=datetime(today.year, today.month, today.day)).date()
