# src/iw_queue/queue/codec.py

"""
Markdown table codec for queue documents.

A queue document is plain text with one Markdown table in it:

    ---
    tags: iw-queue
    ---
    | Link | Priority | Notes | Repetition Count | Next Repetition Date |
    |------|----------|-------|------------------|----------------------|
    | [[Some note]] | 30 | first pass | 1 | 2024-01-31 |

Everything outside the table region (front matter, prose before or after the
table) is carried through untouched. Literal pipes inside cells are written as
`\\|`.

decode() never raises on bad rows: each malformed data line is skipped, kept
verbatim in `rejected` and reported as a ParseWarning.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from .errors import ValidationError
from .models import Row

logger = logging.getLogger(__name__)

COLUMNS: tuple[str, ...] = (
    "Link",
    "Priority",
    "Notes",
    "Repetition Count",
    "Next Repetition Date",
)

HEADER_LINE = "| " + " | ".join(COLUMNS) + " |\n"
SEPARATOR_LINE = "|" + "|".join("-" * (len(c) + 2) for c in COLUMNS) + "|\n"

_SEPARATOR_RE = re.compile(r"^\s*\|?\s*:?-+:?\s*(\|\s*:?-+:?\s*)*\|?\s*$")
_WS_RE = re.compile(r"\s+")


@dataclass(slots=True, frozen=True)
class ParseWarning:
    line_no: int
    reason: str
    raw: str

    def __str__(self) -> str:
        return f"line {self.line_no}: {self.reason}"


@dataclass(slots=True)
class DecodedDocument:
    """
    Result of decode().

    `preamble` + table region + `trailing` reproduces the input text.
    """

    preamble: str = ""
    header: str = ""
    rows: list[Row] = field(default_factory=list)
    trailing: str = ""
    rejected: list[str] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)
    has_table: bool = False


def escape_cell(value: str) -> str:
    return value.replace("|", "\\|")


def split_cells(line: str) -> list[str]:
    """
    Split one table line into unescaped, stripped cell values.

    `\\|` is a literal pipe; any other backslash is kept as-is.
    """
    s = line.strip()
    if s.startswith("|"):
        s = s[1:]

    cells: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(s):
        ch = s[i]
        if ch == "\\" and i + 1 < len(s) and s[i + 1] == "|":
            current.append("|")
            i += 2
            continue
        if ch == "|":
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    tail = "".join(current).strip()
    if tail:
        cells.append(tail)
    return cells


def _normalize_header_cell(cell: str) -> str:
    return _WS_RE.sub(" ", cell).strip().lower()


def is_header_line(line: str) -> bool:
    if "|" not in line:
        return False
    cells = [_normalize_header_cell(c) for c in split_cells(line)]
    return cells == [c.lower() for c in COLUMNS]


def is_separator_line(line: str) -> bool:
    return "-" in line and bool(_SEPARATOR_RE.match(line))


def _parse_priority(cell: str) -> int:
    try:
        value = float(cell)
    except ValueError:
        raise ValidationError(f"non-numeric priority {cell!r}") from None
    if not math.isfinite(value):
        raise ValidationError(f"non-numeric priority {cell!r}")
    return round(value)


def _parse_repetition_count(cell: str) -> int:
    if not cell:
        return 1
    try:
        return int(cell)
    except ValueError:
        raise ValidationError(f"invalid repetition count {cell!r}") from None


def _parse_date(cell: str) -> date:
    try:
        return date.fromisoformat(cell)
    except ValueError:
        raise ValidationError(f"unparseable date {cell!r}") from None


def parse_row(line: str) -> Row:
    """Parse one data line. Raises ValidationError on any malformed cell."""
    cells = split_cells(line)
    if len(cells) != len(COLUMNS):
        raise ValidationError(f"expected {len(COLUMNS)} columns, got {len(cells)}")

    link, priority, notes, count, next_rep = cells
    return Row.create(
        link=link,
        priority=_parse_priority(priority),
        notes=notes,
        repetition_count=_parse_repetition_count(count),
        next_repetition_date=_parse_date(next_rep),
    )


def format_row(row: Row) -> str:
    return (
        f"| {escape_cell(row.link)} "
        f"| {row.priority} "
        f"| {escape_cell(row.notes)} "
        f"| {row.repetition_count} "
        f"| {row.next_repetition_date.isoformat()} |\n"
    )


def decode(text: str) -> DecodedDocument:
    lines = text.splitlines(keepends=True)

    start = None
    for i in range(len(lines) - 1):
        if is_header_line(lines[i]) and is_separator_line(lines[i + 1]):
            start = i
            break

    if start is None:
        return DecodedDocument(preamble=text)

    doc = DecodedDocument(
        preamble="".join(lines[:start]),
        header=lines[start].rstrip("\r\n"),
        has_table=True,
    )

    end = start + 2
    while end < len(lines) and lines[end].lstrip().startswith("|"):
        raw = lines[end]
        try:
            doc.rows.append(parse_row(raw))
        except ValidationError as e:
            warning = ParseWarning(line_no=end + 1, reason=str(e), raw=raw.rstrip("\r\n"))
            logger.warning("Skipping malformed queue row (%s): %s", warning, warning.raw)
            doc.warnings.append(warning)
            doc.rejected.append(raw if raw.endswith("\n") else raw + "\n")
        end += 1

    doc.trailing = "".join(lines[end:])
    return doc


def encode(rows: Iterable[Row]) -> str:
    return HEADER_LINE + SEPARATOR_LINE + "".join(format_row(r) for r in rows)


def render_document(doc: DecodedDocument, rows: Sequence[Row]) -> str:
    """
    Rebuild the whole document around a freshly encoded table.

    Rejected lines stay in the table region so hand edits are never thrown
    away; they are reported again on the next load.
    """
    table = encode(rows) + "".join(doc.rejected)

    if doc.has_table:
        return doc.preamble + table + doc.trailing

    head = doc.preamble
    if head and not head.endswith("\n"):
        head += "\n"
    return head + table
