# src/iw_queue/vault/links.py

"""
Link helpers: turning notes, blocks and wiki links into queue link strings.

The queue treats links as opaque strings; these helpers only decide what
string goes into the Link column ("[[folder/note]]", "[[note#^block]]").
"""

from __future__ import annotations

import posixpath
import random
import re
import string
from collections.abc import Iterable

WIKILINK_RE = re.compile(r"!?\[\[([^\[\]|#^]+)((?:#\^?[^\[\]|]*)?)(?:\|[^\[\]]*)?\]\]")
BLOCK_ID_RE = re.compile(r"\s\^([A-Za-z0-9-]+)\s*$")
_BLOCK_NAME_RE = re.compile(r"[^A-Za-z0-9-]+")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def strip_md(path: str) -> str:
    return path[:-3] if path.lower().endswith(".md") else path


def to_link_text(path: str, subpath: str = "") -> str:
    return f"[[{strip_md(path)}{subpath}]]"


def resolve_link_target(target: str, source_path: str, vault_files: Iterable[str]) -> str | None:
    """
    Find the vault file a wiki link target points to.

    Tries, in order: the exact vault path, a path relative to the source
    note's folder, then any file with the same name (shortest path wins).
    """
    files = list(vault_files)
    known = set(files)
    wanted = strip_md(target.strip())
    if not wanted:
        return None

    exact = wanted + ".md"
    if exact in known:
        return exact

    folder = posixpath.dirname(source_path)
    relative = posixpath.normpath(posixpath.join(folder, exact)) if folder else exact
    if relative in known:
        return relative

    name = posixpath.basename(exact)
    matches = sorted((f for f in files if posixpath.basename(f) == name), key=len)
    return matches[0] if matches else None


def links_in_note(text: str, source_path: str, vault_files: Iterable[str]) -> list[str]:
    """
    Absolute queue links for every wiki link in `text`, in order, without duplicates.

    Links to notes that do not exist are kept as written.
    """
    files = list(vault_files)
    out: list[str] = []
    for m in WIKILINK_RE.finditer(text):
        target, subpath = m.group(1), m.group(2) or ""
        resolved = resolve_link_target(target, source_path, files)
        link = to_link_text(resolved if resolved else target.strip(), subpath)
        if link not in out:
            out.append(link)
    return out


def block_ids(text: str) -> list[str]:
    ids = []
    for line in text.splitlines():
        m = BLOCK_ID_RE.search(line)
        if m:
            ids.append(m.group(1))
    return ids


def block_links(text: str, note_path: str) -> list[str]:
    return [to_link_text(note_path, f"#^{block_id}") for block_id in block_ids(text)]


def new_block_id(rng: random.Random | None = None) -> str:
    r = rng or random
    return "".join(r.choice(_ID_ALPHABET) for _ in range(6))


def ensure_block_ref(
    text: str,
    line_no: int,
    custom_name: str = "",
    rng: random.Random | None = None,
) -> tuple[str, str]:
    """
    Make sure line `line_no` (0-based) carries a block id.

    Returns the (possibly updated) text and the block id. An existing id on the
    line is reused; otherwise `custom_name` (sanitized) or a random id is appended.
    """
    lines = text.splitlines(keepends=True)
    if not 0 <= line_no < len(lines):
        raise IndexError(f"line {line_no} out of range (note has {len(lines)} lines)")

    line = lines[line_no]
    body = line.rstrip("\r\n")
    ending = line[len(body):]

    m = BLOCK_ID_RE.search(body)
    if m:
        return text, m.group(1)

    if not body.strip():
        raise ValueError(f"line {line_no} is empty")

    block_id = _BLOCK_NAME_RE.sub("-", custom_name.strip()).strip("-") or new_block_id(rng)
    lines[line_no] = f"{body} ^{block_id}{ending}"
    return "".join(lines), block_id
