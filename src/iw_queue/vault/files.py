# src/iw_queue/vault/files.py

from __future__ import annotations

import contextlib
import logging
import os
import posixpath
from pathlib import Path

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Vault-relative POSIX path without leading/trailing slashes ("a/b.md")."""
    p = path.replace("\\", "/").strip().strip("/")
    if not p:
        return ""
    p = posixpath.normpath(p)
    return "" if p == "." else p


def with_md_extension(name: str) -> str:
    return name if name.lower().endswith(".md") else name + ".md"


class VaultFiles:
    """
    Document store over a directory of Markdown notes.

    Paths are vault-relative. Writes go to a temp file first and are moved in
    place with os.replace, so a crash never leaves half a queue on disk.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def resolve(self, path: str) -> Path:
        rel = normalize_path(path)
        full = (self.root / rel).resolve()
        root = self.root.resolve()
        if full != root and root not in full.parents:
            raise PermissionError(f"path escapes the vault: {path!r}")
        return full

    def read(self, path: str) -> str:
        with open(self.resolve(path), encoding="utf-8", newline="") as f:
            return f.read()

    def write(self, path: str, text: str) -> None:
        full = self.resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        tmp = full.with_name(full.name + ".tmp")
        try:
            # newline="" keeps the line endings exactly as rendered.
            with open(tmp, "w", encoding="utf-8", newline="") as f:
                f.write(text)
            os.replace(tmp, full)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
        logger.debug("Wrote %s (%d chars)", path, len(text))

    def exists(self, path: str) -> bool:
        try:
            return self.resolve(path).is_file()
        except PermissionError:
            return False

    def list_markdown(self, folder: str = "") -> list[str]:
        """All .md files under `folder` (recursive), as sorted vault-relative paths."""
        try:
            base = self.resolve(folder)
        except PermissionError:
            return []
        if not base.is_dir():
            return []
        root = self.root.resolve()
        out = []
        for p in base.rglob("*.md"):
            rel = p.relative_to(root).as_posix()
            if any(part.startswith(".") for part in rel.split("/")):
                continue
            out.append(rel)
        return sorted(out)
