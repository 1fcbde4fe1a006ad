"""Whole-file read/write helpers."""

from __future__ import annotations

from pathlib import Path


def read_text_if_exists(path: str | Path) -> str | None:
    """Read a UTF-8 file, or return None when it does not exist."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def write_text(path: str | Path, content: str) -> None:
    """Write ``content`` as the whole file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def write_if_changed(path: str | Path, content: str) -> bool:
    """Write only when the file is missing or differs. Returns True if written."""
    if read_text_if_exists(path) == content:
        return False
    write_text(path, content)
    return True
