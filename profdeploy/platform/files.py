# SPDX-License-Identifier: MIT
"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

__all__ = ["atomic_write_text", "is_writable", "newest_mtime"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def is_writable(path: Path) -> bool:
    """True if path exists and both it and its directory accept writes.

    The directory matters because atomic_write_text replaces the file.
    """
    return (
        path.is_file()
        and os.access(path, os.W_OK)
        and os.access(path.parent, os.W_OK)
    )


def newest_mtime(paths: list[Path]) -> float | None:
    """Newest modification time among existing files, None if there are none."""
    newest: float | None = None
    for path in paths:
        try:
            mtime = path.stat().st_mtime
        except OSError:
            continue
        if newest is None or mtime > newest:
            newest = mtime
    return newest
