"""
context-packer - filesystem utilities

File: src/context_packer/utils/fs.py
Last updated: 2026-10-19

Purpose
- Atomic artifact writes and cheap content probing for candidate files.

Functional requirements
- Atomic writes use temp files in the destination directory and replace in a single step.
- Binary probing looks for a NUL byte in the leading bytes only.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

from context_packer.constants import BINARY_PROBE_BYTES

PathLike = str | os.PathLike[str]

__all__ = [
    "atomic_write",
    "is_likely_text_file",
    "read_text_lossy",
    "write_lines",
]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``path``.

    The write strategy is:
    1. create temp file in the same directory,
    2. write + flush + fsync file data,
    3. replace target via ``os.replace``.
    """

    target = Path(path)
    target_parent = target.parent.resolve(strict=True)
    if not target_parent.is_dir():
        raise NotADirectoryError(f"{target_parent!s} is not a directory")

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target_parent),
    )
    temp_path = Path(temp_name)

    try:
        payload = data if isinstance(data, bytes) else data.encode(encoding)
        with os.fdopen(fd, "wb") as file_handle:
            file_handle.write(payload)
            file_handle.flush()
            os.fsync(file_handle.fileno())
        os.replace(temp_path, target)
    except Exception:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def write_lines(path: PathLike, lines: list[str]) -> None:
    """Write newline-terminated lines; an empty list produces an empty file."""

    atomic_write(path, "".join(f"{line}\n" for line in lines))


def is_likely_text_file(path: PathLike, *, probe_bytes: int = BINARY_PROBE_BYTES) -> bool:
    """``False`` for unreadable files or a NUL byte within the first ``probe_bytes``."""

    try:
        with Path(path).open("rb") as handle:
            head = handle.read(probe_bytes)
    except OSError:
        return False
    return b"\x00" not in head


def read_text_lossy(path: PathLike) -> str:
    """Read UTF-8 text, replacing undecodable bytes."""

    return Path(path).read_text(encoding="utf-8", errors="replace")
