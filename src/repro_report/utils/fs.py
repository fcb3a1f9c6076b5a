"""
repro-report — filesystem utilities

File: src/repro_report/utils/fs.py

Purpose
- Atomic publication of report files and diff artifacts.
- Scratch directories and cheap staging of blobs under new names.

Functional requirements
- Every publish goes through a sibling temp file that is renamed over the
  target, so readers see either the old file or the complete new one.
- A failed or cancelled publish removes its temp file.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from contextlib import contextmanager
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

PathLike = str | os.PathLike[str]

__all__ = [
    "atomic_copy",
    "atomic_write",
    "atomic_write_all",
    "ensure_directory",
    "link_or_copy",
    "temp_directory",
]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """Publish ``data`` at ``path``; the data is fsynced before the rename."""

    with _publishing(path) as (fd, _):
        _write_synced(fd, data, encoding)


def atomic_write_all(files: Mapping[PathLike, bytes | str], *, encoding: str = "utf-8") -> None:
    """
    Publish several files as one step.

    Every file is written and fsynced before the first rename, and the renames
    then run back to back in reverse order of ``files``. A failure before the
    renames leaves every target untouched.
    """

    with contextlib.ExitStack() as stack:
        for path, data in files.items():
            fd, _ = stack.enter_context(_publishing(path))
            _write_synced(fd, data, encoding)


def atomic_copy(source: PathLike, destination: PathLike) -> None:
    """Publish a copy of ``source`` at ``destination``."""

    with _publishing(destination) as (fd, staging):
        os.close(fd)
        shutil.copyfile(source, staging)


def link_or_copy(source: PathLike, target: PathLike) -> Path:
    """Make ``target`` a hard link to ``source``, or a copy when linking is not possible."""

    destination = Path(target)
    destination.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.link(source, destination)
    except OSError:
        # Cross-device, or a filesystem without hard links.
        shutil.copyfile(source, destination)
    return destination


def ensure_directory(path: PathLike) -> Path:
    """Create ``path`` with its parents if needed."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


@contextmanager
def temp_directory(prefix: str = "repro-") -> Iterator[Path]:
    """Yield a temporary directory path and clean it up on exit."""

    with tempfile.TemporaryDirectory(prefix=prefix) as tmp:
        yield Path(tmp)


@contextmanager
def _publishing(path: PathLike) -> Iterator[tuple[int, Path]]:
    """Yield ``(fd, temp path)`` next to ``path``; rename it over ``path`` if the block succeeds."""

    target = Path(path)
    directory = target.parent.resolve(strict=True)
    fd, name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=directory)
    staging = Path(name)
    try:
        yield fd, staging
        os.replace(staging, target)
    except BaseException:
        with contextlib.suppress(OSError):
            staging.unlink(missing_ok=True)
        raise
    _sync_directory(directory)


def _write_synced(fd: int, data: bytes | str, encoding: str) -> None:
    payload = data if isinstance(data, bytes) else data.encode(encoding)
    with os.fdopen(fd, "wb") as handle:
        handle.write(payload)
        handle.flush()
        os.fsync(handle.fileno())


def _sync_directory(directory: Path) -> None:
    # Persists the rename itself; not every platform can open a directory.
    if os.name == "nt":
        return
    flags = os.O_RDONLY | getattr(os, "O_DIRECTORY", 0)
    with contextlib.suppress(OSError):
        fd = os.open(directory, flags)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
