"""
Content-addressed blob store.

A store is a flat directory of immutable blobs named by their content hash.
Two instances exist per run: the read-only store holding build artifacts and
the write-capable store that keeps rendered diffs. Content ids carry their
store root, so ids from different instances never compare equal.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

from repro_report.domain.errors import ContentNotFoundError
from repro_report.domain.models import ContentId
from repro_report.utils.fs import atomic_write, ensure_directory
from repro_report.utils.hashing import is_store_hash, sha256_bytes

PathLike = str | os.PathLike[str]


class ContentAddressedStorage:
    """Flat directory store addressed by hash strings."""

    def __init__(self, root: PathLike, *, writable: bool = False) -> None:
        self._root = Path(root)
        self._writable = writable

    @property
    def root(self) -> Path:
        return self._root

    @property
    def writable(self) -> bool:
        return self._writable

    def str_to_id(self, hash_value: str) -> ContentId | None:
        """Resolve ``hash_value`` to a content id, or ``None`` when no such blob exists."""

        if not is_store_hash(hash_value):
            return None
        candidate = self._root / hash_value
        try:
            mode = candidate.stat().st_mode
        except (FileNotFoundError, NotADirectoryError):
            return None
        if not stat.S_ISREG(mode):
            return None
        return ContentId(hash=hash_value, store_root=self._root)

    def require(self, hash_value: str) -> ContentId:
        content_id = self.str_to_id(hash_value)
        if content_id is None:
            raise ContentNotFoundError(hash_value, self._root)
        return content_id

    def physical_location(self, content_id: ContentId) -> Path:
        if content_id.store_root != self._root:
            raise ValueError(
                f"content id {content_id.hash!r} belongs to store {content_id.store_root}, "
                f"not {self._root}"
            )
        return content_id.as_path()

    def insert(self, data: bytes) -> ContentId:
        """Store ``data`` under its SHA-256 digest. Re-inserting the same bytes is a no-op."""

        if not self._writable:
            raise PermissionError(f"content store {self._root} is read-only")
        ensure_directory(self._root)
        digest = sha256_bytes(data)
        target = self._root / digest
        if not target.exists():
            atomic_write(target, data)
        return ContentId(hash=digest, store_root=self._root)


__all__ = ["ContentAddressedStorage"]
