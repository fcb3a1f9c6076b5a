"""
repro-report — hashing utilities

File: src/repro_report/utils/hashing.py

Purpose
- SHA-256 digests used to address blobs in the write-capable content store.
- Validation of externally supplied hash strings before they touch the filesystem.
"""

from __future__ import annotations

import hashlib
import re
from typing import Final

_STORE_HASH_RE: Final[re.Pattern[str]] = re.compile(r"^[0-9A-Za-z._+]{1,255}$")

__all__ = [
    "is_store_hash",
    "sha256_bytes",
]


def sha256_bytes(data: bytes) -> str:
    """Return SHA-256 hex digest for raw bytes."""

    return hashlib.sha256(data).hexdigest()


def is_store_hash(value: object) -> bool:
    """
    Return ``True`` when ``value`` can name a blob directly under a store root.

    Accepts nix-base32, hex and similar digests. Rejects path separators,
    ``-`` (reserved as the artifact-name delimiter) and ``.``/``..``.
    """

    if not isinstance(value, str):
        return False
    if value in {".", ".."}:
        return False
    return _STORE_HASH_RE.fullmatch(value) is not None
