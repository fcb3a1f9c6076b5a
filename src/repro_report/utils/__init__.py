"""Utility exports for filesystem, hashing, and concurrency helpers."""

from repro_report.utils.concurrency import ConcurrencyLimit, SingleFlight, gather_ordered
from repro_report.utils.fs import (
    atomic_copy,
    atomic_write,
    atomic_write_all,
    ensure_directory,
    link_or_copy,
    temp_directory,
)
from repro_report.utils.hashing import is_store_hash, sha256_bytes

__all__ = [
    "ConcurrencyLimit",
    "SingleFlight",
    "atomic_copy",
    "atomic_write",
    "atomic_write_all",
    "ensure_directory",
    "gather_ordered",
    "is_store_hash",
    "link_or_copy",
    "sha256_bytes",
    "temp_directory",
]
