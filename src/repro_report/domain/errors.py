"""
Failure taxonomy for a report run.

Every class here unwinds to the run driver and aborts the run before any
report file is written. A mismatched output that the definition does not
declare is not an error: it is recorded as an entry detail instead.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class ReproReportError(Exception):
    """Base class for fatal report-run failures."""


class OutcomeFormatError(ReproReportError, ValueError):
    """Raised when a build outcome or request record is malformed."""


class DefinitionParseError(ReproReportError):
    """Raised when a build definition cannot be read or parsed."""

    def __init__(self, identifier: str, reason: str) -> None:
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"cannot parse definition {identifier}: {reason}")


class DiffComputationError(ReproReportError):
    """Raised when a diff for one output cannot be produced."""

    def __init__(
        self,
        message: str,
        *,
        output_name: str | None = None,
        identifier: str | None = None,
    ) -> None:
        self.output_name = output_name
        self.identifier = identifier
        super().__init__(f"{identifier}: {message}" if identifier else message)


class ContentNotFoundError(DiffComputationError):
    """Raised when a content hash does not resolve to a blob in its store."""

    def __init__(self, hash_value: str, store_root: Path) -> None:
        self.hash_value = hash_value
        self.store_root = store_root
        super().__init__(f"content {hash_value!r} not found in store {store_root}")


class IncompleteVerificationError(ReproReportError):
    """Raised when one or more definitions never reached a successful first build."""

    def __init__(self, identifiers: Sequence[str]) -> None:
        self.identifiers = tuple(identifiers)
        listing = "\n".join(f"  {identifier}" for identifier in self.identifiers)
        super().__init__(f"{len(self.identifiers)} are unchecked:\n{listing}")


__all__ = [
    "ContentNotFoundError",
    "DefinitionParseError",
    "DiffComputationError",
    "IncompleteVerificationError",
    "OutcomeFormatError",
    "ReproReportError",
]
