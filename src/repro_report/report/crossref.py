"""Substring-keyed table of external issue links attached to report entries."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Final

DEFAULT_CROSS_REFERENCES: Final[tuple[tuple[str, str], ...]] = (
    ("x86_64-linux.iso", "https://github.com/NixOS/nixpkgs/pull/74174"),
    ("opensc", "https://github.com/OpenSC/OpenSC/pull/1839"),
    ("udisks", "https://github.com/storaged-project/udisks/issues/715"),
    ("gnupg", "https://github.com/NixOS/nixpkgs/issues/75687"),
)


@dataclass(frozen=True, slots=True)
class CrossReference:
    pattern: str
    url: str

    def __post_init__(self) -> None:
        if not isinstance(self.pattern, str) or not self.pattern:
            raise ValueError("cross-reference pattern must be a non-empty string")
        if not isinstance(self.url, str) or not self.url.strip():
            raise ValueError(f"cross-reference {self.pattern!r} needs a non-empty url")


class CrossReferenceTable:
    """
    Ordered pattern -> link table.

    Every pattern contained in an identifier contributes its link, in table
    order; matching does not stop at the first hit.
    """

    def __init__(
        self,
        entries: Iterable[tuple[str, str]] | Mapping[str, str] = DEFAULT_CROSS_REFERENCES,
    ) -> None:
        pairs = entries.items() if isinstance(entries, Mapping) else entries
        self._entries = tuple(CrossReference(pattern, url) for pattern, url in pairs)

    @classmethod
    def empty(cls) -> CrossReferenceTable:
        return cls(())

    def __iter__(self) -> Iterator[CrossReference]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def links_for(self, identifier: str) -> tuple[str, ...]:
        return tuple(entry.url for entry in self._entries if entry.pattern in identifier)


__all__ = ["DEFAULT_CROSS_REFERENCES", "CrossReference", "CrossReferenceTable"]
