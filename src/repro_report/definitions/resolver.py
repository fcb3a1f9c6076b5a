"""
Definition resolver: build definition identifier -> declared output locations.

Functional requirements
- Parse failures raise ``DefinitionParseError`` and are fatal for the run.
- Looking up an output the definition does not declare returns ``None``.
- Parsing is a pure function of on-disk content; results are memoized per identifier.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from types import MappingProxyType

from repro_report.definitions.aterm import ATermSyntaxError, Constructor, parse_aterm
from repro_report.domain.errors import DefinitionParseError
from repro_report.domain.models import BuildDefinition

PathLike = str | os.PathLike[str]

_DERIVATION_CONSTRUCTOR = "Derive"


def parse_derivation(text: str, identifier: str) -> BuildDefinition:
    """Parse derivation ``text`` and return its outputs keyed by output name."""

    try:
        term = parse_aterm(text)
    except ATermSyntaxError as exc:
        raise DefinitionParseError(identifier, str(exc)) from exc

    if not isinstance(term, Constructor) or term.name != _DERIVATION_CONSTRUCTOR:
        raise DefinitionParseError(identifier, f"expected a {_DERIVATION_CONSTRUCTOR}(...) term")
    if not term.args or not isinstance(term.args[0], list):
        raise DefinitionParseError(identifier, "missing output list")

    outputs: dict[str, PurePosixPath] = {}
    for index, item in enumerate(term.args[0]):
        if (
            not isinstance(item, tuple)
            or len(item) < 2
            or not isinstance(item[0], str)
            or not isinstance(item[1], str)
        ):
            raise DefinitionParseError(
                identifier, f"output #{index} is not a (name, path, ...) tuple"
            )
        name, location = item[0], item[1]
        if not name:
            raise DefinitionParseError(identifier, f"output #{index} has an empty name")
        if name in outputs:
            raise DefinitionParseError(identifier, f"output {name!r} is declared twice")
        outputs[name] = PurePosixPath(location)

    return BuildDefinition(identifier=identifier, outputs=MappingProxyType(outputs))


class DefinitionResolver:
    """
    Read and parse definitions addressed by identifier.

    Identifiers are paths such as ``/nix/store/<hash>-name.drv``. When
    ``root`` is set, absolute identifiers are re-rooted beneath it so a copy
    of the store can be used in place of the live one.
    """

    def __init__(self, *, root: PathLike | None = None, encoding: str = "utf-8") -> None:
        self._root = Path(root) if root is not None else None
        self._encoding = encoding
        self._parsed: dict[str, BuildDefinition] = {}

    def location_for(self, identifier: str) -> Path:
        if self._root is None:
            return Path(identifier)
        return self._root / identifier.lstrip("/")

    def parse(self, identifier: str) -> BuildDefinition:
        cached = self._parsed.get(identifier)
        if cached is not None:
            return cached

        path = self.location_for(identifier)
        try:
            text = path.read_text(encoding=self._encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise DefinitionParseError(identifier, f"unable to read {path}: {exc}") from exc

        definition = parse_derivation(text, identifier)
        self._parsed[identifier] = definition
        return definition

    def outputs(self, identifier: str) -> Mapping[str, PurePosixPath]:
        return self.parse(identifier).outputs

    def lookup_output(self, identifier: str, output_name: str) -> PurePosixPath | None:
        return self.parse(identifier).output_location(output_name)


__all__ = ["DefinitionResolver", "parse_derivation"]
