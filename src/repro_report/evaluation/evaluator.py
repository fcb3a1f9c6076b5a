"""
Build-evaluation collaborator.

The scheduler that actually builds definitions twice lives elsewhere; this
module reads what it recorded: the set of definitions a request puts in
scope and the outcome stream, in arrival order.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from repro_report.domain.errors import OutcomeFormatError
from repro_report.domain.models import BuildOutcome, BuildRequest

PathLike = str | os.PathLike[str]


@dataclass(frozen=True, slots=True)
class JobInstantiation:
    """Definitions in scope for a request plus every recorded outcome."""

    to_build: frozenset[str]
    results: tuple[BuildOutcome, ...]


@runtime_checkable
class BuildEvaluator(Protocol):
    def evaluate(self, request: BuildRequest) -> JobInstantiation: ...


class FileEvaluator(BuildEvaluator):
    """
    Evaluator backed by two files.

    ``results_path`` holds one JSON outcome per line. ``to_build_path`` holds
    either a JSON array of identifiers or one identifier per line (blank
    lines and ``#`` comments ignored).
    """

    def __init__(self, *, results_path: PathLike, to_build_path: PathLike) -> None:
        self._results_path = Path(results_path)
        self._to_build_path = Path(to_build_path)

    def evaluate(self, request: BuildRequest) -> JobInstantiation:
        return JobInstantiation(
            to_build=load_to_build(self._to_build_path),
            results=tuple(iter_outcomes(self._results_path)),
        )


def iter_outcomes(path: PathLike) -> Iterator[BuildOutcome]:
    source = Path(path)
    try:
        handle = source.open(encoding="utf-8")
    except OSError as exc:
        raise OutcomeFormatError(f"unable to read results file {source}: {exc}") from exc

    with handle:
        for line_number, line in enumerate(handle, start=1):
            text = line.strip()
            if not text:
                continue
            try:
                yield BuildOutcome.from_json(text)
            except OutcomeFormatError as exc:
                raise OutcomeFormatError(f"{source}:{line_number}: {exc}") from exc


def load_to_build(path: PathLike) -> frozenset[str]:
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise OutcomeFormatError(f"unable to read definition list {source}: {exc}") from exc

    stripped = text.lstrip()
    if stripped.startswith("["):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError as exc:
            raise OutcomeFormatError(f"{source}: invalid JSON: {exc}") from exc
        if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
            raise OutcomeFormatError(f"{source}: expected a JSON array of strings")
        return frozenset(item for item in parsed if item)

    identifiers: set[str] = set()
    for line in text.splitlines():
        candidate = line.strip()
        if candidate and not candidate.startswith("#"):
            identifiers.add(candidate)
    return frozenset(identifiers)


__all__ = [
    "BuildEvaluator",
    "FileEvaluator",
    "JobInstantiation",
    "iter_outcomes",
    "load_to_build",
]
