"""
Outcome classification.

Selects the outcomes relevant to one report (matching request, definition in
scope) in arrival order, then tallies them in a single pass. The four status
kinds are mutually exclusive by construction, so each outcome lands in
exactly one bucket.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Sequence
from pathlib import PurePosixPath

from repro_report.domain.models import BuildOutcome, BuildRequest, OutcomeTally, StatusKind

RequestPredicate = Callable[[BuildRequest], bool]


def matches_revision(revision: str) -> RequestPredicate:
    """Predicate accepting requests built from ``revision``."""

    def predicate(request: BuildRequest) -> bool:
        return request.revision == revision

    return predicate


def normalize_identifier(identifier: str) -> str:
    """Canonical form used for scope membership (collapses ``//`` and trailing ``/``)."""

    return str(PurePosixPath(identifier))


def select_outcomes(
    outcomes: Iterable[BuildOutcome],
    *,
    request_matches: RequestPredicate,
    in_scope: Collection[str],
) -> list[BuildOutcome]:
    """Return the order-preserving subsequence of relevant outcomes."""

    scope = frozenset(normalize_identifier(identifier) for identifier in in_scope)
    return [
        outcome
        for outcome in outcomes
        if request_matches(outcome.request) and normalize_identifier(outcome.drv) in scope
    ]


def partition_by_status(outcomes: Iterable[BuildOutcome]) -> dict[StatusKind, list[BuildOutcome]]:
    buckets: dict[StatusKind, list[BuildOutcome]] = {kind: [] for kind in StatusKind}
    for outcome in outcomes:
        buckets[outcome.status.kind].append(outcome)
    return buckets


def tally_outcomes(outcomes: Sequence[BuildOutcome]) -> OutcomeTally:
    buckets = partition_by_status(outcomes)
    return OutcomeTally(
        total=len(outcomes),
        reproducible=len(buckets[StatusKind.REPRODUCIBLE]),
        unchecked=len(buckets[StatusKind.SECOND_FAILED]),
        first_failed=tuple(outcome.drv for outcome in buckets[StatusKind.FIRST_FAILED]),
        unreproducible=tuple(buckets[StatusKind.UNREPRODUCIBLE]),
    )


__all__ = [
    "RequestPredicate",
    "matches_revision",
    "normalize_identifier",
    "partition_by_status",
    "select_outcomes",
    "tally_outcomes",
]
