"""
Report aggregation.

One pass over the selected outcomes produces the counters; a report is only
built when every considered definition reached a successful first build.
Unreproducible outcomes are then expanded into entries concurrently, and
the entries are reattached in arrival order before rendering.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

import structlog

from repro_report.definitions.resolver import DefinitionResolver
from repro_report.diffing.cache import DiffCache
from repro_report.domain.errors import DiffComputationError, IncompleteVerificationError
from repro_report.domain.models import (
    BuildOutcome,
    BuildRequest,
    DetailKind,
    EntryDetail,
    OutcomeTally,
    ReportEntry,
    ReportPayload,
)
from repro_report.evaluation.evaluator import JobInstantiation
from repro_report.observability.logging import bound_fields
from repro_report.report.classifier import matches_revision, select_outcomes, tally_outcomes
from repro_report.report.crossref import CrossReferenceTable
from repro_report.report.render import definition_href, format_percent, render_fragment
from repro_report.utils.concurrency import ConcurrencyLimit, gather_ordered


class DiffErrorPolicy(StrEnum):
    """What a failed diff does to the run."""

    ABORT = "abort"
    ANNOTATE = "annotate"


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ReportAggregator:
    """Drive classification and the diff cache to assemble a ``ReportPayload``."""

    def __init__(
        self,
        *,
        resolver: DefinitionResolver,
        diff_cache: DiffCache,
        crossrefs: CrossReferenceTable | None = None,
        on_diff_error: DiffErrorPolicy | str = DiffErrorPolicy.ABORT,
        max_concurrency: int = 1,
        clock: Callable[[], datetime] = _utc_now,
        logger: Any | None = None,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        self._resolver = resolver
        self._diff_cache = diff_cache
        self._crossrefs = crossrefs if crossrefs is not None else CrossReferenceTable()
        self._on_diff_error = DiffErrorPolicy(on_diff_error)
        self._max_concurrency = max_concurrency
        self._clock = clock
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def classify(self, request: BuildRequest, instantiation: JobInstantiation) -> OutcomeTally:
        outcomes = select_outcomes(
            instantiation.results,
            request_matches=matches_revision(request.revision),
            in_scope=instantiation.to_build,
        )
        tally = tally_outcomes(outcomes)
        self._logger.info(
            "outcomes_classified",
            revision=request.revision,
            total=tally.total,
            reproducible=tally.reproducible,
            unchecked=tally.unchecked,
            unreproducible=len(tally.unreproducible),
            first_failed=len(tally.first_failed),
        )
        return tally

    async def aggregate(
        self,
        request: BuildRequest,
        instantiation: JobInstantiation,
    ) -> ReportPayload:
        tally = self.classify(request, instantiation)
        if not tally.is_complete:
            raise IncompleteVerificationError(tally.first_failed)

        limit = ConcurrencyLimit(self._max_concurrency)
        try:
            entries = await gather_ordered(
                (self.build_entry(outcome) for outcome in tally.unreproducible), limit=limit
            )
        except BaseException:
            await self._diff_cache.abandon()
            raise
        self._logger.info("entries_built", entries=len(entries), peak_concurrency=limit.peak)

        return ReportPayload(
            reproduced_count=tally.reproducible,
            unchecked_count=tally.unchecked,
            total_count=tally.total,
            percent=format_percent(tally.reproducible, tally.total),
            revision=request.revision,
            generated_at=self._clock(),
            entries=tuple(entries),
            unreproduced_fragment=render_fragment(entries),
        )

    async def build_entry(self, outcome: BuildOutcome) -> ReportEntry:
        with bound_fields(drv=outcome.drv):
            return await self._build_entry(outcome)

    async def _build_entry(self, outcome: BuildOutcome) -> ReportEntry:
        definition = self._resolver.parse(outcome.drv)
        details: list[EntryDetail] = []

        for output_name, key in outcome.status.mismatches:
            location = definition.output_location(output_name)
            if location is None:
                self._logger.warning("missing_output", output=output_name)
                details.append(
                    EntryDetail(
                        output_name=output_name,
                        kind=DetailKind.MISSING_OUTPUT,
                        href=definition_href(outcome.drv),
                    )
                )
                continue

            try:
                reference = await self._diff_cache.resolve_hashes(location.name, key)
            except DiffComputationError as exc:
                if self._on_diff_error is DiffErrorPolicy.ABORT:
                    raise DiffComputationError(
                        str(exc), output_name=output_name, identifier=outcome.drv
                    ) from exc
                self._logger.warning("diff_failed", output=output_name, error=str(exc))
                details.append(
                    EntryDetail(
                        output_name=output_name,
                        kind=DetailKind.DIFF_FAILED,
                        message=str(exc),
                    )
                )
                continue

            details.append(
                EntryDetail(output_name=output_name, kind=DetailKind.DIFF, href=reference.href)
            )

        return ReportEntry(
            identifier=outcome.drv,
            crossref_links=self._crossrefs.links_for(outcome.drv),
            details=tuple(details),
        )


__all__ = ["DiffErrorPolicy", "ReportAggregator"]
