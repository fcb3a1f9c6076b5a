"""
repro-report — runtime wiring.

File: src/repro_report/runner.py

Purpose
- Build the report pipeline (stores, diff cache, resolver, aggregator,
  evaluator, writer) from an effective config mapping and drive one run.

Functional requirements
- Nothing is written to the report directory unless the payload is complete.
- The diff tool is injectable so tests and alternative renderers need no diffoscope.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from repro_report.config.loader import dump_effective_config
from repro_report.constants import DIFF_DIR_NAME, DIFF_STORE_DIR_NAME
from repro_report.definitions.resolver import DefinitionResolver
from repro_report.diffing.cache import DiffCache
from repro_report.diffing.tool import DiffoscopeTool, DiffTool
from repro_report.domain.models import BuildRequest, DiffArtifactRef, DiffCacheKey, ReportPayload
from repro_report.evaluation.evaluator import BuildEvaluator, FileEvaluator
from repro_report.report.aggregator import ReportAggregator
from repro_report.report.crossref import CrossReferenceTable
from repro_report.report.writer import ReportWriter
from repro_report.store.content_store import ContentAddressedStorage

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ReportRuntime:
    """Fully wired collaborators for one report run."""

    read_store: ContentAddressedStorage
    write_store: ContentAddressedStorage
    diff_cache: DiffCache
    resolver: DefinitionResolver
    aggregator: ReportAggregator
    evaluator: BuildEvaluator
    writer: ReportWriter


def new_run_id() -> str:
    """Sortable, collision-resistant identifier used for the per-run log directory."""

    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{secrets.token_hex(4)}"


def build_runtime(
    config: Mapping[str, Any],
    *,
    tool: DiffTool | None = None,
    evaluator: BuildEvaluator | None = None,
    clock: Callable[[], datetime] | None = None,
) -> ReportRuntime:
    """Instantiate every collaborator from a validated, path-normalized config."""

    logger.info("effective_config", config=dump_effective_config(config))
    paths = config["paths"]
    diff_settings = config["diff"]
    report_dir = Path(paths["report_dir"])

    read_store = ContentAddressedStorage(paths["read_store"])
    write_store = ContentAddressedStorage(report_dir / DIFF_STORE_DIR_NAME, writable=True)

    if tool is None:
        tool = DiffoscopeTool(
            command=diff_settings["command"],
            timeout_seconds=float(diff_settings["timeout_seconds"]),
        )
    diff_cache = DiffCache(
        tool=tool,
        source_store=read_store,
        destination_store=write_store,
        diff_dir=report_dir / DIFF_DIR_NAME,
        extension=diff_settings["extension"],
        href_prefix=f"./{DIFF_DIR_NAME}",
    )

    resolver = DefinitionResolver(root=paths["definition_root"] or None)
    aggregator_kwargs: dict[str, Any] = {}
    if clock is not None:
        aggregator_kwargs["clock"] = clock
    aggregator = ReportAggregator(
        resolver=resolver,
        diff_cache=diff_cache,
        crossrefs=CrossReferenceTable(config["crossrefs"]),
        on_diff_error=config["report"]["on_diff_error"],
        max_concurrency=int(diff_settings["max_concurrency"]),
        **aggregator_kwargs,
    )

    if evaluator is None:
        evaluator = FileEvaluator(results_path=paths["results"], to_build_path=paths["to_build"])

    return ReportRuntime(
        read_store=read_store,
        write_store=write_store,
        diff_cache=diff_cache,
        resolver=resolver,
        aggregator=aggregator,
        evaluator=evaluator,
        writer=ReportWriter(report_dir),
    )


async def run_report(runtime: ReportRuntime, request: BuildRequest) -> ReportPayload:
    """Evaluate, aggregate, and publish one report. Raises before any write on failure."""

    instantiation = runtime.evaluator.evaluate(request)
    payload = await runtime.aggregator.aggregate(request, instantiation)
    document_path = runtime.writer.write(payload)
    logger.info(
        "report_written",
        revision=request.revision,
        document=str(document_path),
        entries=len(payload.entries),
        diffs_computed=runtime.diff_cache.computations,
    )
    return payload


async def run_single_diff(
    runtime: ReportRuntime,
    output_name: str,
    hash_a: str,
    hash_b: str,
) -> DiffArtifactRef:
    """Resolve one diff through the cache, exactly as the report would."""

    return await runtime.diff_cache.resolve_hashes(output_name, DiffCacheKey(hash_a, hash_b))


__all__ = [
    "ReportRuntime",
    "build_runtime",
    "new_run_id",
    "run_report",
    "run_single_diff",
]
