"""Command-line interface router for repro-report."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from repro_report.config import (
    ConfigLoadError,
    ConfigValidationError,
    load_config,
)
from repro_report.domain.models import BuildRequest
from repro_report.observability import RunLog, setup_logging
from repro_report.runner import build_runtime, new_run_id, run_report, run_single_diff


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 2

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="repro-report",
        description=(
            "repro-report — summarize double-build reproducibility results.\n\n"
            "Common workflows:\n"
            "  repro-report report --revision REV      Build the HTML report\n"
            "  repro-report diff out HASH_A HASH_B     Render a single diff\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to repro-report TOML config (default: ./repro-report.toml if present).",
    )
    common.add_argument(
        "--read-store",
        default=None,
        help="Directory holding the build output blobs, named by content hash.",
    )
    common.add_argument(
        "--report-dir",
        default=None,
        help="Directory the report and diff artifacts are written to.",
    )
    common.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Emit a machine-readable JSON summary on stdout.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # report --------------------------------------------------------------
    report_parser = subparsers.add_parser(
        "report",
        parents=[common],
        help="Build and write the reproducibility report",
        description=(
            "Classify the outcomes recorded for a revision, diff every unreproducible\n"
            "output, and write index.html plus report.json to the report directory.\n\n"
            "Examples:\n"
            "  repro-report report --revision 1a2b3c --results results.jsonl\n"
            "  repro-report report --revision 1a2b3c --on-diff-error annotate\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    report_parser.add_argument(
        "--revision", required=True, type=_non_empty, help="Source revision to report on."
    )
    report_parser.add_argument("--results", default=None, help="JSON-lines outcome file.")
    report_parser.add_argument(
        "--to-build", default=None, help="Definitions in scope (lines or JSON array)."
    )
    report_parser.add_argument(
        "--max-concurrency",
        type=_positive_int,
        default=None,
        help="Maximum number of unreproducible definitions diffed at once.",
    )
    report_parser.add_argument(
        "--on-diff-error",
        choices=("abort", "annotate"),
        default=None,
        help="Abort the run on a failed diff (default) or record it in the report.",
    )
    report_parser.set_defaults(handler=_cmd_report)

    # diff ----------------------------------------------------------------
    diff_parser = subparsers.add_parser(
        "diff",
        parents=[common],
        help="Resolve one diff through the cache and print the artifact path",
    )
    diff_parser.add_argument(
        "output_name", type=_non_empty, help="Output file name used to label the diff."
    )
    diff_parser.add_argument("hash_a", type=_non_empty, help="Content hash from the first build.")
    diff_parser.add_argument("hash_b", type=_non_empty, help="Content hash from the second build.")
    diff_parser.set_defaults(handler=_cmd_diff)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_report(args: argparse.Namespace) -> int:
    config = _load_effective_config(
        args,
        {
            "paths.results": _cli_path(args.results),
            "paths.to_build": _cli_path(args.to_build),
            "diff.max_concurrency": args.max_concurrency,
            "report.on_diff_error": args.on_diff_error,
        },
    )
    request = BuildRequest(nixpkgs_revision=args.revision)

    with _open_run_log(config):
        runtime = build_runtime(config)
        payload = asyncio.run(run_report(runtime, request))

    if args.json:
        _print_json(
            {
                "command": "report",
                "document": str(runtime.writer.document_path),
                "report": payload.to_dict(),
            }
        )
        return 0

    print(
        f"{payload.reproduced_count} out of {payload.total_count} "
        f"({payload.percent}) reproduced; {payload.unchecked_count} unchecked"
    )
    print(f"report written to {runtime.writer.document_path}")
    return 0


def _cmd_diff(args: argparse.Namespace) -> int:
    config = _load_effective_config(args, {})

    with _open_run_log(config):
        runtime = build_runtime(config)
        diff = run_single_diff(runtime, args.output_name, args.hash_a, args.hash_b)
        reference = asyncio.run(diff)

    if args.json:
        _print_json(
            {
                "command": "diff",
                "key": reference.key.to_list(),
                "path": str(reference.path),
                "href": reference.href,
            }
        )
        return 0

    print(reference.path)
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _print_json(payload: Mapping[str, object]) -> None:
    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _open_run_log(config: Mapping[str, Any]) -> RunLog:
    return setup_logging(
        config["observability"], run_id=new_run_id(), log_dir=config["paths"]["log_dir"]
    )


def _load_effective_config(
    args: argparse.Namespace, overrides: Mapping[str, object]
) -> dict[str, Any]:
    layered = {
        **overrides,
        "paths.read_store": _cli_path(args.read_store),
        "paths.report_dir": _cli_path(args.report_dir),
    }
    try:
        return load_config(args.config_path or None, cli_overrides=layered)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc)) from exc


def _cli_path(value: str | None) -> str | None:
    # Relative to the working directory, not to the config file.
    if value is None or not value.strip():
        return None
    return Path(value.strip()).expanduser().resolve().as_posix()


def _non_empty(value: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise argparse.ArgumentTypeError("value cannot be empty")
    return cleaned


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


__all__ = [
    "CLIError",
    "build_parser",
    "run_cli",
]
