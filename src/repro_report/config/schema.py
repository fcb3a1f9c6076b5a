"""
repro-report — configuration schema and validation.

File: src/repro_report/config/schema.py

Purpose
- Define authoritative configuration defaults and strict validation rules.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Deep-merge overlays deterministically; the ``crossrefs`` table is replaced, never merged.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from repro_report.constants import CONFIG_SCHEMA_VERSION
from repro_report.diffing.tool import DEFAULT_DIFF_COMMAND
from repro_report.report.crossref import DEFAULT_CROSS_REFERENCES

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION

# Config paths that should be normalized relative to config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("paths", "read_store"),
    ("paths", "report_dir"),
    ("paths", "results"),
    ("paths", "to_build"),
    ("paths", "definition_root"),
    ("paths", "log_dir"),
)

# Sections whose file/CLI value replaces the default wholesale.
REPLACED_SECTIONS: Final[frozenset[str]] = frozenset({"crossrefs"})

_LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
_DIFF_ERROR_POLICIES: Final[tuple[str, ...]] = ("abort", "annotate")


class MetaConfig(TypedDict):
    schema_version: int


class PathsConfig(TypedDict):
    read_store: str
    report_dir: str
    results: str
    to_build: str
    definition_root: str
    log_dir: str


class DiffConfig(TypedDict):
    command: list[str]
    timeout_seconds: float
    max_concurrency: int
    extension: str


class ReportConfig(TypedDict):
    on_diff_error: Literal["abort", "annotate"]


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_to_stderr: bool


class ReproReportConfig(TypedDict):
    meta: MetaConfig
    paths: PathsConfig
    diff: DiffConfig
    report: ReportConfig
    observability: ObservabilityConfig
    crossrefs: dict[str, str]


DEFAULT_CONFIG: Final[ReproReportConfig] = {
    "meta": {
        "schema_version": ConfigSchemaVersion,
    },
    "paths": {
        "read_store": "tmp",
        "report_dir": "report",
        "results": "results.jsonl",
        "to_build": "to_build.txt",
        "definition_root": "",
        "log_dir": "logs",
    },
    "diff": {
        "command": list(DEFAULT_DIFF_COMMAND),
        "timeout_seconds": 3600.0,
        "max_concurrency": 4,
        "extension": "html",
    },
    "report": {
        "on_diff_error": "abort",
    },
    "observability": {
        "log_level": "INFO",
        "log_to_stderr": True,
    },
    "crossrefs": dict(DEFAULT_CROSS_REFERENCES),
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    path: str
    message: str

    def render(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return not self.issues


class ConfigValidationError(ValueError):
    """Raised when a config payload fails validation."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        details = "; ".join(issue.render() for issue in self.issues)
        super().__init__(f"invalid configuration: {details}")


def default_config() -> dict[str, Any]:
    return copy.deepcopy(dict(DEFAULT_CONFIG))


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto ``base`` without mutating either input."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key in sorted(overlay):
        value = overlay[key]
        if key in REPLACED_SECTIONS:
            merged[key] = copy.deepcopy(value)
            continue
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: Mapping[str, object]) -> ConfigValidationResult:
    issues: list[ConfigValidationIssue] = []

    def issue(path: str, message: str) -> None:
        issues.append(ConfigValidationIssue(path, message))

    known_sections = set(DEFAULT_CONFIG)
    for key in sorted(config):
        if key not in known_sections:
            issue(key, "unknown section")

    meta = _section(config, "meta", issue)
    if meta is not None and meta.get("schema_version") != ConfigSchemaVersion:
        issue(
            "meta.schema_version",
            f"unsupported schema version {meta.get('schema_version')!r}, "
            f"expected {ConfigSchemaVersion}",
        )

    paths = _section(config, "paths", issue)
    if paths is not None:
        for field_name in DEFAULT_CONFIG["paths"]:
            value = paths.get(field_name)
            if not isinstance(value, str):
                issue(f"paths.{field_name}", "must be a string")
            elif not value and field_name != "definition_root":
                issue(f"paths.{field_name}", "must not be empty")
        _reject_unknown(paths, DEFAULT_CONFIG["paths"], "paths", issue)

    diff = _section(config, "diff", issue)
    if diff is not None:
        command = diff.get("command")
        if (
            not isinstance(command, list)
            or not command
            or not all(isinstance(part, str) and part for part in command)
        ):
            issue("diff.command", "must be a non-empty list of non-empty strings")
        timeout = diff.get("timeout_seconds")
        if (
            isinstance(timeout, bool)
            or not isinstance(timeout, (int, float))
            or not math.isfinite(timeout)
            or timeout <= 0
        ):
            issue("diff.timeout_seconds", "must be a positive number")
        concurrency = diff.get("max_concurrency")
        if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
            issue("diff.max_concurrency", "must be an integer >= 1")
        extension = diff.get("extension")
        if not isinstance(extension, str) or not extension or "/" in extension or "." in extension:
            issue("diff.extension", "must be a bare file extension such as 'html'")
        _reject_unknown(diff, DEFAULT_CONFIG["diff"], "diff", issue)

    report = _section(config, "report", issue)
    if report is not None:
        if report.get("on_diff_error") not in _DIFF_ERROR_POLICIES:
            issue("report.on_diff_error", f"must be one of {', '.join(_DIFF_ERROR_POLICIES)}")
        _reject_unknown(report, DEFAULT_CONFIG["report"], "report", issue)

    observability = _section(config, "observability", issue)
    if observability is not None:
        level = observability.get("log_level")
        if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
            issue("observability.log_level", f"must be one of {', '.join(_LOG_LEVELS)}")
        if not isinstance(observability.get("log_to_stderr"), bool):
            issue("observability.log_to_stderr", "must be a boolean")
        _reject_unknown(observability, DEFAULT_CONFIG["observability"], "observability", issue)

    crossrefs = _section(config, "crossrefs", issue)
    if crossrefs is not None:
        for pattern in sorted(crossrefs):
            url = crossrefs[pattern]
            if not pattern:
                issue("crossrefs", "patterns must be non-empty")
            if not isinstance(url, str) or not url.strip():
                issue(f"crossrefs.{pattern}", "must be a non-empty URL string")

    return ConfigValidationResult(tuple(issues))


def assert_valid_config(config: Mapping[str, object]) -> dict[str, Any]:
    result = validate_config(config)
    if not result.is_valid:
        raise ConfigValidationError(result.issues)
    return merge_config({}, config)


def _section(
    config: Mapping[str, object],
    name: str,
    issue: Any,
) -> Mapping[str, Any] | None:
    value = config.get(name)
    if not isinstance(value, Mapping):
        issue(name, "must be a table")
        return None
    return value


def _reject_unknown(
    section: Mapping[str, object],
    known: Mapping[str, object],
    prefix: str,
    issue: Any,
) -> None:
    for key in sorted(section):
        if key not in known:
            issue(f"{prefix}.{key}", "unknown key")


__all__ = [
    "DEFAULT_CONFIG",
    "PATH_FIELDS",
    "REPLACED_SECTIONS",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ReproReportConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
