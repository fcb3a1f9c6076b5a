"""Dataclass domain models with strict validation and canonical serialization."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path, PurePosixPath
from typing import NoReturn

from repro_report.constants import REPORT_JSON_SCHEMA_VERSION
from repro_report.domain.errors import OutcomeFormatError
from repro_report.utils.hashing import is_store_hash

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_REQUEST_VERSION_V1 = "V1"


class StatusKind(StrEnum):
    """Closed set of reproducibility states reported by the build evaluator."""

    REPRODUCIBLE = "Reproducible"
    FIRST_FAILED = "FirstFailed"
    SECOND_FAILED = "SecondFailed"
    UNREPRODUCIBLE = "Unreproducible"


class DetailKind(StrEnum):
    """How one mismatched output is presented inside a report entry."""

    DIFF = "diff"
    MISSING_OUTPUT = "missing_output"
    DIFF_FAILED = "diff_failed"


@dataclass(frozen=True, slots=True)
class DiffCacheKey:
    """Ordered (first build, second build) hash pair for one output."""

    hash_a: str
    hash_b: str

    def __post_init__(self) -> None:
        if not is_store_hash(self.hash_a):
            _fail("DiffCacheKey.hash_a", f"invalid content hash {self.hash_a!r}")
        if not is_store_hash(self.hash_b):
            _fail("DiffCacheKey.hash_b", f"invalid content hash {self.hash_b!r}")
        if self.hash_a == self.hash_b:
            _fail("DiffCacheKey", f"hashes must differ, got {self.hash_a!r} twice")

    def artifact_name(self, extension: str = "html") -> str:
        return f"{self.hash_a}-{self.hash_b}.{extension}"

    def to_list(self) -> list[JSONValue]:
        return [self.hash_a, self.hash_b]


@dataclass(frozen=True, slots=True)
class ContentId:
    """Address of a blob inside one particular store instance."""

    hash: str
    store_root: Path

    def as_path(self) -> Path:
        return self.store_root / self.hash


@dataclass(frozen=True, slots=True)
class BuildRequest:
    """Build configuration an outcome was produced under (request format ``V1``)."""

    nixpkgs_revision: str
    nixpkgs_sha256sum: str | None = None
    result_url: str | None = None
    subsets: tuple[str, ...] | None = None
    version: str = _REQUEST_VERSION_V1

    def __post_init__(self) -> None:
        if not isinstance(self.nixpkgs_revision, str) or not self.nixpkgs_revision.strip():
            _fail("BuildRequest.nixpkgs_revision", "must be a non-empty string")
        if self.version != _REQUEST_VERSION_V1:
            _fail("BuildRequest.version", f"unsupported request version {self.version!r}")

    @property
    def revision(self) -> str:
        return self.nixpkgs_revision

    @classmethod
    def from_dict(cls, payload: object) -> BuildRequest:
        if not isinstance(payload, Mapping) or len(payload) != 1:
            _fail("BuildRequest", "must be an object with exactly one version key")
        version, body = next(iter(payload.items()))
        if version != _REQUEST_VERSION_V1:
            _fail("BuildRequest", f"unsupported request version {version!r}")
        if not isinstance(body, Mapping):
            _fail(f"BuildRequest.{version}", "must be an object")

        subsets = body.get("subsets")
        if subsets is not None:
            if not isinstance(subsets, list) or not all(isinstance(s, str) for s in subsets):
                _fail(f"BuildRequest.{version}.subsets", "must be a list of strings")
            subsets = tuple(subsets)

        return cls(
            nixpkgs_revision=_as_str(
                body.get("nixpkgs_revision"), "BuildRequest.nixpkgs_revision"
            ),
            nixpkgs_sha256sum=_as_optional_str(
                body.get("nixpkgs_sha256sum"), "BuildRequest.nixpkgs_sha256sum"
            ),
            result_url=_as_optional_str(body.get("result_url"), "BuildRequest.result_url"),
            subsets=subsets,
            version=version,
        )

    def to_dict(self) -> dict[str, JSONValue]:
        body: dict[str, JSONValue] = {"nixpkgs_revision": self.nixpkgs_revision}
        if self.nixpkgs_sha256sum is not None:
            body["nixpkgs_sha256sum"] = self.nixpkgs_sha256sum
        if self.result_url is not None:
            body["result_url"] = self.result_url
        if self.subsets is not None:
            body["subsets"] = list(self.subsets)
        return {self.version: body}


@dataclass(frozen=True, slots=True)
class BuildStatus:
    """
    Reproducibility state of one definition.

    ``mismatches`` is populated only for ``Unreproducible`` and holds one
    ``DiffCacheKey`` per differing output, ordered by output name.
    """

    kind: StatusKind
    mismatches: tuple[tuple[str, DiffCacheKey], ...] = ()

    def __post_init__(self) -> None:
        if self.kind is StatusKind.UNREPRODUCIBLE:
            if not self.mismatches:
                _fail("BuildStatus.mismatches", "Unreproducible requires at least one output")
        elif self.mismatches:
            _fail("BuildStatus.mismatches", f"{self.kind.value} carries no output hashes")

    @classmethod
    def reproducible(cls) -> BuildStatus:
        return cls(StatusKind.REPRODUCIBLE)

    @classmethod
    def first_failed(cls) -> BuildStatus:
        return cls(StatusKind.FIRST_FAILED)

    @classmethod
    def second_failed(cls) -> BuildStatus:
        return cls(StatusKind.SECOND_FAILED)

    @classmethod
    def unreproducible(cls, hashes: Mapping[str, tuple[str, str]]) -> BuildStatus:
        mismatches = tuple(
            (output, DiffCacheKey(pair[0], pair[1])) for output, pair in sorted(hashes.items())
        )
        return cls(StatusKind.UNREPRODUCIBLE, mismatches)

    @classmethod
    def from_dict(cls, payload: object) -> BuildStatus:
        if isinstance(payload, str):
            try:
                kind = StatusKind(payload)
            except ValueError:
                _fail("BuildStatus", f"unknown status {payload!r}")
            if kind is StatusKind.UNREPRODUCIBLE:
                _fail("BuildStatus", "Unreproducible requires an output hash mapping")
            return cls(kind)

        if not isinstance(payload, Mapping) or len(payload) != 1:
            _fail("BuildStatus", "must be a status string or a single-key object")
        name, body = next(iter(payload.items()))
        if name != StatusKind.UNREPRODUCIBLE.value:
            _fail("BuildStatus", f"unknown status {name!r}")
        if not isinstance(body, Mapping):
            _fail("BuildStatus.Unreproducible", "must map output names to hash pairs")

        hashes: dict[str, tuple[str, str]] = {}
        for output, pair in body.items():
            path = f"BuildStatus.Unreproducible.{output}"
            if not isinstance(output, str) or not output:
                _fail("BuildStatus.Unreproducible", "output names must be non-empty strings")
            if not isinstance(pair, (list, tuple)) or len(pair) != 2:
                _fail(path, "must be a [hash_a, hash_b] pair")
            hashes[output] = (_as_str(pair[0], path), _as_str(pair[1], path))
        return cls.unreproducible(hashes)

    def to_dict(self) -> JSONValue:
        if self.kind is not StatusKind.UNREPRODUCIBLE:
            return self.kind.value
        return {self.kind.value: {output: key.to_list() for output, key in self.mismatches}}


@dataclass(frozen=True, slots=True)
class BuildOutcome:
    """One evaluator record: a definition built twice under ``request``."""

    request: BuildRequest
    drv: str
    status: BuildStatus

    @classmethod
    def from_dict(cls, payload: object) -> BuildOutcome:
        if not isinstance(payload, Mapping):
            _fail("BuildOutcome", "must be an object")
        return cls(
            request=BuildRequest.from_dict(payload.get("request")),
            drv=_as_str(payload.get("drv"), "BuildOutcome.drv"),
            status=BuildStatus.from_dict(payload.get("status")),
        )

    @classmethod
    def from_json(cls, text: str) -> BuildOutcome:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise OutcomeFormatError(f"BuildOutcome: invalid JSON: {exc}") from exc
        return cls.from_dict(payload)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "request": self.request.to_dict(),
            "drv": self.drv,
            "status": self.status.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class BuildDefinition:
    """Parsed build definition: its identifier and declared output locations."""

    identifier: str
    outputs: Mapping[str, PurePosixPath] = field(default_factory=dict)

    def output_location(self, output_name: str) -> PurePosixPath | None:
        return self.outputs.get(output_name)


@dataclass(frozen=True, slots=True)
class DiffArtifactRef:
    """Location of a rendered diff artifact inside the report directory."""

    key: DiffCacheKey
    path: Path
    href: str


@dataclass(frozen=True, slots=True)
class EntryDetail:
    """One mismatched output within a report entry."""

    output_name: str
    kind: DetailKind
    href: str | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "output": self.output_name,
            "kind": self.kind.value,
            "href": self.href,
            "message": self.message,
        }


@dataclass(frozen=True, slots=True)
class ReportEntry:
    """An unreproducible definition with its cross-references and per-output details."""

    identifier: str
    crossref_links: tuple[str, ...] = ()
    details: tuple[EntryDetail, ...] = ()

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "drv": self.identifier,
            "links": list(self.crossref_links),
            "details": [detail.to_dict() for detail in self.details],
        }


@dataclass(frozen=True, slots=True)
class OutcomeTally:
    """Counts from a single pass over the selected outcomes."""

    total: int
    reproducible: int
    unchecked: int
    first_failed: tuple[str, ...]
    unreproducible: tuple[BuildOutcome, ...]

    @property
    def is_complete(self) -> bool:
        return not self.first_failed


@dataclass(frozen=True, slots=True)
class ReportPayload:
    """Fully assembled report handed to the document renderer."""

    reproduced_count: int
    unchecked_count: int
    total_count: int
    percent: str
    revision: str
    generated_at: datetime
    entries: tuple[ReportEntry, ...]
    unreproduced_fragment: str

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "schema_version": REPORT_JSON_SCHEMA_VERSION,
            "reproduced_count": self.reproduced_count,
            "unchecked_count": self.unchecked_count,
            "total_count": self.total_count,
            "percent": self.percent,
            "revision": self.revision,
            "generated_at": self.generated_at.isoformat(),
            "entries": [entry.to_dict() for entry in self.entries],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def _as_str(value: object, path: str) -> str:
    if not isinstance(value, str) or not value:
        _fail(path, "must be a non-empty string")
    return value


def _as_optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        _fail(path, "must be a string")
    return value


def _fail(path: str, message: str) -> NoReturn:
    raise OutcomeFormatError(f"{path}: {message}")


__all__ = [
    "BuildDefinition",
    "BuildOutcome",
    "BuildRequest",
    "BuildStatus",
    "ContentId",
    "DetailKind",
    "DiffArtifactRef",
    "DiffCacheKey",
    "EntryDetail",
    "JSONScalar",
    "JSONValue",
    "OutcomeTally",
    "ReportEntry",
    "ReportPayload",
    "StatusKind",
]
