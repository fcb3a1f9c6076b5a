"""Domain models and error taxonomy for reproducibility reports."""

from repro_report.domain.errors import (
    ContentNotFoundError,
    DefinitionParseError,
    DiffComputationError,
    IncompleteVerificationError,
    OutcomeFormatError,
    ReproReportError,
)
from repro_report.domain.models import (
    BuildDefinition,
    BuildOutcome,
    BuildRequest,
    BuildStatus,
    ContentId,
    DetailKind,
    DiffArtifactRef,
    DiffCacheKey,
    EntryDetail,
    OutcomeTally,
    ReportEntry,
    ReportPayload,
    StatusKind,
)

__all__ = [
    "BuildDefinition",
    "BuildOutcome",
    "BuildRequest",
    "BuildStatus",
    "ContentId",
    "ContentNotFoundError",
    "DefinitionParseError",
    "DetailKind",
    "DiffArtifactRef",
    "DiffCacheKey",
    "DiffComputationError",
    "EntryDetail",
    "IncompleteVerificationError",
    "OutcomeFormatError",
    "OutcomeTally",
    "ReportEntry",
    "ReportPayload",
    "ReproReportError",
    "StatusKind",
]
