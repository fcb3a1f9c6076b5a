"""Outcome classification, report aggregation, rendering, and publication."""

from repro_report.report.aggregator import DiffErrorPolicy, ReportAggregator
from repro_report.report.classifier import (
    RequestPredicate,
    matches_revision,
    normalize_identifier,
    partition_by_status,
    select_outcomes,
    tally_outcomes,
)
from repro_report.report.crossref import (
    DEFAULT_CROSS_REFERENCES,
    CrossReference,
    CrossReferenceTable,
)
from repro_report.report.render import (
    NOT_APPLICABLE,
    definition_href,
    format_percent,
    render_document,
    render_fragment,
)
from repro_report.report.writer import REPORT_DOCUMENT_NAME, REPORT_JSON_NAME, ReportWriter

__all__ = [
    "DEFAULT_CROSS_REFERENCES",
    "NOT_APPLICABLE",
    "REPORT_DOCUMENT_NAME",
    "REPORT_JSON_NAME",
    "CrossReference",
    "CrossReferenceTable",
    "DiffErrorPolicy",
    "ReportAggregator",
    "ReportWriter",
    "RequestPredicate",
    "definition_href",
    "format_percent",
    "matches_revision",
    "normalize_identifier",
    "partition_by_status",
    "render_document",
    "render_fragment",
    "select_outcomes",
    "tally_outcomes",
]
