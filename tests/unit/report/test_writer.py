"""Tests for all-or-nothing report publication."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from repro_report.domain.models import ReportPayload
from repro_report.report.writer import REPORT_DOCUMENT_NAME, REPORT_JSON_NAME, ReportWriter


def _payload(reproduced: int) -> ReportPayload:
    return ReportPayload(
        reproduced_count=reproduced,
        unchecked_count=0,
        total_count=2,
        percent=f"{reproduced * 50:.2f}%",
        revision="abc123",
        generated_at=datetime(2026, 1, 1, tzinfo=UTC),
        entries=(),
        unreproduced_fragment="",
    )


def test_write_creates_document_and_json(tmp_path: Path) -> None:
    writer = ReportWriter(tmp_path / "report")

    document = writer.write(_payload(1))

    assert document == tmp_path / "report" / REPORT_DOCUMENT_NAME
    assert "<strong>50.00%</strong>" in document.read_text(encoding="utf-8")
    decoded = json.loads((tmp_path / "report" / REPORT_JSON_NAME).read_text(encoding="utf-8"))
    assert decoded["reproduced_count"] == 1


def test_rewrite_replaces_previous_report_without_leftovers(tmp_path: Path) -> None:
    writer = ReportWriter(tmp_path)
    writer.write(_payload(1))
    writer.write(_payload(2))

    assert "<strong>100.00%</strong>" in writer.document_path.read_text(encoding="utf-8")
    assert sorted(path.name for path in tmp_path.iterdir()) == [
        REPORT_DOCUMENT_NAME,
        REPORT_JSON_NAME,
    ]


def test_failed_publication_keeps_the_previous_document(tmp_path: Path) -> None:
    writer = ReportWriter(tmp_path)
    writer.document_path.write_bytes(b"<html>previous</html>")
    # A directory in the way makes the report.json rename fail.
    writer.json_path.mkdir()

    with pytest.raises(OSError):
        writer.write(_payload(2))

    assert writer.document_path.read_bytes() == b"<html>previous</html>"
    assert sorted(path.name for path in tmp_path.iterdir()) == [
        REPORT_DOCUMENT_NAME,
        REPORT_JSON_NAME,
    ]
