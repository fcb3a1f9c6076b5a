"""All-or-nothing publication of a finished report."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final

from repro_report.domain.models import ReportPayload
from repro_report.report.render import render_document
from repro_report.utils.fs import atomic_write_all, ensure_directory

PathLike = str | os.PathLike[str]

REPORT_DOCUMENT_NAME: Final[str] = "index.html"
REPORT_JSON_NAME: Final[str] = "report.json"


class ReportWriter:
    """
    Write ``index.html`` and ``report.json`` into the report directory.

    Callers only reach ``write`` with a complete payload, so a failed run
    leaves the previous report untouched. Both files are staged before
    either is renamed; ``report.json`` is renamed first and ``index.html``
    last, so the document never points at a newer run than its JSON.
    """

    def __init__(self, report_dir: PathLike) -> None:
        self._report_dir = Path(report_dir)

    @property
    def document_path(self) -> Path:
        return self._report_dir / REPORT_DOCUMENT_NAME

    @property
    def json_path(self) -> Path:
        return self._report_dir / REPORT_JSON_NAME

    def write(self, payload: ReportPayload) -> Path:
        document = render_document(payload)
        ensure_directory(self._report_dir)
        atomic_write_all({self.document_path: document, self.json_path: payload.to_json()})
        return self.document_path


__all__ = ["REPORT_DOCUMENT_NAME", "REPORT_JSON_NAME", "ReportWriter"]
