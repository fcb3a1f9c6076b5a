"""
repro-report — HTML rendering of report payloads.

File: src/repro_report/report/render.py

Purpose
- Render the unreproduced-list fragment and the full report document from
  templates embedded in this module.

Functional requirements
- Must render deterministically for the same payload.
- Every value taken from outcomes, definitions, or config is HTML-escaped;
  only the pre-rendered fragment is inserted verbatim.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Final

from jinja2 import Environment, StrictUndefined, Template
from markupsafe import Markup

from repro_report.domain.models import DetailKind, ReportEntry, ReportPayload

NOT_APPLICABLE: Final[str] = "n/a"

_FRAGMENT_SOURCE: Final[str] = """\
{% for entry in entries %}
<li><code>{{ entry.identifier }}</code><ul>
{% for link in entry.crossref_links %}
<li><a href="{{ link }}">more info...</a></li>
{% endfor %}
{% for detail in entry.details %}
{% if detail.kind == DetailKind.DIFF %}
<li><a href="{{ detail.href or '' }}">(diffoscope)</a> {{ detail.output_name }}</li>
{% elif detail.kind == DetailKind.MISSING_OUTPUT %}
<li class="missing"><a href="{{ detail.href or '' }}">(drv)</a> {{ detail.output_name }} \
<strong>(not declared by the definition, no diff)</strong></li>
{% else %}
<li class="failed">{{ detail.output_name }} \
<strong>(diff failed: {{ detail.message or 'unknown error' }})</strong></li>
{% endif %}
{% endfor %}
</ul></li>
{% endfor %}
"""

_DOCUMENT_SOURCE: Final[str] = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Is NixOS reproducible yet?</title>
<style>
body { font-family: sans-serif; max-width: 60em; margin: 2em auto; line-height: 1.4; }
code { word-break: break-all; }
.missing, .failed { color: #a40000; }
.summary { font-size: 1.4em; }
</style>
</head>
<body>
<h1>Is NixOS reproducible yet?</h1>
<p class="summary">
<strong>{{ reproduced }}</strong> out of <strong>{{ total }}</strong> paths
(<strong>{{ percent }}</strong>) were reproduced bit for bit.
{{ unchecked }} could not be checked because the second build failed.
</p>
<p>Revision <code>{{ revision }}</code>, generated {{ now }}.</p>
<h2>Unreproduced paths</h2>
<ul>
{{ unreproduced_list }}
</ul>
</body>
</html>
"""


def _build_environment() -> Environment:
    environment = Environment(
        undefined=StrictUndefined,
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
        newline_sequence="\n",
        keep_trailing_newline=True,
    )
    environment.globals["DetailKind"] = DetailKind
    return environment


_ENVIRONMENT: Final[Environment] = _build_environment()
_FRAGMENT_TEMPLATE: Final[Template] = _ENVIRONMENT.from_string(_FRAGMENT_SOURCE)
_DOCUMENT_TEMPLATE: Final[Template] = _ENVIRONMENT.from_string(_DOCUMENT_SOURCE)


def format_percent(reproduced: int, total: int) -> str:
    """Two-decimal percentage, or ``n/a`` when nothing was considered."""

    if total <= 0:
        return NOT_APPLICABLE
    return f"{100.0 * reproduced / total:.2f}%"


def definition_href(identifier: str) -> str:
    """Relative link to a definition copied alongside the report."""

    if identifier.startswith("/"):
        return "." + identifier
    return identifier


def render_fragment(entries: Iterable[ReportEntry]) -> str:
    return _FRAGMENT_TEMPLATE.render(entries=list(entries)).rstrip("\n")


def render_document(payload: ReportPayload) -> str:
    return _DOCUMENT_TEMPLATE.render(
        reproduced=payload.reproduced_count,
        unchecked=payload.unchecked_count,
        total=payload.total_count,
        percent=payload.percent,
        revision=payload.revision,
        now=payload.generated_at.isoformat(sep=" ", timespec="seconds"),
        # Already escaped by render_fragment.
        unreproduced_list=Markup(payload.unreproduced_fragment),
    )


__all__ = [
    "NOT_APPLICABLE",
    "definition_href",
    "format_percent",
    "render_document",
    "render_fragment",
]
