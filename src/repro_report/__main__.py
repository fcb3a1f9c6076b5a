"""Module entrypoint for ``python -m repro_report``."""

from __future__ import annotations

from repro_report.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
