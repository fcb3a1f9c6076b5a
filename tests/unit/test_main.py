"""Unit tests for process exit-code routing at the CLI boundary."""

from __future__ import annotations

from pathlib import Path

import pytest

from repro_report import main as main_module
from repro_report.config import ConfigLoadError
from repro_report.domain.errors import (
    ContentNotFoundError,
    DefinitionParseError,
    IncompleteVerificationError,
    OutcomeFormatError,
)
from repro_report.main import ExitCode, cli_entrypoint


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (IncompleteVerificationError(["/nix/store/a.drv"]), ExitCode.INCOMPLETE_VERIFICATION),
        (DefinitionParseError("/nix/store/a.drv", "truncated"), ExitCode.DEFINITION_ERROR),
        (ContentNotFoundError("aaa", Path("/tmp/store")), ExitCode.DIFF_ERROR),
        (ConfigLoadError("bad config"), ExitCode.CONFIG_ERROR),
        (OutcomeFormatError("bad line"), ExitCode.CONFIG_ERROR),
        (FileNotFoundError("results.jsonl"), ExitCode.CONFIG_ERROR),
        (RuntimeError("boom"), ExitCode.INTERNAL_ERROR),
    ],
)
def test_route_exception(exc: BaseException, expected: ExitCode) -> None:
    assert main_module._route_exception(exc) is expected


def test_route_exception_follows_the_cause_chain() -> None:
    try:
        try:
            raise DefinitionParseError("/nix/store/a.drv", "unexpected character")
        except DefinitionParseError as inner:
            raise RuntimeError("aggregation failed") from inner
    except RuntimeError as outer:
        assert main_module._route_exception(outer) is ExitCode.DEFINITION_ERROR


def test_entrypoint_maps_missing_explicit_config_to_config_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli_entrypoint(
        ["report", "--revision", "rev1", "--config", str(tmp_path / "absent.toml")]
    )

    assert code == ExitCode.CONFIG_ERROR
    assert "config file not found" in capsys.readouterr().err


def test_entrypoint_maps_argparse_usage_errors() -> None:
    assert cli_entrypoint(["report"]) == ExitCode.CONFIG_ERROR


def test_entrypoint_prints_traceback_for_internal_errors(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def explode(argv: object) -> int:
        raise RuntimeError("unexpected")

    monkeypatch.setattr("repro_report.ui.cli.run_cli", explode)

    assert cli_entrypoint(["report", "--revision", "rev1"]) == ExitCode.INTERNAL_ERROR
    assert "Traceback" in capsys.readouterr().err
