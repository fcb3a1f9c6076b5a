"""
repro-report — unit tests for config loader

File: tests/unit/config/test_loader.py

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Deterministic env var path mapping and type coercion.
- Path normalization relative to the config file.
- ``[crossrefs]`` replaces the default table instead of merging into it.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from repro_report.config.loader import (
    ConfigLoadError,
    dump_effective_config,
    load_config,
)
from repro_report.config.schema import ConfigValidationError
from repro_report.report.crossref import DEFAULT_CROSS_REFERENCES


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    config_path = tmp_path / "repro-report.toml"
    default_path = tmp_path / "default.toml"
    _write_config(default_path, "")
    _write_config(
        config_path,
        """
[diff]
max_concurrency = 2
""".strip(),
    )

    default_loaded = load_config(default_path, environ={})
    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ={"REPRO_DIFF_MAX_CONCURRENCY": "6"})
    cli_loaded = load_config(
        config_path,
        environ={"REPRO_DIFF_MAX_CONCURRENCY": "6"},
        cli_overrides={"diff.max_concurrency": 7},
    )

    assert default_loaded["diff"]["max_concurrency"] == 4
    assert file_loaded["diff"]["max_concurrency"] == 2
    assert env_loaded["diff"]["max_concurrency"] == 6
    assert cli_loaded["diff"]["max_concurrency"] == 7


def test_env_values_are_coerced_by_default_type(tmp_path: Path) -> None:
    config_path = tmp_path / "repro-report.toml"
    _write_config(config_path, "")

    loaded = load_config(
        config_path,
        environ={
            "REPRO_DIFF_TIMEOUT_SECONDS": "12.5",
            "REPRO_DIFF_COMMAND": "diffoscope --text -",
            "REPRO_OBSERVABILITY_LOG_TO_STDERR": "off",
            "REPRO_REPORT_ON_DIFF_ERROR": "annotate",
        },
    )

    assert loaded["diff"]["timeout_seconds"] == 12.5
    assert loaded["diff"]["command"] == ["diffoscope", "--text", "-"]
    assert loaded["observability"]["log_to_stderr"] is False
    assert loaded["report"]["on_diff_error"] == "annotate"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("REPRO_DIFF_MAX_CONCURRENCY", "many"),
        ("REPRO_DIFF_TIMEOUT_SECONDS", "soon"),
        ("REPRO_OBSERVABILITY_LOG_TO_STDERR", "maybe"),
    ],
)
def test_uncoercible_env_values_raise(tmp_path: Path, name: str, value: str) -> None:
    config_path = tmp_path / "repro-report.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match=name):
        load_config(config_path, environ={name: value})


def test_paths_are_normalized_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "conf" / "repro-report.toml"
    _write_config(
        config_path,
        """
[paths]
read_store = "../blobs"
report_dir = "/srv/report"
""".strip(),
    )

    loaded = load_config(config_path, environ={})

    assert loaded["paths"]["read_store"] == (tmp_path / "blobs").as_posix()
    assert loaded["paths"]["report_dir"] == "/srv/report"
    assert loaded["paths"]["results"] == (tmp_path / "conf" / "results.jsonl").as_posix()
    assert loaded["paths"]["definition_root"] == ""


def test_crossrefs_table_replaces_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "repro-report.toml"
    _write_config(
        config_path,
        """
[crossrefs]
"openssl" = "https://example.invalid/openssl"
""".strip(),
    )

    loaded = load_config(config_path, environ={})

    assert loaded["crossrefs"] == {"openssl": "https://example.invalid/openssl"}


def test_missing_default_config_falls_back_to_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    loaded = load_config(environ={})

    assert loaded["crossrefs"] == dict(DEFAULT_CROSS_REFERENCES)
    assert loaded["paths"]["report_dir"] == (tmp_path / "report").resolve().as_posix()


def test_explicit_missing_config_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="not found"):
        load_config(tmp_path / "absent.toml", environ={})


def test_invalid_toml_is_an_error(tmp_path: Path) -> None:
    config_path = tmp_path / "repro-report.toml"
    _write_config(config_path, "[diff\n")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_invalid_values_raise_validation_error(tmp_path: Path) -> None:
    config_path = tmp_path / "repro-report.toml"
    _write_config(config_path, "[report]\non_diff_error = \"ignore\"\n")

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(config_path, environ={})

    assert [issue.path for issue in excinfo.value.issues] == ["report.on_diff_error"]


def test_dump_effective_config_is_deterministic(tmp_path: Path) -> None:
    config_path = tmp_path / "repro-report.toml"
    _write_config(config_path, "")

    first = dump_effective_config(load_config(config_path, environ={}))
    second = dump_effective_config(load_config(config_path, environ={}))

    assert first == second
    assert json.loads(first)["meta"]["schema_version"] == 1


def test_repro_config_env_selects_the_file(tmp_path: Path) -> None:
    config_path = tmp_path / "elsewhere.toml"
    _write_config(config_path, "[diff]\nextension = \"txt\"\n")

    loaded = load_config(environ={"REPRO_CONFIG": str(config_path)})

    assert loaded["diff"]["extension"] == "txt"
    with pytest.raises(ConfigLoadError, match="not found"):
        load_config(environ={"REPRO_CONFIG": str(tmp_path / "absent.toml")})


def test_env_coercion_follows_default_types_not_file_values(tmp_path: Path) -> None:
    config_path = tmp_path / "repro-report.toml"
    _write_config(config_path, "[diff]\ntimeout_seconds = 30\n")

    loaded = load_config(config_path, environ={"REPRO_DIFF_TIMEOUT_SECONDS": "2.5"})

    assert loaded["diff"]["timeout_seconds"] == 2.5
