"""
repro-report — runtime config loader.

File: src/repro_report/config/loader.py

Purpose
- Build the effective runtime config by layering defaults, ``repro-report.toml``,
  ``REPRO_*`` environment variables, and command-line flags.

What should be included in this file
- Precedence logic: CLI > env > file > defaults.
- TOML loading via ``tomllib``.
- Env var names derived from the default config tree, coerced by the type of
  the default value they override.
- Path normalization relative to the config file's directory.

Non-functional requirements
- Loading the same inputs twice yields identical configs.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any, Final

from repro_report.config.schema import (
    PATH_FIELDS,
    REPLACED_SECTIONS,
    assert_valid_config,
    default_config,
    merge_config,
)
from repro_report.constants import DEFAULT_CONFIG_FILE, ENV_PREFIX

# Selects the config file when --config is not given.
CONFIG_PATH_ENV: Final[str] = f"{ENV_PREFIX}CONFIG"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})

ConfigPath = tuple[str, ...]


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with deterministic precedence: CLI > env > file > defaults.

    A missing file is an error only when it was named explicitly, either by
    ``config_path`` or by ``REPRO_CONFIG``.
    """

    env = os.environ if environ is None else environ
    path, explicit = _locate_config_file(config_path, env)

    config = assert_valid_config(merge_config(default_config(), _read_toml(path, explicit)))
    for layer in (env_layer(default_config(), env), cli_layer(cli_overrides or {})):
        config = merge_config(config, layer)
    config = assert_valid_config(config)

    return normalize_paths(config, base_dir=path.parent)


def env_layer(config: Mapping[str, object], environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``REPRO_<SECTION>_<KEY>`` overrides for every scalar/list setting in ``config``."""

    layer: dict[str, Any] = {}
    for name, (path, default) in sorted(env_bindings(config).items()):
        raw = environ.get(name)
        if raw is None:
            continue
        coerce = _COERCERS[type(default)]
        try:
            value = coerce(raw.strip())
        except ValueError as exc:
            raise ConfigLoadError(f"{name} -> {'.'.join(path)}: {exc}") from exc
        _assign(layer, path, value)
    return layer


def env_bindings(config: Mapping[str, object]) -> dict[str, tuple[ConfigPath, object]]:
    """Map each overridable env var name to its config path and current value."""

    bindings: dict[str, tuple[ConfigPath, object]] = {}
    for path, value in _walk(config):
        if path[0] in REPLACED_SECTIONS or path[0] == "meta":
            continue
        if type(value) not in _COERCERS:
            continue
        bindings[ENV_PREFIX + "_".join(part.upper() for part in path)] = (path, value)
    return bindings


def cli_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    """Expand dotted ``section.key`` flags into a nested overlay. ``None`` means not given."""

    layer: dict[str, Any] = {}
    for dotted, value in sorted(overrides.items()):
        if value is None:
            continue
        path = tuple(part for part in dotted.split(".") if part)
        if len(path) < 2:
            raise ConfigLoadError(f"CLI override {dotted!r} must name a section and a key")
        _assign(layer, path, value)
    return layer


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Resolve relative ``[paths]`` entries against ``base_dir``. Empty values stay empty."""

    normalized = merge_config({}, config)
    for section, key in PATH_FIELDS:
        table = normalized.get(section)
        if not isinstance(table, dict):
            continue
        raw = table.get(key)
        if isinstance(raw, str) and raw:
            table[key] = _absolute(raw, base_dir)
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Canonical JSON of the effective config, suitable for logging or diffing two runs."""

    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _locate_config_file(
    config_path: str | Path | None, environ: Mapping[str, str]
) -> tuple[Path, bool]:
    if config_path is not None:
        return Path(config_path).expanduser().resolve(), True
    from_env = environ.get(CONFIG_PATH_ENV, "").strip()
    if from_env:
        return Path(from_env).expanduser().resolve(), True
    return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve(), False


def _read_toml(path: Path, explicit: bool) -> dict[str, Any]:
    try:
        raw = path.read_bytes()
    except FileNotFoundError as exc:
        if explicit:
            raise ConfigLoadError(f"config file not found: {path}") from exc
        return {}
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc

    try:
        return tomllib.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc


def _walk(
    payload: Mapping[str, object], prefix: ConfigPath = ()
) -> Iterator[tuple[ConfigPath, object]]:
    for key in sorted(payload):
        value = payload[key]
        if isinstance(value, Mapping):
            yield from _walk(value, (*prefix, key))
        else:
            yield (*prefix, key), value


def _assign(target: dict[str, Any], path: ConfigPath, value: object) -> None:
    *parents, leaf = path
    for part in parents:
        target = target.setdefault(part, {})
    target[leaf] = value


def _absolute(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"expected one of {', '.join(sorted(_TRUTHY | _FALSY))}, got {raw!r}")


def _parse_int(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"expected an integer, got {raw!r}") from None


def _parse_float(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"expected a number, got {raw!r}") from None


# Keyed by the exact type of the default value; ``bool`` must not fall back to ``int``.
_COERCERS: Final[dict[type, Callable[[str], object]]] = {
    bool: _parse_bool,
    int: _parse_int,
    float: _parse_float,
    str: str,
    # Whitespace-separated argv, e.g. REPRO_DIFF_COMMAND="diffoscope --html -".
    list: str.split,
}


__all__ = [
    "CONFIG_PATH_ENV",
    "ConfigLoadError",
    "cli_layer",
    "dump_effective_config",
    "env_bindings",
    "env_layer",
    "load_config",
    "normalize_paths",
]
