"""
repro-report — structured run logging.

File: src/repro_report/observability/logging.py

Purpose
- Route ``structlog`` events through stdlib ``logging`` and render every
  record, structlog or plain, as one JSON object per line.
- Give each run its own log file at ``<log_dir>/<run_id>/repro-report.jsonl``
  and bind ``run_id`` to every event emitted while the run log is open.

Functional requirements
- Opening a run log closes any previously open one.
- Closing is idempotent and detaches only the sinks this run attached.
"""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Any, Final

import structlog

ROOT_LOGGER_NAME: Final[str] = "repro_report"
LOG_FILENAME: Final[str] = "repro-report.jsonl"

_lock = threading.Lock()
_current: RunLog | None = None


@dataclass(frozen=True, slots=True)
class LogSettings:
    """Level and sinks for a run log, usually read from ``[observability]``."""

    level: int = logging.INFO
    echo_stderr: bool = True
    filename: str = LOG_FILENAME

    @classmethod
    def from_config(cls, table: Mapping[str, object] | None) -> LogSettings:
        table = table or {}
        return cls(
            level=parse_level(table.get("log_level", "INFO")),
            echo_stderr=bool(table.get("log_to_stderr", True)),
        )


class RunLog:
    """Sinks attached for one run. Use as a context manager or call :meth:`close`."""

    def __init__(
        self,
        *,
        run_id: str,
        path: Path,
        logger: logging.Logger,
        handlers: tuple[logging.Handler, ...],
    ) -> None:
        self.run_id = run_id
        self.path = path
        self.logger = logger
        self._handlers = handlers
        self._closed = False
        self._close_lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def closed(self) -> bool:
        return self._closed

    def flush(self) -> None:
        for handler in self._handlers:
            handler.flush()

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            for handler in self._handlers:
                self.logger.removeHandler(handler)
                handler.close()
            structlog.contextvars.unbind_contextvars("run_id")
        _forget(self)

    def __enter__(self) -> RunLog:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def configure_structlog() -> None:
    """Send structlog events to stdlib loggers; formatting happens in the handlers."""

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def json_line_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering one sorted-key JSON object per record."""

    return structlog.stdlib.ProcessorFormatter(
        # Applied to records that did not come through structlog.
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True, default=str),
        ],
    )


def open_run_log(
    run_id: str,
    log_dir: Path | str,
    settings: LogSettings | None = None,
    *,
    logger_name: str = ROOT_LOGGER_NAME,
) -> RunLog:
    """Attach a JSON-lines file sink (and optionally stderr) for ``run_id``."""

    settings = settings or LogSettings()
    run_id = _path_component(run_id, "run_id")
    filename = _path_component(settings.filename, "log filename")

    close_run_log()

    path = Path(log_dir) / run_id / filename
    path.parent.mkdir(parents=True, exist_ok=True)

    configure_structlog()
    formatter = json_line_formatter()
    handlers: list[logging.Handler] = [logging.FileHandler(path, encoding="utf-8")]
    if settings.echo_stderr:
        handlers.append(logging.StreamHandler(sys.stderr))

    logger = logging.getLogger(logger_name)
    logger.setLevel(settings.level)
    logger.propagate = False
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    for handler in handlers:
        handler.setLevel(settings.level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    structlog.contextvars.bind_contextvars(run_id=run_id)

    run_log = RunLog(run_id=run_id, path=path, logger=logger, handlers=tuple(handlers))
    global _current
    with _lock:
        _current = run_log
    return run_log


def setup_logging(
    observability_config: Mapping[str, object] | None,
    *,
    run_id: str,
    log_dir: Path | str,
) -> RunLog:
    """Open a run log configured from an ``[observability]`` config table."""

    return open_run_log(run_id, log_dir, LogSettings.from_config(observability_config))


def close_run_log(run_log: RunLog | None = None) -> None:
    """Close ``run_log``, or the currently open run log if none is given."""

    target = run_log if run_log is not None else current_run_log()
    if target is not None:
        target.close()


def current_run_log() -> RunLog | None:
    with _lock:
        return _current


@contextmanager
def bound_fields(**fields: Any) -> Iterator[None]:
    """Bind extra fields to every event logged inside the block."""

    tokens = structlog.contextvars.bind_contextvars(**fields)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


def parse_level(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        level = logging.getLevelNamesMapping().get(value.strip().upper())
        if level is not None:
            return level
    raise ValueError(f"unsupported logging level {value!r}")


def _forget(run_log: RunLog) -> None:
    global _current
    with _lock:
        if _current is run_log:
            _current = None


def _path_component(value: str, what: str) -> str:
    cleaned = value.strip() if isinstance(value, str) else ""
    if not cleaned:
        raise ValueError(f"{what} must be a non-empty string")
    if cleaned in {".", ".."} or Path(cleaned).name != cleaned:
        raise ValueError(f"{what} must be a single path component, got {value!r}")
    return cleaned


__all__ = [
    "LOG_FILENAME",
    "ROOT_LOGGER_NAME",
    "LogSettings",
    "RunLog",
    "bound_fields",
    "close_run_log",
    "configure_structlog",
    "current_run_log",
    "json_line_formatter",
    "open_run_log",
    "parse_level",
    "setup_logging",
]
