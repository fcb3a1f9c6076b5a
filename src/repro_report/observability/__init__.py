"""Public observability primitives: per-run structured JSON-lines logging."""

from repro_report.observability.logging import (
    LOG_FILENAME,
    ROOT_LOGGER_NAME,
    LogSettings,
    RunLog,
    bound_fields,
    close_run_log,
    configure_structlog,
    current_run_log,
    json_line_formatter,
    open_run_log,
    parse_level,
    setup_logging,
)

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
