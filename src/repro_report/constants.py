"""Stable constants shared across the report pipeline."""

from __future__ import annotations

from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
REPORT_JSON_SCHEMA_VERSION: Final[int] = 1

# Layout inside the report directory.
DIFF_DIR_NAME: Final[str] = "diff"
DIFF_STORE_DIR_NAME: Final[str] = "cas"

DEFAULT_CONFIG_FILE: Final[str] = "repro-report.toml"
ENV_PREFIX: Final[str] = "REPRO_"

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CONFIG_FILE",
    "DIFF_DIR_NAME",
    "DIFF_STORE_DIR_NAME",
    "ENV_PREFIX",
    "REPORT_JSON_SCHEMA_VERSION",
]
