"""Diff computation and the de-duplicating diff cache."""

from repro_report.diffing.cache import DiffCache
from repro_report.diffing.command import (
    CommandExecutor,
    CommandResult,
    CommandSpec,
    SubprocessExecutor,
)
from repro_report.diffing.tool import DEFAULT_DIFF_COMMAND, DiffoscopeTool, DiffTool

__all__ = [
    "DEFAULT_DIFF_COMMAND",
    "CommandExecutor",
    "CommandResult",
    "CommandSpec",
    "DiffCache",
    "DiffTool",
    "DiffoscopeTool",
    "SubprocessExecutor",
]
