"""Adapters for the build-evaluation collaborator."""

from repro_report.evaluation.evaluator import (
    BuildEvaluator,
    FileEvaluator,
    JobInstantiation,
    iter_outcomes,
    load_to_build,
)

__all__ = [
    "BuildEvaluator",
    "FileEvaluator",
    "JobInstantiation",
    "iter_outcomes",
    "load_to_build",
]
