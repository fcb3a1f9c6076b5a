"""
repro-report — build reproducibility report.

File: src/repro_report/__init__.py

Purpose
- Package root. Classifies double-build outcomes for one source revision,
  renders a diff for every mismatched output, and publishes an HTML report.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
