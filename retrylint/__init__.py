"""
retrylint - flags Go tests that report failures through the outer
``*testing.T`` from inside a ``retry.Run`` body.
"""

from __future__ import annotations

__version__ = "0.3.0"

from retrylint.analyzer import Analyzer, FileResult, lint_source
from retrylint.config import Config
from retrylint.store import Violation, ViolationStore

__all__ = [
    "Analyzer",
    "Config",
    "FileResult",
    "Violation",
    "ViolationStore",
    "lint_source",
]
