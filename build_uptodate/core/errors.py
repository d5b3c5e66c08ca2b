"""
Fatal errors — "could not determine staleness".

A stale unit is a normal verdict and is never raised. Everything in
this module means the analysis itself could not proceed, and must be
reported distinctly from a ``(False, message)`` verdict.
"""

from __future__ import annotations


class UpToDateCheckError(Exception):
    """Base class for every fatal analysis error."""


class UnitNotFoundError(UpToDateCheckError, FileNotFoundError):
    """Raised when a unit file (usually the root) does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Unit file not found: {path}")
        self.path = path


class EvaluationError(UpToDateCheckError):
    """Raised when a unit cannot be evaluated.

    ``log_text`` holds the informational log gathered during the last
    attempt, for diagnostics.
    """

    def __init__(self, message: str, log_text: str = ""):
        super().__init__(message)
        self.log_text = log_text


class FilesystemAccessError(UpToDateCheckError):
    """Raised when a path exists but its attributes cannot be read."""

    def __init__(self, path: str, cause: OSError):
        super().__init__(f"Unable to read attributes of '{path}': {cause}")
        self.path = path
        self.cause = cause


class GraphError(UpToDateCheckError):
    """Raised when the unit graph is invalid (e.g. a reference cycle)."""
