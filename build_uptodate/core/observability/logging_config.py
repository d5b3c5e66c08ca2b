"""
Logging configuration for the checker CLI.

Progress lines ("Checking if project ... is up to date.", per-unit
timings) are INFO and print as bare messages. Per-check traces,
predicted inputs/outputs and evaluation logs are DEBUG and carry the
time and logger name, so a verbose run reads as a trace.

The console level is chosen by ``console_level``:
    --verbose  >  UTDC_LOG_LEVEL  >  INFO

A second, independent sink can be added with UTDC_LOG_FILE (level
UTDC_LOG_FILE_LEVEL, defaulting to the console level).
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

LEVEL_ENV = "UTDC_LOG_LEVEL"
FILE_ENV = "UTDC_LOG_FILE"
FILE_LEVEL_ENV = "UTDC_LOG_FILE_LEVEL"

DEFAULT_LEVEL = "INFO"

_PROGRESS_FORMAT = logging.Formatter("%(message)s")
_TRACE_FORMAT = logging.Formatter(
    "%(asctime)s %(levelname)-5s [%(name)s] %(message)s", datefmt="%H:%M:%S"
)


def console_level(verbose: bool, environ: Mapping[str, str] | None = None) -> str:
    """Level name for the console handler of this run."""
    if verbose:
        return "DEBUG"
    env = os.environ if environ is None else environ
    return env.get(LEVEL_ENV) or DEFAULT_LEVEL


def setup_logging(
    level: str = DEFAULT_LEVEL,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with the checker's.

    Args:
        level: Console level name; unknown names fall back to INFO.
        log_file: Optional path of a trace file.
        log_file_level: Level for the trace file (default: ``level``).
    """
    numeric_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(_TRACE_FORMAT if numeric_level <= logging.DEBUG else _PROGRESS_FORMAT)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        trace = logging.FileHandler(log_file, encoding="utf-8")
        trace.setLevel(file_level)
        trace.setFormatter(_TRACE_FORMAT)
        root.addHandler(trace)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)


def _parse_level(level: str | None) -> int:
    if not level:
        return logging.INFO
    numeric = getattr(logging, level.upper(), None)
    return numeric if isinstance(numeric, int) else logging.INFO
