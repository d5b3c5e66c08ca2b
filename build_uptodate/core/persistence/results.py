"""
Results reporter — the ordered log of unit analysis results.

The orchestrator is the single writer. ``ResultsReporter`` also
persists the log as a JSON array when the run is torn down:

    [{"Path", "UpToDate", "AnalysisStartTime", "AnalysisEndTime",
      "FailureMessage"}, ...]

Writes are atomic (write to temp file, then rename).
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from build_uptodate.core.models.result import UnitAnalysisResult

logger = logging.getLogger(__name__)

DEFAULT_REPORT_FILE = "project-results.json"


class ResultLog:
    """Append-only, in-memory result log."""

    def __init__(self) -> None:
        self._results: list[UnitAnalysisResult] = []

    @property
    def results(self) -> list[UnitAnalysisResult]:
        return list(self._results)

    def report(self, result: UnitAnalysisResult) -> None:
        self._results.append(result)

    def to_json(self) -> str:
        return json.dumps([r.to_report_dict() for r in self._results], indent=2) + "\n"


class ResultsReporter(ResultLog):
    """Result log persisted to a JSON report file."""

    def __init__(self, path: Path | str):
        super().__init__()
        if path is None:
            raise ValueError("path is required")

        self._path = Path(path).absolute()
        self._path.parent.mkdir(parents=True, exist_ok=True)

        # A stale report from an earlier run must not survive a crash.
        if self._path.is_file():
            self._path.unlink()

    @property
    def path(self) -> Path:
        return self._path

    def tear_down(self) -> None:
        """Write the report file."""
        content = self.to_json()
        _fd, tmp_path = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=".results_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with open(_fd, "w", encoding="utf-8") as f:
                f.write(content)
            tmp.replace(self._path)
            logger.debug("Report written to %s (%d results)", self._path, len(self.results))
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
