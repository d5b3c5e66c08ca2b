"""
Graph orchestrator — walk the unit graph and aggregate verdicts.

Units arrive topologically sorted (producers before dependents) and are
analyzed strictly one after another, so fail-fast observes results in
dependency order.

States:
    running  → analyze the next unit, append its result, AND the verdict
    halted   → fail-fast saw a stale unit, or a unit failed fatally
    done     → every unit analyzed

A unit that cannot be analyzed (evaluation exhausted its retries, a
path could not be stat-ed) is recorded with ``error`` set, not as a
stale verdict, and the run halts.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from build_uptodate.adapters.base import ProjectModel
from build_uptodate.core.errors import UpToDateCheckError
from build_uptodate.core.models.result import CheckResult, UnitAnalysisResult
from build_uptodate.core.persistence.results import ResultLog

logger = logging.getLogger(__name__)


class UnitAnalyzer(Protocol):
    def analyze(self, unit: str) -> CheckResult: ...


@dataclass
class GraphReport:
    """Outcome of analyzing a graph (possibly partial)."""

    up_to_date: bool = True
    units_total: int = 0
    results: list[UnitAnalysisResult] = field(default_factory=list)
    halted: bool = False
    error: str | None = None

    @property
    def analyzed(self) -> int:
        return len(self.results)

    @property
    def stale(self) -> int:
        return sum(1 for r in self.results if not r.up_to_date and r.error is None)

    @property
    def status(self) -> str:
        if self.error:
            return "error"
        return "up-to-date" if self.up_to_date else "stale"

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "up_to_date": self.up_to_date,
            "units_total": self.units_total,
            "analyzed": self.analyzed,
            "stale": self.stale,
            "halted": self.halted,
            "error": self.error,
            "results": [r.to_report_dict() for r in self.results],
        }


class GraphOrchestrator:
    """Runs the unit analyzer across a dependency graph."""

    def __init__(
        self,
        model: ProjectModel,
        analyzer: UnitAnalyzer,
        results: ResultLog,
        fail_fast: bool = False,
    ):
        if model is None:
            raise ValueError("model is required")
        if analyzer is None:
            raise ValueError("analyzer is required")
        if results is None:
            raise ValueError("results is required")

        self._model = model
        self._analyzer = analyzer
        self._results = results
        self._fail_fast = fail_fast

    def analyze_graph(self, root: str) -> GraphReport:
        """Analyze every unit reachable from ``root``.

        Raises:
            UnitNotFoundError: If the root unit does not exist.
            GraphError: If the graph cannot be ordered.
        """
        logger.info("Calculating project graph...")
        started = time.perf_counter()
        units = self._model.topological_units(root)
        logger.info(
            "Graph generation took %dms. Processing %d project(s) in the tree.",
            (time.perf_counter() - started) * 1000,
            len(units),
        )

        started = time.perf_counter()
        report = self.analyze_units(units)
        elapsed = int(time.perf_counter() - started)
        logger.info("Graph analysis took %dm, %ds.", elapsed // 60, elapsed % 60)
        return report

    def analyze_units(self, units: Sequence[str]) -> GraphReport:
        """Analyze ``units`` in the given (dependency) order."""
        report = GraphReport(units_total=len(units))

        for unit in units:
            logger.info("Starting analysis of project '%s'.", unit)

            scan_start = datetime.now(UTC)
            started = time.perf_counter()
            try:
                verdict = self._analyzer.analyze(unit)
            except (UpToDateCheckError, OSError) as e:
                duration = timedelta(seconds=time.perf_counter() - started)
                logger.error("Unable to analyze project '%s': %s", unit, e)
                self._record(report, UnitAnalysisResult(
                    unit_path=unit,
                    up_to_date=False,
                    failure_message=str(e),
                    scan_start=scan_start,
                    scan_duration=duration,
                    error=str(e),
                ))
                report.up_to_date = False
                report.halted = True
                report.error = f"{unit}: {e}"
                break

            duration = timedelta(seconds=time.perf_counter() - started)
            logger.info("Project build check took %.2fs.", duration.total_seconds())

            self._record(report, UnitAnalysisResult(
                unit_path=unit,
                up_to_date=verdict.passed,
                failure_message=verdict.message,
                scan_start=scan_start,
                scan_duration=duration,
            ))
            report.up_to_date = report.up_to_date and verdict.passed

            if self._fail_fast and not report.up_to_date:
                logger.info("Fail-fast: stopping after first out-of-date project.")
                report.halted = True
                break

        return report

    def _record(self, report: GraphReport, result: UnitAnalysisResult) -> None:
        report.results.append(result)
        self._results.report(result)
