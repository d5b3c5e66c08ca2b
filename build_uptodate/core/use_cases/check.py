"""
Check use case — is the build under a root unit up to date?

This is the top-level wiring: it builds the evaluator, predictor,
analyzer and orchestrator, walks the graph, and always writes the
(possibly partial) report. Fatal errors come back as ``error``, never
as a stale verdict.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from build_uptodate.adapters.base import PredictionProvider, ProjectModel
from build_uptodate.adapters.manifest import ManifestPredictor, ManifestProjectModel
from build_uptodate.core.config.settings import CheckerSettings, build_global_properties
from build_uptodate.core.engine.analyzer import BuildUnitAnalyzer
from build_uptodate.core.engine.check_engine import CheckEngine
from build_uptodate.core.engine.checks import BuildCheck
from build_uptodate.core.engine.evaluation import DesignTimeEvaluator
from build_uptodate.core.engine.orchestrator import GraphOrchestrator, GraphReport
from build_uptodate.core.errors import UpToDateCheckError
from build_uptodate.core.persistence.results import ResultsReporter

logger = logging.getLogger(__name__)


@dataclass
class CheckRunResult:
    """Result of one checker run."""

    report: GraphReport | None = None
    report_path: Path | None = None
    error: str | None = None

    @property
    def up_to_date(self) -> bool:
        return self.error is None and self.report is not None and self.report.up_to_date

    def to_dict(self) -> dict:
        result: dict = {
            "up_to_date": self.up_to_date,
            "report_path": str(self.report_path) if self.report_path else None,
        }
        if self.error:
            result["error"] = self.error
        if self.report:
            result["graph"] = self.report.to_dict()
        return result


def run_check(
    settings: CheckerSettings,
    model: ProjectModel | None = None,
    predictor: PredictionProvider | None = None,
    checks: list[BuildCheck] | None = None,
) -> CheckRunResult:
    """Analyze the graph under ``settings.root``.

    Args:
        settings: What to check and how.
        model: Project model (default: unit manifests).
        predictor: Prediction provider (default: unit manifests).
        checks: Override of the check list (default: all five, in order).

    Returns:
        CheckRunResult; ``error`` is set when staleness could not be
        determined.
    """
    result = CheckRunResult()
    _log_header(settings)
    if settings.verbose:
        _dump_environment()

    model = model or ManifestProjectModel()
    predictor = predictor or ManifestPredictor()

    reporter: ResultsReporter | None = None
    try:
        reporter = ResultsReporter(settings.report_path)
        result.report_path = reporter.path

        evaluator = DesignTimeEvaluator(
            model,
            build_global_properties(settings),
            retries=settings.retries,
            always_log_build_log=settings.show_build_logs,
        )
        analyzer = BuildUnitAnalyzer(evaluator, predictor, CheckEngine(checks))
        orchestrator = GraphOrchestrator(
            model, analyzer, reporter, fail_fast=settings.fail_fast
        )

        report = orchestrator.analyze_graph(str(settings.root))
        result.report = report
        result.error = report.error

    except (UpToDateCheckError, OSError) as e:
        logger.error("%s", e)
        result.error = str(e)

    finally:
        if reporter is not None:
            reporter.tear_down()

    return result


def _log_header(settings: CheckerSettings) -> None:
    logger.info("Build Up To Date Checker")
    logger.info("")
    logger.info("Arguments:")
    logger.info("    Root project to analyze: %s", settings.root)
    logger.info("    Report output file: %s", settings.report_path)
    logger.info("    Build tool specified: %s", settings.build_tool or "[None]")
    logger.info(
        "    Additional global properties: %s",
        ", ".join(settings.properties) if settings.properties else "[None]",
    )
    logger.info("    Verbose output: %s", settings.verbose)
    logger.info("    Fail on first up-to-date check failure: %s", settings.fail_fast)
    logger.info("")


def _dump_environment() -> None:
    logger.debug("Starting Environment Variable Values:")
    for key, value in sorted(os.environ.items()):
        logger.debug("    %s: %s", key, value)
    logger.debug("")
