"""
Tests for the graph orchestrator: ordering, fail-fast and fatal errors.
"""

import pytest

from build_uptodate.adapters.mock import InMemoryProjectModel
from build_uptodate.core.engine.orchestrator import GraphOrchestrator, GraphReport
from build_uptodate.core.errors import EvaluationError, GraphError, UnitNotFoundError
from build_uptodate.core.models.item import EvaluatedUnit
from build_uptodate.core.models.result import CheckResult
from build_uptodate.core.persistence.results import ResultLog


class ScriptedAnalyzer:
    """Unit analyzer returning pre-set verdicts (default: up to date)."""

    def __init__(self, verdicts: dict | None = None):
        self._verdicts = verdicts or {}
        self.calls: list[str] = []

    def analyze(self, unit: str) -> CheckResult:
        self.calls.append(unit)
        verdict = self._verdicts.get(unit, CheckResult.ok())
        if isinstance(verdict, Exception):
            raise verdict
        return verdict


def _model(graph: dict[str, list[str]]) -> InMemoryProjectModel:
    model = InMemoryProjectModel()
    for unit, references in graph.items():
        model.add_unit(EvaluatedUnit(full_path=unit), references)
    return model


def _orchestrator(analyzer, fail_fast=False, model=None):
    log = ResultLog()
    return GraphOrchestrator(model or InMemoryProjectModel(), analyzer, log, fail_fast), log


class TestConstruction:
    def test_requires_collaborators(self):
        model, log = InMemoryProjectModel(), ResultLog()
        with pytest.raises(ValueError):
            GraphOrchestrator(None, ScriptedAnalyzer(), log)
        with pytest.raises(ValueError):
            GraphOrchestrator(model, None, log)
        with pytest.raises(ValueError):
            GraphOrchestrator(model, ScriptedAnalyzer(), None)


class TestAnalyzeUnits:
    def test_all_up_to_date(self):
        orchestrator, log = _orchestrator(ScriptedAnalyzer())
        report = orchestrator.analyze_units(["a", "b", "c"])

        assert report.up_to_date
        assert report.status == "up-to-date"
        assert [r.unit_path for r in log.results] == ["a", "b", "c"]
        assert all(r.up_to_date and r.failure_message == "" for r in log.results)

    def test_empty_graph_is_up_to_date(self):
        orchestrator, log = _orchestrator(ScriptedAnalyzer())
        report = orchestrator.analyze_units([])
        assert report.up_to_date
        assert log.results == []

    @pytest.mark.parametrize("stale_index", [0, 1, 2])
    def test_fail_fast_stops_at_first_stale_unit(self, stale_index):
        units = ["a", "b", "c"]
        analyzer = ScriptedAnalyzer({units[stale_index]: CheckResult.fail("stale")})
        orchestrator, log = _orchestrator(analyzer, fail_fast=True)

        report = orchestrator.analyze_units(units)

        assert not report.up_to_date
        assert report.halted
        assert analyzer.calls == units[: stale_index + 1]
        assert len(log.results) == stale_index + 1
        assert log.results[-1].failure_message == "stale"

    def test_without_fail_fast_every_unit_is_analyzed(self):
        analyzer = ScriptedAnalyzer({"a": CheckResult.fail("stale")})
        orchestrator, log = _orchestrator(analyzer)

        report = orchestrator.analyze_units(["a", "b", "c"])

        assert not report.up_to_date
        assert not report.halted
        assert report.stale == 1
        assert report.status == "stale"
        assert [r.up_to_date for r in log.results] == [False, True, True]

    def test_fatal_error_is_recorded_and_halts(self):
        analyzer = ScriptedAnalyzer({"b": EvaluationError("cannot evaluate b")})
        orchestrator, log = _orchestrator(analyzer)

        report = orchestrator.analyze_units(["a", "b", "c"])

        assert analyzer.calls == ["a", "b"]
        assert report.halted
        assert report.status == "error"
        assert "cannot evaluate b" in report.error
        assert report.stale == 0
        failed = log.results[-1]
        assert failed.unit_path == "b"
        assert failed.error == "cannot evaluate b"
        assert not failed.up_to_date

    def test_os_errors_are_fatal(self):
        analyzer = ScriptedAnalyzer({"a": PermissionError("denied")})
        orchestrator, _ = _orchestrator(analyzer)
        assert orchestrator.analyze_units(["a"]).error == "a: denied"

    def test_scan_times(self):
        orchestrator, log = _orchestrator(ScriptedAnalyzer())
        orchestrator.analyze_units(["a"])
        result = log.results[0]
        assert result.scan_start.tzinfo is not None
        assert result.scan_end >= result.scan_start


class TestAnalyzeGraph:
    def test_dependencies_come_first(self):
        model = _model({
            "app": ["lib", "util"],
            "lib": ["core"],
            "util": ["core"],
            "core": [],
        })
        analyzer = ScriptedAnalyzer()
        orchestrator, _ = _orchestrator(analyzer, model=model)

        report = orchestrator.analyze_graph("app")

        assert report.units_total == 4
        order = analyzer.calls
        assert order[0] == "core"
        assert order[-1] == "app"
        assert order.index("lib") > order.index("core")

    def test_missing_root_raises(self):
        orchestrator, log = _orchestrator(ScriptedAnalyzer(), model=_model({"a": []}))
        with pytest.raises(UnitNotFoundError):
            orchestrator.analyze_graph("missing")
        assert log.results == []

    def test_cycle_raises(self):
        model = _model({"a": ["b"], "b": ["a"]})
        orchestrator, _ = _orchestrator(ScriptedAnalyzer(), model=model)
        with pytest.raises(GraphError):
            orchestrator.analyze_graph("a")


class TestGraphReport:
    def test_to_dict(self):
        data = GraphReport(units_total=2).to_dict()
        assert data["status"] == "up-to-date"
        assert data["analyzed"] == 0
        assert data["results"] == []
