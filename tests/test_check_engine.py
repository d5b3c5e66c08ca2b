"""
Tests for the check engine (ordered short-circuit evaluation).
"""

from build_uptodate.core.engine.check_engine import CheckEngine, default_checks, run_checks
from build_uptodate.core.engine.checks import (
    AlwaysCopyCheck,
    BuildCheck,
    BuiltCopiedItemsCheck,
    CopyMarkerCheck,
    OutputsCheck,
    PreserveNewestCheck,
)
from build_uptodate.core.models.result import CheckResult


class CountingCheck(BuildCheck):
    """Check that records its calls and returns a fixed verdict."""

    def __init__(self, label: str, passed: bool = True):
        self._label = label
        self._passed = passed
        self.calls = 0

    @property
    def name(self) -> str:
        return self._label

    def check(self, context) -> CheckResult:
        self.calls += 1
        if self._passed:
            return CheckResult.ok()
        return CheckResult.fail(f"{self._label} failed")


class TestDefaultChecks:
    def test_order(self):
        assert [type(c) for c in default_checks()] == [
            AlwaysCopyCheck,
            PreserveNewestCheck,
            CopyMarkerCheck,
            OutputsCheck,
            BuiltCopiedItemsCheck,
        ]

    def test_names_are_unique(self):
        names = [c.name for c in default_checks()]
        assert len(set(names)) == len(names)


class TestRunChecks:
    def test_no_checks_passes(self, make_context):
        assert run_checks(make_context(), []).passed

    def test_all_pass(self, make_context):
        checks = [CountingCheck("a"), CountingCheck("b")]
        assert run_checks(make_context(), checks).passed
        assert [c.calls for c in checks] == [1, 1]

    def test_first_failure_short_circuits(self, make_context):
        checks = [CountingCheck("a"), CountingCheck("b", passed=False), CountingCheck("c")]

        result = run_checks(make_context(), checks)
        assert not result.passed
        assert result.message == "b failed"
        assert [c.calls for c in checks] == [1, 1, 0]


class TestCheckEngine:
    def test_defaults_to_five_checks(self):
        assert len(CheckEngine().checks) == 5

    def test_custom_checks(self, make_context):
        failing = CountingCheck("only", passed=False)
        engine = CheckEngine([failing])
        assert engine.run(make_context()).message == "only failed"

    def test_empty_check_list_is_kept(self, make_context):
        engine = CheckEngine([])
        assert engine.checks == []
        assert engine.run(make_context()).passed
