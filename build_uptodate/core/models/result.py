"""
Result models — the verdict contract.

``CheckResult`` is what every staleness check returns; a stale unit is
a normal result, never an exception. ``UnitAnalysisResult`` is the
immutable record the orchestrator appends to the result log.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, model_validator


class CheckResult(BaseModel):
    """Pass/fail verdict of one check (or of a whole check run).

    The message is empty if and only if the check passed.
    """

    model_config = ConfigDict(frozen=True)

    passed: bool
    message: str = ""

    @model_validator(mode="after")
    def _message_matches_verdict(self) -> CheckResult:
        if self.passed and self.message:
            raise ValueError("a passing result must not carry a message")
        if not self.passed and not self.message:
            raise ValueError("a failing result must carry a message")
        return self

    @classmethod
    def ok(cls) -> CheckResult:
        return cls(passed=True)

    @classmethod
    def fail(cls, message: str) -> CheckResult:
        return cls(passed=False, message=message)


class UnitAnalysisResult(BaseModel):
    """Outcome of analyzing one unit, as appended to the result log.

    ``error`` is set instead of a verdict when the unit could not be
    analyzed at all; ``up_to_date`` is then False.
    """

    model_config = ConfigDict(frozen=True)

    unit_path: str
    up_to_date: bool
    failure_message: str = ""
    scan_start: datetime
    scan_duration: timedelta = timedelta(0)
    error: str | None = None

    @property
    def scan_end(self) -> datetime:
        return self.scan_start + self.scan_duration

    def to_report_dict(self) -> dict:
        """Persisted form used by the JSON report."""
        data: dict = {
            "Path": self.unit_path,
            "UpToDate": self.up_to_date,
            "AnalysisStartTime": self.scan_start.isoformat(),
            "AnalysisEndTime": self.scan_end.isoformat(),
            "FailureMessage": self.failure_message,
        }
        if self.error is not None:
            data["Error"] = self.error
        return data
