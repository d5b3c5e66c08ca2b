"""
Check engine — short-circuit AND over the ordered staleness checks.

The cheapest, most certain failures (explicit "always copy" items) run
first so that the expensive timestamp scans are skipped when possible.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from build_uptodate.core.engine.checks import (
    AlwaysCopyCheck,
    BuildCheck,
    BuiltCopiedItemsCheck,
    CopyMarkerCheck,
    OutputsCheck,
    PreserveNewestCheck,
)
from build_uptodate.core.engine.context import CheckContext
from build_uptodate.core.models.result import CheckResult

logger = logging.getLogger(__name__)


def default_checks() -> list[BuildCheck]:
    """The five checks, in evaluation order."""
    return [
        AlwaysCopyCheck(),
        PreserveNewestCheck(),
        CopyMarkerCheck(),
        OutputsCheck(),
        BuiltCopiedItemsCheck(),
    ]


def run_checks(context: CheckContext, checks: Sequence[BuildCheck]) -> CheckResult:
    """Run ``checks`` left to right, stopping at the first failure.

    Returns:
        The first failing result, or a passing result if every check
        passed (including when there are no checks at all).
    """
    for check in checks:
        result = check.check(context)
        if not result.passed:
            logger.debug("Check '%s' failed; skipping remaining checks", check.name)
            return result
    return CheckResult.ok()


class CheckEngine:
    """Owns the ordered check list for a run."""

    def __init__(self, checks: Sequence[BuildCheck] | None = None):
        self._checks = list(default_checks() if checks is None else checks)

    @property
    def checks(self) -> list[BuildCheck]:
        return list(self._checks)

    def run(self, context: CheckContext) -> CheckResult:
        return run_checks(context, self._checks)
