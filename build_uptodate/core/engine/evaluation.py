"""
Design-time evaluator — the build executor with bounded retries.

Evaluating a unit can fail for transient reasons (a file briefly held
by another process). The evaluator retries a bounded number of times,
with an optional exponential delay, and only then escalates to a fatal
``EvaluationError`` carrying the last attempt's log.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

from build_uptodate.adapters.base import BuildLog, ProjectModel
from build_uptodate.core.errors import EvaluationError, UnitNotFoundError
from build_uptodate.core.models.item import EvaluatedUnit

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 3
MAX_RETRY_DELAY = 60.0

# Always set for design-time evaluation; they override user properties.
DESIGN_TIME_PROPERTIES: dict[str, str] = {
    "DesignTimeBuild": "true",
    "SkipCompilerExecution": "true",
    "BuildingInsideVisualStudio": "true",
}


class DesignTimeEvaluator:
    """Produces evaluated units through a :class:`ProjectModel`."""

    def __init__(
        self,
        model: ProjectModel,
        global_properties: Mapping[str, str] | None = None,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = 0.0,
        always_log_build_log: bool = False,
    ):
        if model is None:
            raise ValueError("model is required")
        if retries < 1:
            raise ValueError(f"retries must be at least 1, got {retries}")

        self._model = model
        self._properties: dict[str, str] = dict(global_properties or {})
        self._properties.update(DESIGN_TIME_PROPERTIES)
        self._retries = retries
        self._retry_delay = retry_delay
        self._always_log_build_log = always_log_build_log

    @property
    def global_properties(self) -> dict[str, str]:
        return dict(self._properties)

    def execute(self, unit: str) -> EvaluatedUnit:
        """Evaluate ``unit``, retrying transient failures.

        Raises:
            EvaluationError: After every attempt has failed.
            UpToDateCheckError: Non-retryable failures, unchanged.
        """
        logger.debug("Beginning design-time evaluation of unit %s.", unit)
        logger.debug("Setting the following global properties:")
        for key, value in self._properties.items():
            logger.debug("    %s=%s", key, value)

        log = BuildLog()
        last_error: Exception | None = None

        for attempt in range(1, self._retries + 1):
            log = BuildLog()
            logger.debug("Attempting design-time evaluation # %d...", attempt)
            try:
                evaluated = self._model.evaluate(unit, self._properties, log)
            except UnitNotFoundError:
                raise
            except (EvaluationError, OSError) as e:
                last_error = e
                log.error(str(e))
                logger.debug("Evaluation attempt %d/%d failed: %s", attempt, self._retries, e)
                if attempt < self._retries and self._retry_delay > 0:
                    time.sleep(min(self._retry_delay * (2 ** (attempt - 1)), MAX_RETRY_DELAY))
                continue

            if self._always_log_build_log:
                _dump_build_log(log)
            return evaluated

        _dump_build_log(log)
        raise EvaluationError(
            f"Failed to evaluate unit '{unit}'.\n{log.error_text}",
            log_text=log.log_text,
        ) from last_error


def _dump_build_log(log: BuildLog) -> None:
    logger.debug("Design time build log:")
    logger.debug(log.log_text)
    logger.debug("")
