"""
Build-unit analyzer — is one unit's output still valid?

For one unit the analyzer:

    1. evaluates it and obtains its predictions (one call each),
    2. builds the effective input set: predicted files, the immediate
       files of predicted directories, and UpToDateCheckInput items,
    3. builds the effective output set: UpToDateCheckOutput items and
       UpToDateCheckBuilt items without an Original (minus the binaries
       a no-targets unit never produces),
    4. drops every input living under the unit's output directory,
    5. runs the check engine over a fresh context.

Fatal errors from collaborators are never caught here.
"""

from __future__ import annotations

import logging
import os

from build_uptodate.adapters.base import PredictionProvider
from build_uptodate.core.engine.check_engine import CheckEngine
from build_uptodate.core.engine.checks import BUILT_ITEM, OUT_DIR_PROPERTY, output_directory
from build_uptodate.core.engine.context import CheckContext, PathSet
from build_uptodate.core.engine.evaluation import DesignTimeEvaluator
from build_uptodate.core.engine.timestamps import TimestampCache
from build_uptodate.core.errors import FilesystemAccessError
from build_uptodate.core.models.item import ORIGINAL, EvaluatedUnit, PredictionSet
from build_uptodate.core.models.result import CheckResult

logger = logging.getLogger(__name__)

CUSTOM_INPUT_ITEM = "UpToDateCheckInput"
CUSTOM_OUTPUT_ITEM = "UpToDateCheckOutput"
NO_TARGETS_PROPERTY = "UsingMicrosoftNoTargetsSdk"
TARGET_PATH_PROPERTY = "TargetPath"

# Never materialize for a no-targets unit.
NO_TARGETS_EXCLUDED_ITEMS = (
    "IntermediateAssembly",
    "_DebugSymbolsIntermediatePath",
    "_DebugSymbolsOutputPath",
)


def enumerate_directory_files(directory: str) -> list[str]:
    """Immediate files of ``directory`` (non-recursive); [] if it does not exist."""
    if not os.path.isdir(directory):
        return []
    try:
        with os.scandir(directory) as entries:
            return sorted(entry.path for entry in entries if entry.is_file())
    except OSError as e:
        raise FilesystemAccessError(directory, e) from e


def is_no_targets_unit(unit: EvaluatedUnit) -> bool:
    return unit.get_property(NO_TARGETS_PROPERTY).strip().casefold() == "true"


def is_under(path: str, directory: str) -> bool:
    """Case-insensitive "path lies inside directory" on a segment boundary."""
    folded = os.path.normpath(path).casefold()
    prefix = os.path.normpath(directory).casefold().rstrip("/\\")
    return folded.startswith(prefix) and folded[len(prefix):len(prefix) + 1] in ("/", "\\")


def collect_inputs(unit: EvaluatedUnit, predictions: PredictionSet) -> PathSet:
    inputs = PathSet(sorted(predictions.input_files))
    for directory in sorted(predictions.input_directories):
        for path in enumerate_directory_files(directory):
            inputs.add(path)

    # Escape hatch for inputs the predictor cannot see.
    for item in unit.get_items(CUSTOM_INPUT_ITEM):
        inputs.add(item.full_path)
    return inputs


def collect_outputs(unit: EvaluatedUnit) -> PathSet:
    outputs = PathSet(item.full_path for item in unit.get_items(CUSTOM_OUTPUT_ITEM))
    for item in unit.get_items(BUILT_ITEM):
        if not item.get_metadata(ORIGINAL):
            outputs.add(item.full_path)

    if not is_no_targets_unit(unit):
        return outputs

    target_path = unit.get_property(TARGET_PATH_PROPERTY)
    if target_path:
        outputs.discard(target_path)
    for item_type in NO_TARGETS_EXCLUDED_ITEMS:
        for item in unit.get_items(item_type):
            if item.full_path:
                outputs.discard(item.full_path)
    return outputs


class BuildUnitAnalyzer:
    """Runs the up-to-date check for one unit at a time."""

    def __init__(
        self,
        evaluator: DesignTimeEvaluator,
        predictor: PredictionProvider,
        engine: CheckEngine | None = None,
    ):
        if evaluator is None:
            raise ValueError("evaluator is required")
        if predictor is None:
            raise ValueError("predictor is required")

        self._evaluator = evaluator
        self._predictor = predictor
        self._engine = engine if engine is not None else CheckEngine()

    def analyze(self, unit: str) -> CheckResult:
        """Evaluate ``unit`` and judge whether it is up to date."""
        logger.info("Checking if project '%s' is up to date.", unit)

        evaluated = self._evaluator.execute(unit)
        predictions = self._predictor.predict(evaluated)
        result = self.check_evaluated(evaluated, predictions)

        logger.info("Build is up to date." if result.passed else "Build is not up to date.")
        return result

    def check_evaluated(self, unit: EvaluatedUnit, predictions: PredictionSet) -> CheckResult:
        """Judge an already evaluated unit against its predictions."""
        inputs = collect_inputs(unit, predictions)
        outputs = collect_outputs(unit)

        # Predictors flag intermediate copies in OutDir as inputs.
        if unit.get_property(OUT_DIR_PROPERTY):
            out_dir = output_directory(unit)
            logger.debug("Removing inputs residing in OutDir (%s)...", out_dir)
            inputs.remove_where(lambda path: is_under(path, out_dir))

        context = CheckContext(
            unit=unit,
            predictions=predictions,
            inputs=inputs,
            outputs=outputs,
            timestamps=TimestampCache(),
        )

        logger.debug("")
        logger.debug("Predicted Inputs:")
        for path in sorted(inputs):
            logger.debug("    %s", path)
        logger.debug("")
        logger.debug("Predicted Outputs:")
        for path in sorted(outputs):
            logger.debug("    %s", path)

        return self._engine.run(context)
