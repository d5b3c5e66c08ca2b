"""
In-memory project model — test double for the project-model adapters.

Holds pre-evaluated units and a dependency map; can be told to fail
evaluation of a unit a number of times to exercise retries.
"""

from __future__ import annotations

from collections.abc import Mapping
from graphlib import CycleError, TopologicalSorter

from build_uptodate.adapters.base import BuildLog, PredictionProvider, ProjectModel
from build_uptodate.core.errors import EvaluationError, GraphError, UnitNotFoundError
from build_uptodate.core.models.item import EvaluatedUnit, PredictionSet


class InMemoryProjectModel(ProjectModel):
    """Project model serving units from memory."""

    def __init__(self) -> None:
        self._units: dict[str, EvaluatedUnit] = {}
        self._references: dict[str, list[str]] = {}
        self._failures: dict[str, int] = {}
        self._call_log: list[str] = []
        self._last_properties: dict[str, str] = {}

    @property
    def name(self) -> str:
        return "memory"

    @property
    def call_log(self) -> list[str]:
        """Every unit identity evaluate() has been called with."""
        return self._call_log

    @property
    def last_properties(self) -> dict[str, str]:
        return self._last_properties

    def add_unit(self, unit: EvaluatedUnit, references: list[str] | None = None) -> None:
        self._units[unit.full_path] = unit
        self._references[unit.full_path] = list(references or [])

    def set_failures(self, unit: str, times: int) -> None:
        """Make the next ``times`` evaluations of ``unit`` fail."""
        self._failures[unit] = times

    def topological_units(self, root: str) -> list[str]:
        if root not in self._units:
            raise UnitNotFoundError(root)

        graph: dict[str, list[str]] = {}
        pending = [root]
        while pending:
            unit = pending.pop()
            if unit in graph:
                continue
            graph[unit] = self._references.get(unit, [])
            pending.extend(graph[unit])

        try:
            return list(TopologicalSorter(graph).static_order())
        except CycleError as e:
            raise GraphError(f"Reference cycle between units: {e.args[1]}") from e

    def evaluate(
        self,
        unit: str,
        global_properties: Mapping[str, str],
        log: BuildLog,
    ) -> EvaluatedUnit:
        self._call_log.append(unit)
        self._last_properties = dict(global_properties)

        if unit not in self._units:
            raise UnitNotFoundError(unit)

        remaining = self._failures.get(unit, 0)
        if remaining > 0:
            self._failures[unit] = remaining - 1
            log.message(f"[mock] evaluating {unit}")
            raise EvaluationError(f"[mock] evaluation of '{unit}' failed")

        log.message(f"[mock] evaluated {unit}")
        return self._units[unit]


class StaticPredictor(PredictionProvider):
    """Returns fixed predictions per unit (empty when unknown)."""

    def __init__(self, predictions: Mapping[str, PredictionSet] | None = None):
        self._predictions = dict(predictions or {})

    def set_prediction(self, unit: str, prediction: PredictionSet) -> None:
        self._predictions[unit] = prediction

    def predict(self, unit: EvaluatedUnit) -> PredictionSet:
        return self._predictions.get(unit.full_path, PredictionSet())
