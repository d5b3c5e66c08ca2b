"""
Adapter base — the contract between the core and the project model.

The analyzer and orchestrator only talk to collaborators through these
interfaces:

    ProjectModel        unit graph + evaluation of one unit
    PredictionProvider  predicted inputs/outputs of an evaluated unit

Evaluation may fail transiently; the build executor retries it. Every
other error an adapter raises is fatal for the unit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

from build_uptodate.core.models.item import EvaluatedUnit, PredictionSet


class BuildLog:
    """Informational log text collected during one evaluation attempt."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._errors: list[str] = []

    def message(self, text: str) -> None:
        self._lines.append(text)

    def error(self, text: str) -> None:
        self._lines.append(f"error: {text}")
        self._errors.append(text)

    @property
    def log_text(self) -> str:
        return "\n".join(self._lines)

    @property
    def error_text(self) -> str:
        return "\n".join(self._errors)


class ProjectModel(ABC):
    """Source of the unit graph and of evaluated units."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'manifest', 'memory')."""

    @abstractmethod
    def topological_units(self, root: str) -> list[str]:
        """Unit identities reachable from ``root``, producers first.

        Raises:
            UnitNotFoundError: If ``root`` does not exist.
            GraphError: If the graph cannot be ordered.
        """

    @abstractmethod
    def evaluate(
        self,
        unit: str,
        global_properties: Mapping[str, str],
        log: BuildLog,
    ) -> EvaluatedUnit:
        """Evaluate one unit.

        Raises:
            EvaluationError: On a (possibly transient) evaluation failure.
            UpToDateCheckError: On any non-retryable failure.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PredictionProvider(ABC):
    """Predicts a unit's inputs and outputs from its evaluated form."""

    @abstractmethod
    def predict(self, unit: EvaluatedUnit) -> PredictionSet:
        """Return the unit's prediction set. May over-predict inputs."""
