"""
Domain models — Pydantic types for the up-to-date checker.

All models are re-exported here for convenient access:

    from build_uptodate.core.models import Item, PredictionSet, CheckResult
"""

from build_uptodate.core.models.item import EvaluatedUnit, Item, PredictionSet
from build_uptodate.core.models.result import CheckResult, UnitAnalysisResult

__all__ = [
    "CheckResult",
    "EvaluatedUnit",
    "Item",
    "PredictionSet",
    "UnitAnalysisResult",
]
