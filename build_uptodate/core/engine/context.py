"""
Check context — everything a staleness check may look at.

One context is built per unit analysis and discarded afterwards. Its
only mutable part is the timestamp cache, which checks fill as they
stat files.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from build_uptodate.core.engine.timestamps import TimestampCache
from build_uptodate.core.models.item import EvaluatedUnit, PredictionSet


class PathSet:
    """Insertion-ordered set of paths compared case-insensitively.

    The first spelling added for a path is the one that is kept.
    """

    def __init__(self, paths: Iterable[str] = ()) -> None:
        self._paths: dict[str, str] = {}
        for path in paths:
            self.add(path)

    def add(self, path: str) -> None:
        self._paths.setdefault(path.casefold(), path)

    def discard(self, path: str) -> None:
        self._paths.pop(path.casefold(), None)

    def remove_where(self, predicate: Callable[[str], bool]) -> int:
        """Drop every path matching ``predicate``; returns how many were dropped."""
        doomed = [key for key, path in self._paths.items() if predicate(path)]
        for key in doomed:
            del self._paths[key]
        return len(doomed)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and path.casefold() in self._paths

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._paths.values()))

    def __len__(self) -> int:
        return len(self._paths)

    def __repr__(self) -> str:
        return f"PathSet({list(self._paths.values())!r})"


@dataclass(frozen=True)
class CheckContext:
    """Per-unit bundle handed to every check."""

    unit: EvaluatedUnit
    predictions: PredictionSet = field(default_factory=PredictionSet)
    inputs: PathSet = field(default_factory=PathSet)
    outputs: PathSet = field(default_factory=PathSet)
    timestamps: TimestampCache = field(default_factory=TimestampCache)
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("build_uptodate.checks")
    )
