"""
Shared test fixtures and configuration.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from build_uptodate.core.engine.context import CheckContext, PathSet
from build_uptodate.core.models.item import EvaluatedUnit, Item


@pytest.fixture
def unit_dir(tmp_path: Path) -> Path:
    """Directory of a test unit."""
    d = tmp_path / "app"
    d.mkdir()
    return d


@pytest.fixture
def make_context(unit_dir: Path) -> Callable[..., CheckContext]:
    """Build a CheckContext for a unit living in ``unit_dir`` (OutDir=bin/)."""

    def _make(
        items: list[Item] | None = None,
        inputs: list[str] | None = None,
        outputs: list[str] | None = None,
        properties: dict[str, str] | None = None,
    ) -> CheckContext:
        unit = EvaluatedUnit(
            full_path=str(unit_dir / "app.unit.yml"),
            properties={"OutDir": "bin/", **(properties or {})},
            items=items or [],
        )
        return CheckContext(
            unit=unit,
            inputs=PathSet(inputs or []),
            outputs=PathSet(outputs or []),
        )

    return _make
