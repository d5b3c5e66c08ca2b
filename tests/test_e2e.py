"""
End-to-end tests — manifests on disk through the check use case.

Every file gets an explicit mtime so verdicts never depend on how fast
the test writes.
"""

from __future__ import annotations

import json
import logging
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from build_uptodate.core.config.settings import CheckerSettings
from build_uptodate.core.engine.checks import AlwaysCopyCheck, OutputsCheck
from build_uptodate.core.use_cases.check import run_check
from build_uptodate.main import cli
from tests.helpers import T0, write_file


def _settings(root: str | Path, tmp_path: Path, **kwargs) -> CheckerSettings:
    return CheckerSettings(root=Path(root), report_path=tmp_path / "results.json", **kwargs)


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# ── Single-unit scenarios ────────────────────────────────────────────


class TestScenarios:
    def test_always_copy_item_is_never_up_to_date(self, tmp_path: Path):
        manifest = write_file(tmp_path / "app" / "app.unit.yml", mtime=T0, content=textwrap.dedent("""\
            items:
              - type: Content
                include: MyContent.js
                metadata:
                  CopyToOutputDirectory: Always
        """))

        result = run_check(_settings(manifest, tmp_path), checks=[AlwaysCopyCheck()])

        assert not result.up_to_date
        assert result.error is None
        [unit] = result.report.results
        assert str(tmp_path / "app" / "MyContent.js") in unit.failure_message

    def test_no_outputs_is_up_to_date(self, tmp_path: Path):
        manifest = write_file(tmp_path / "app" / "app.unit.yml", mtime=T0, content=textwrap.dedent("""\
            items:
              - type: Compile
                include: missing.cs
        """))

        result = run_check(_settings(manifest, tmp_path), checks=[OutputsCheck()])

        assert result.up_to_date
        assert result.report.results[0].failure_message == ""

    def test_preserve_newest_source_newer_than_copy(self, tmp_path: Path):
        unit_dir = tmp_path / "app"
        manifest = write_file(unit_dir / "app.unit.yml", mtime=T0, content=textwrap.dedent("""\
            properties:
              OutDir: bin/
            items:
              - type: Content
                include: MyContent.js
                metadata:
                  CopyToOutputDirectory: PreserveNewest
        """))
        write_file(unit_dir / "bin" / "MyContent.js", mtime=T0)
        write_file(unit_dir / "MyContent.js", mtime=T0 + 10)

        result = run_check(_settings(manifest, tmp_path))

        assert not result.up_to_date
        assert "newer than destination" in result.report.results[0].failure_message

    def test_preserve_newest_copy_current(self, tmp_path: Path):
        unit_dir = tmp_path / "app"
        manifest = write_file(unit_dir / "app.unit.yml", mtime=T0, content=textwrap.dedent("""\
            properties:
              OutDir: bin/
            items:
              - type: Content
                include: MyContent.js
                metadata:
                  CopyToOutputDirectory: PreserveNewest
        """))
        write_file(unit_dir / "MyContent.js", mtime=T0)
        write_file(unit_dir / "bin" / "MyContent.js", mtime=T0 + 10)

        assert run_check(_settings(manifest, tmp_path)).up_to_date

    def test_invalid_manifest_is_an_error(self, tmp_path: Path):
        manifest = write_file(tmp_path / "app.unit.yml", content="items: [unclosed")

        result = run_check(_settings(manifest, tmp_path))

        assert not result.up_to_date
        assert "Invalid YAML" in result.error
        assert json.loads((tmp_path / "results.json").read_text()) == []


# ── Multi-unit graph ─────────────────────────────────────────────────


@pytest.fixture
def solution(tmp_path: Path) -> Path:
    """Two units (app → lib) behind a traversal root, fully built."""
    write_file(tmp_path / "all.unit.yml", mtime=T0, content=textwrap.dedent("""\
        traversal: true
        references: [app/app.unit.yml]
    """))
    write_file(tmp_path / "lib" / "lib.unit.yml", mtime=T0, content=textwrap.dedent("""\
        properties:
          TargetPath: bin/$(Configuration)/lib.dll
        items:
          - type: Compile
            include: Lib.cs
    """))
    write_file(tmp_path / "app" / "app.unit.yml", mtime=T0, content=textwrap.dedent("""\
        properties:
          TargetPath: bin/$(Configuration)/app.dll
        items:
          - type: Compile
            include: Program.cs
          - type: ReferencePathWithRefAssemblies
            include: ../lib/bin/Debug/lib.dll
          - type: CopyUpToDateMarker
            include: obj/app.CopyComplete
        references: [../lib/lib.unit.yml]
    """))
    write_file(tmp_path / "lib" / "Lib.cs", mtime=T0)
    write_file(tmp_path / "lib" / "bin" / "Debug" / "lib.dll", mtime=T0 + 10)
    write_file(tmp_path / "app" / "Program.cs", mtime=T0)
    write_file(tmp_path / "app" / "obj" / "app.CopyComplete", mtime=T0 + 20)
    write_file(tmp_path / "app" / "bin" / "Debug" / "app.dll", mtime=T0 + 20)
    return tmp_path


class TestGraph:
    def test_built_solution_is_up_to_date(self, solution: Path):
        result = run_check(_settings(solution / "all.unit.yml", solution))

        assert result.up_to_date, result.to_dict()
        assert [Path(r.unit_path).name for r in result.report.results] == [
            "lib.unit.yml",
            "app.unit.yml",
        ]

    def test_rebuilt_dependency_invalidates_dependent(self, solution: Path):
        # lib rebuilt after app copied it
        write_file(solution / "lib" / "bin" / "Debug" / "lib.dll", mtime=T0 + 30)

        result = run_check(_settings(solution / "all.unit.yml", solution))

        lib, app = result.report.results
        assert lib.up_to_date
        assert not app.up_to_date
        assert "output marker" in app.failure_message

    def test_fail_fast_skips_dependents(self, solution: Path):
        write_file(solution / "lib" / "Lib.cs", mtime=T0 + 50)

        result = run_check(_settings(solution / "all.unit.yml", solution, fail_fast=True))

        assert not result.up_to_date
        assert result.report.halted
        assert len(result.report.results) == 1

    def test_cli_writes_report(self, solution: Path):
        write_file(solution / "app" / "Program.cs", mtime=T0 + 50)
        out = solution / "out" / "results.json"

        result = CliRunner().invoke(
            cli,
            [str(solution / "all.unit.yml"), "--out", str(out)],
            env={"UTDC_LOG_LEVEL": "ERROR"},
        )

        assert result.exit_code == 1
        assert "1 of 2 project(s) stale" in result.output
        report = json.loads(out.read_text())
        assert [entry["UpToDate"] for entry in report] == [True, False]
        assert "Program.cs" in report[1]["FailureMessage"]
