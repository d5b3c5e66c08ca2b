"""
Manifest adapter — unit graph, evaluation and predictions from YAML.

Each unit is a ``*.unit.yml`` manifest (see ``core/config/loader.py``).
Evaluation expands ``$(Name)`` property references, resolves every item
to a ``FullPath`` and performs the design-time collection of built
outputs. Prediction reads the manifest's ``predictions`` section plus
the compile-style items.
"""

from __future__ import annotations

import logging
import os
import re
from collections import deque
from collections.abc import Mapping
from graphlib import CycleError, TopologicalSorter
from pathlib import Path

from build_uptodate.adapters.base import BuildLog, PredictionProvider, ProjectModel
from build_uptodate.core.config.loader import UnitManifest, load_manifest
from build_uptodate.core.errors import EvaluationError, GraphError, UnitNotFoundError
from build_uptodate.core.models.item import FULL_PATH, EvaluatedUnit, Item, PredictionSet

logger = logging.getLogger(__name__)

_PROPERTY_REF = re.compile(r"\$\(\s*([A-Za-z_][A-Za-z0-9_.\-]*)\s*\)")

DEFAULT_OUT_DIR = "bin/$(Configuration)/"

# Items whose outputs are collected as UpToDateCheckBuilt at design time.
BUILT_OUTPUT_ITEMS = (
    "IntermediateAssembly",
    "_DebugSymbolsIntermediatePath",
    "_DebugSymbolsOutputPath",
)

# Item types the predictor treats as inputs. None/Content are left to
# the copy checks.
PREDICTED_INPUT_ITEMS = ("Compile", "EmbeddedResource", "AdditionalFiles")


def _lookup(properties: Mapping[str, str], name: str) -> str | None:
    key = name.casefold()
    for k, value in properties.items():
        if k.casefold() == key:
            return value
    return None


def expand_properties(text: str, properties: Mapping[str, str], log: BuildLog | None = None) -> str:
    """Replace ``$(Name)`` references; undefined names expand to ""."""

    def _replace(match: re.Match[str]) -> str:
        value = _lookup(properties, match.group(1))
        if value is None:
            if log is not None:
                log.message(f"Property '{match.group(1)}' is not defined; expanding to ''.")
            return ""
        return value

    return _PROPERTY_REF.sub(_replace, text)


def _full_path(base_dir: str, path: str) -> str:
    return os.path.normpath(os.path.join(base_dir, path))


def unit_name(path: Path) -> str:
    """Unit name: the file name without ``.unit.yml`` (or its last suffix)."""
    name = path.name
    if name.casefold().endswith(".unit.yml"):
        return name[: -len(".unit.yml")]
    return path.stem


class ManifestProjectModel(ProjectModel):
    """Project model backed by ``*.unit.yml`` manifests."""

    @property
    def name(self) -> str:
        return "manifest"

    def topological_units(self, root: str) -> list[str]:
        root_path = os.path.normpath(os.path.abspath(root))
        if not os.path.isfile(root_path):
            raise UnitNotFoundError(root_path)

        graph: dict[str, list[str]] = {}
        traversal: set[str] = set()
        pending = deque([root_path])

        while pending:
            unit = pending.popleft()
            if unit in graph:
                continue

            manifest = load_manifest(Path(unit))
            if manifest.traversal:
                traversal.add(unit)

            references = []
            for ref in manifest.references:
                ref_path = _full_path(os.path.dirname(unit), ref)
                if not os.path.isfile(ref_path):
                    raise UnitNotFoundError(ref_path)
                references.append(ref_path)
                pending.append(ref_path)
            graph[unit] = references

        try:
            ordered = list(TopologicalSorter(graph).static_order())
        except CycleError as e:
            raise GraphError(f"Reference cycle between units: {e.args[1]}") from e

        return [unit for unit in ordered if unit not in traversal]

    def evaluate(
        self,
        unit: str,
        global_properties: Mapping[str, str],
        log: BuildLog,
    ) -> EvaluatedUnit:
        path = Path(os.path.normpath(os.path.abspath(unit)))
        manifest = load_manifest(path)
        return evaluate_manifest(path, manifest, global_properties, log)


def evaluate_manifest(
    path: Path,
    manifest: UnitManifest,
    global_properties: Mapping[str, str],
    log: BuildLog,
) -> EvaluatedUnit:
    """Evaluate a loaded manifest into an :class:`EvaluatedUnit`."""
    unit_dir = str(path.parent)

    properties: dict[str, str] = {
        "MSBuildProjectDirectory": unit_dir,
        "MSBuildProjectFullPath": str(path),
        "MSBuildProjectFile": path.name,
        "MSBuildProjectName": unit_name(path),
    }
    properties.update(global_properties)

    # Global properties cannot be overridden by the unit.
    for name, value in manifest.properties.items():
        if _lookup(global_properties, name) is not None:
            log.message(f"Property '{name}' is set globally; ignoring the unit's value.")
            continue
        properties[name] = expand_properties(value, properties, log)

    if not _lookup(properties, "OutDir"):
        properties["OutDir"] = expand_properties(DEFAULT_OUT_DIR, properties, log)

    target_path = _lookup(properties, "TargetPath")
    if target_path:
        properties = {
            k: (_full_path(unit_dir, v) if k.casefold() == "targetpath" else v)
            for k, v in properties.items()
        }
    log.message(f"Evaluated {len(properties)} properties.")

    items: list[Item] = []
    for declared in manifest.items:
        include = expand_properties(declared.include, properties, log).strip()
        if not include:
            log.error(f"Item of type '{declared.type}' has an empty include after expansion.")
            raise EvaluationError(
                f"Item of type '{declared.type}' in '{path}' has an empty include.",
                log_text=log.log_text,
            )

        metadata = {k: expand_properties(v, properties, log) for k, v in declared.metadata.items()}
        metadata[FULL_PATH] = _full_path(unit_dir, include)
        items.append(Item(item_type=declared.type, path=include, metadata=metadata))

    items.extend(_collect_built_outputs(properties, items))
    log.message(f"Evaluated {len(items)} items.")

    return EvaluatedUnit(full_path=str(path), properties=properties, items=items)


def _collect_built_outputs(properties: Mapping[str, str], items: list[Item]) -> list[Item]:
    """UpToDateCheckBuilt items for the unit's primary binaries."""
    built: list[Item] = []

    target_path = _lookup(properties, "TargetPath")
    if target_path:
        built.append(Item(
            item_type="UpToDateCheckBuilt",
            path=target_path,
            metadata={FULL_PATH: target_path},
        ))

    wanted = {t.casefold() for t in BUILT_OUTPUT_ITEMS}
    for item in items:
        if item.item_type.casefold() in wanted:
            built.append(Item(
                item_type="UpToDateCheckBuilt",
                path=item.path,
                metadata={FULL_PATH: item.full_path},
            ))
    return built


class ManifestPredictor(PredictionProvider):
    """Predicts inputs/outputs from a unit's manifest."""

    def predict(self, unit: EvaluatedUnit) -> PredictionSet:
        path = Path(unit.full_path)
        manifest = load_manifest(path)
        unit_dir = unit.directory

        def resolve(paths: list[str]) -> set[str]:
            resolved = set()
            for raw in paths:
                expanded = expand_properties(raw, unit.properties).strip()
                if expanded:
                    resolved.add(_full_path(unit_dir, expanded))
            return resolved

        input_files = {str(path)}
        for item_type in PREDICTED_INPUT_ITEMS:
            input_files.update(i.full_path for i in unit.get_items(item_type))
        input_files.update(resolve(manifest.predictions.input_files))

        return PredictionSet(
            input_files=frozenset(input_files),
            input_directories=frozenset(resolve(manifest.predictions.input_directories)),
            output_files=frozenset(resolve(manifest.predictions.output_files)),
        )
