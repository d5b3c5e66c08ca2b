"""
Manifest loader — reads a unit manifest (``*.unit.yml``) into a model.

A manifest is the shipped stand-in for a build script: properties,
items, references to other units and predicted inputs/outputs. It is
read with PyYAML and validated with Pydantic; anything unreadable or
malformed raises ``ConfigError``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from build_uptodate.core.errors import UnitNotFoundError, UpToDateCheckError

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".unit.yml"


class ConfigError(UpToDateCheckError):
    """Raised when a unit manifest is invalid or unreadable."""


def _stringify(value: Any) -> Any:
    """YAML scalars (true, 3) become the strings the build engine would see."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if value is None:
        return ""
    return value


class ManifestItem(BaseModel):
    """An item declaration: ``{type, include, metadata}``."""

    type: str
    include: str
    metadata: dict[str, str] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_as_strings(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _stringify(v) for k, v in value.items()}
        return value


class ManifestPredictions(BaseModel):
    """Predicted inputs/outputs, relative to the manifest's directory."""

    input_files: list[str] = Field(default_factory=list)
    input_directories: list[str] = Field(default_factory=list)
    output_files: list[str] = Field(default_factory=list)


class UnitManifest(BaseModel):
    """One build unit, as declared on disk."""

    properties: dict[str, str] = Field(default_factory=dict)
    items: list[ManifestItem] = Field(default_factory=list)
    references: list[str] = Field(default_factory=list)
    predictions: ManifestPredictions = Field(default_factory=ManifestPredictions)
    traversal: bool = False    # aggregates references; never analyzed itself

    @field_validator("properties", mode="before")
    @classmethod
    def _properties_as_strings(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _stringify(v) for k, v in value.items()}
        return value


def load_manifest(path: Path) -> UnitManifest:
    """Load and validate a unit manifest.

    Raises:
        UnitNotFoundError: If the file does not exist.
        ConfigError: If the file is unreadable or invalid.
    """
    if not path.is_file():
        raise UnitNotFoundError(str(path))

    logger.debug("Loading unit manifest from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return UnitManifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid unit manifest {path}: {e}") from e
