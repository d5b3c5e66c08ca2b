"""
Item and unit models — the evaluated view of one build unit.

Items are ``(type, path, metadata)`` triples owned by the project model.
The core only ever reads them. Item types, metadata names and property
names are matched case-insensitively, the way the build engine does.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# Well-known metadata names
COPY_TO_OUTPUT_DIRECTORY = "CopyToOutputDirectory"
LINK = "Link"
ORIGINAL = "Original"
FULL_PATH = "FullPath"


class Item(BaseModel):
    """One file participating in the build."""

    model_config = ConfigDict(frozen=True)

    item_type: str
    path: str                                   # evaluated include
    metadata: dict[str, str] = Field(default_factory=dict)

    def has_metadata(self, name: str) -> bool:
        key = name.casefold()
        return any(k.casefold() == key for k in self.metadata)

    def get_metadata(self, name: str) -> str:
        """Metadata value by name, or "" when absent."""
        key = name.casefold()
        for k, value in self.metadata.items():
            if k.casefold() == key:
                return value
        return ""

    @property
    def full_path(self) -> str:
        """The ``FullPath`` metadata, falling back to the include itself."""
        return self.get_metadata(FULL_PATH) or self.path


class PredictionSet(BaseModel):
    """Predicted inputs and outputs of a unit. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    input_files: frozenset[str] = frozenset()
    input_directories: frozenset[str] = frozenset()
    output_files: frozenset[str] = frozenset()


class EvaluatedUnit(BaseModel):
    """An evaluated build unit: its properties and items.

    This is what the build executor hands to the analyzer.
    """

    full_path: str
    properties: dict[str, str] = Field(default_factory=dict)
    items: list[Item] = Field(default_factory=list)

    @property
    def directory(self) -> str:
        return str(Path(self.full_path).parent)

    def get_property(self, name: str) -> str:
        """Property value by name, or "" when undefined."""
        key = name.casefold()
        for k, value in self.properties.items():
            if k.casefold() == key:
                return value
        return ""

    def get_items(self, item_type: str) -> list[Item]:
        key = item_type.casefold()
        return [i for i in self.items if i.item_type.casefold() == key]
