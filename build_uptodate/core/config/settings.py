"""
Run settings — what one invocation of the checker was asked to do.

Also owns the two bits of argument interpretation that are not pure
CLI plumbing: ``--prop name=value`` merging and locating the build tool.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from build_uptodate.core.engine.evaluation import DEFAULT_RETRIES
from build_uptodate.core.persistence.results import DEFAULT_REPORT_FILE

logger = logging.getLogger(__name__)

# What a plain build-tool invocation would use.
DEFAULT_GLOBAL_PROPERTIES: dict[str, str] = {
    "Configuration": "Debug",
    "Platform": "AnyCPU",
}

TOOLS_PATH_PROPERTY = "MSBuildToolsPath"
TOOLS_PATH_ENV = "MSBuildToolsPath"


class CheckerSettings(BaseModel):
    """Settings for one checker run."""

    root: Path
    report_path: Path = Path(".") / DEFAULT_REPORT_FILE
    properties: list[str] = Field(default_factory=list)   # raw name=value pairs
    build_tool: Path | None = None
    verbose: bool = False
    fail_fast: bool = False
    show_build_logs: bool = False
    retries: int = DEFAULT_RETRIES


def parse_properties(
    pairs: Iterable[str] | None,
    defaults: Mapping[str, str] = DEFAULT_GLOBAL_PROPERTIES,
) -> dict[str, str]:
    """Merge ``name=value`` pairs over ``defaults``.

    Names are case-insensitive: a later spelling replaces an earlier one.
    Entries without both a name and a value are ignored.
    """
    merged: dict[str, str] = dict(defaults)

    for pair in pairs or ():
        name, sep, value = pair.partition("=")
        name, value = name.strip(), value.strip()
        if not sep or not name or not value:
            logger.warning("Ignoring malformed property '%s' (expected name=value)", pair)
            continue

        for existing in [k for k in merged if k.casefold() == name.casefold()]:
            del merged[existing]
        merged[name] = value

    return merged


def resolve_tools_path(
    build_tool: Path | None,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """Directory of the build tool, or None if it cannot be found.

    Precedence: the explicit tool file, then the MSBuildToolsPath
    environment variable when it names an existing directory.
    """
    if build_tool is not None:
        if build_tool.is_file():
            return str(build_tool.resolve().parent)
        logger.warning(
            "Unable to find build tool at specified location '%s'. "
            "Will attempt to find it automatically.",
            build_tool,
        )

    env = os.environ if environ is None else environ
    candidate = env.get(TOOLS_PATH_ENV, "")
    if candidate and Path(candidate).is_dir():
        return candidate

    return None


def build_global_properties(settings: CheckerSettings) -> dict[str, str]:
    """Global properties handed to evaluation for this run."""
    properties = parse_properties(settings.properties)

    tools_path = resolve_tools_path(settings.build_tool)
    if tools_path:
        properties[TOOLS_PATH_PROPERTY] = tools_path

    if settings.properties:
        logger.info("Using the following global properties:")
        for key, value in properties.items():
            logger.info("    %s=%s", key, value)

    return properties
