"""
Staleness checks — the incremental-build correctness policy.

Each check inspects a :class:`CheckContext` and returns a
:class:`CheckResult`. Checks never raise for a stale unit, and they
never touch the context except through its timestamp cache. Filesystem
errors other than "not found" propagate as fatal errors.

The engine runs them in this order (see ``default_checks``):

    AlwaysCopyCheck → PreserveNewestCheck → CopyMarkerCheck
        → OutputsCheck → BuiltCopiedItemsCheck
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from build_uptodate.core.engine.context import CheckContext
from build_uptodate.core.engine.timestamps import TimestampCache, resolve_timestamp
from build_uptodate.core.models.item import (
    COPY_TO_OUTPUT_DIRECTORY,
    LINK,
    ORIGINAL,
    EvaluatedUnit,
    Item,
)
from build_uptodate.core.models.result import CheckResult

# Item types whose CopyToOutputDirectory metadata participates in the build.
DEFAULT_ITEM_TYPES: frozenset[str] = frozenset({
    "AdditionalFiles",
    "ApplicationDefinition",
    "Compile",
    "Content",
    "EmbeddedResource",
    "None",
    "Page",
    "Resource",
})

# Item/property names read by the checks
COPY_MARKER_ITEM = "CopyUpToDateMarker"
REFERENCE_ITEM = "ReferencePathWithRefAssemblies"
BUILT_ITEM = "UpToDateCheckBuilt"
OUT_DIR_PROPERTY = "OutDir"

# Known false positive: regenerated on every design-time build.
IGNORED_INPUT_SUFFIX = ".CoreCompileInputs.cache"


class BuildCheck(ABC):
    """Base class for all staleness checks."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Check identifier, used in diagnostics."""

    @abstractmethod
    def check(self, context: CheckContext) -> CheckResult:
        """Judge the unit. Returns a failing result (never raises) if stale."""

    def _fail(self, context: CheckContext, message: str) -> CheckResult:
        context.logger.debug("    %s", message)
        return CheckResult.fail(message)

    def _ok(self, context: CheckContext) -> CheckResult:
        context.logger.debug("    Up to date.")
        return CheckResult.ok()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def _copy_mode_is(item: Item, mode: str) -> bool:
    return (
        item.has_metadata(COPY_TO_OUTPUT_DIRECTORY)
        and item.get_metadata(COPY_TO_OUTPUT_DIRECTORY).strip().casefold() == mode.casefold()
    )


def _participating_items(unit: EvaluatedUnit, item_types: frozenset[str]) -> Iterable[Item]:
    wanted = {t.casefold() for t in item_types}
    return (i for i in unit.items if i.item_type.casefold() in wanted)


def output_directory(unit: EvaluatedUnit) -> str:
    """Absolute output directory of a unit (its directory joined with OutDir)."""
    return os.path.normpath(os.path.join(unit.directory, unit.get_property(OUT_DIR_PROPERTY)))


class AlwaysCopyCheck(BuildCheck):
    """Fails if any participating item has CopyToOutputDirectory=Always.

    Such an item is copied on every build, so the unit is never up to date.
    """

    def __init__(self, item_types: Iterable[str] = DEFAULT_ITEM_TYPES):
        self._item_types = frozenset(item_types)

    @property
    def name(self) -> str:
        return "always-copy"

    def check(self, context: CheckContext) -> CheckResult:
        context.logger.debug("")
        context.logger.debug("AlwaysCopyCheck:")

        for item in _participating_items(context.unit, self._item_types):
            if _copy_mode_is(item, "Always"):
                return self._fail(
                    context,
                    f"Item '{item.full_path}' has CopyToOutputDirectory set to 'Always', "
                    "not up to date.",
                )

        return self._ok(context)


class PreserveNewestCheck(BuildCheck):
    """Checks that CopyToOutputDirectory=PreserveNewest copies are current.

    The destination is ``OutDir/Link`` when the item has a Link, else
    ``OutDir/<source relative to the unit directory>``.
    """

    def __init__(self, item_types: Iterable[str] = DEFAULT_ITEM_TYPES):
        self._item_types = frozenset(item_types)

    @property
    def name(self) -> str:
        return "preserve-newest"

    def check(self, context: CheckContext) -> CheckResult:
        context.logger.debug("")
        context.logger.debug("PreserveNewestCheck:")

        unit = context.unit
        out_dir = output_directory(unit)

        for item in _participating_items(unit, self._item_types):
            if not _copy_mode_is(item, "PreserveNewest"):
                continue

            source = item.full_path
            if not source:
                continue

            context.logger.debug("    Checking PreserveNewest file '%s':", source)

            source_time = resolve_timestamp(source, context.timestamps)
            if source_time is None:
                return self._fail(context, f"Source '{source}' does not exist, not up to date.")
            context.logger.debug("        Source %s: '%s'.", source_time.isoformat(), source)

            link = item.get_metadata(LINK)
            if link:
                destination = os.path.join(out_dir, link)
            else:
                destination = os.path.join(out_dir, _relative_to(source, unit.directory))

            destination_time = resolve_timestamp(destination, context.timestamps)
            if destination_time is None:
                return self._fail(
                    context, f"Destination '{destination}' does not exist, not up to date."
                )
            context.logger.debug(
                "        Destination %s: '%s'.", destination_time.isoformat(), destination
            )

            if destination_time < source_time:
                return self._fail(
                    context,
                    f"PreserveNewest source '{source}' is newer than destination "
                    f"'{destination}', not up to date.",
                )

        return self._ok(context)


def _relative_to(path: str, directory: str) -> str:
    """``path`` relative to ``directory`` (case-insensitive); unchanged if outside it."""
    prefix = directory.rstrip("/\\")
    if not path.casefold().startswith(prefix.casefold()):
        return path
    if path[len(prefix):len(prefix) + 1] not in ("/", "\\"):
        return path
    return path[len(prefix):].strip("/\\")


def _latest(paths: Iterable[str], cache: TimestampCache) -> tuple[datetime | None, str | None]:
    """Newest existing file among ``paths``; missing files are skipped."""
    latest: datetime | None = None
    latest_path: str | None = None
    for path in paths:
        stamp = resolve_timestamp(path, cache)
        if stamp is not None and (latest is None or stamp > latest):
            latest, latest_path = stamp, path
    return latest, latest_path


class CopyMarkerCheck(BuildCheck):
    """Checks the reference copy marker of SDK-style units.

    A missing marker file on disk counts as up to date: nothing has been
    built yet that the references could invalidate.
    """

    @property
    def name(self) -> str:
        return "copy-marker"

    def check(self, context: CheckContext) -> CheckResult:
        context.logger.debug("")
        context.logger.debug("CopyMarkerCheck:")

        markers = context.unit.get_items(COPY_MARKER_ITEM)
        marker_item = markers[0] if markers else None
        if marker_item is None or not marker_item.path.strip():
            context.logger.debug("    Not an SDK project. Marker files aren't used. Up to date.")
            return CheckResult.ok()

        reference_inputs = [i.full_path for i in context.unit.get_items(REFERENCE_ITEM)]
        if not reference_inputs:
            context.logger.debug("    No input markers exist, skipping marker check. Up to date.")
            return CheckResult.ok()

        context.logger.debug("    Adding input reference copy markers:")
        for path in sorted(reference_inputs):
            context.logger.debug("        '%s'", path)

        latest_time, latest_path = _latest(reference_inputs, context.timestamps)
        context.logger.debug(
            "    Latest write timestamp on input marker is %s on '%s'.",
            latest_time.isoformat() if latest_time else "(none)",
            latest_path,
        )

        marker = marker_item.full_path
        marker_time = resolve_timestamp(marker, context.timestamps)
        if marker_time is None:
            context.logger.debug(
                "    Output marker '%s' does not exist, skipping marker check. Up to date.", marker
            )
            return CheckResult.ok()
        context.logger.debug("    Write timestamp on output marker is %s.", marker_time.isoformat())

        if latest_time is not None and marker_time < latest_time:
            return self._fail(
                context,
                f"Input marker ('{latest_path}': {latest_time.isoformat()}) is newer than "
                f"output marker ('{marker}': {marker_time.isoformat()}), not up to date.",
            )

        return self._ok(context)


class OutputsCheck(BuildCheck):
    """Checks that no input is missing or newer than the earliest output."""

    @property
    def name(self) -> str:
        return "outputs"

    def check(self, context: CheckContext) -> CheckResult:
        context.logger.debug("")
        context.logger.debug("OutputsCheck:")

        earliest: datetime | None = None
        earliest_path: str | None = None
        for output in context.outputs:
            stamp = resolve_timestamp(output, context.timestamps)
            if stamp is None:
                return self._fail(context, f"Output '{output}' does not exist, not up to date.")
            if earliest is None or stamp < earliest:
                earliest, earliest_path = stamp, output

        if earliest is None:
            context.logger.debug("    No build outputs defined.")
            return self._ok(context)

        suffix = IGNORED_INPUT_SUFFIX.casefold()
        for input_path in context.inputs:
            if input_path.casefold().endswith(suffix):
                continue

            stamp = resolve_timestamp(input_path, context.timestamps)
            if stamp is None:
                return self._fail(context, f"Input '{input_path}' does not exist, not up to date.")

            if stamp > earliest:
                return self._fail(
                    context,
                    f"Input '{input_path}' is newer ({stamp.isoformat()}) than earliest output "
                    f"'{earliest_path}' ({earliest.isoformat()}), not up to date.",
                )

        context.logger.debug(
            "    No inputs are newer than earliest output '%s' (%s).",
            earliest_path,
            earliest.isoformat(),
        )
        return self._ok(context)


class BuiltCopiedItemsCheck(BuildCheck):
    """Checks UpToDateCheckBuilt items that declare an ``Original`` source.

    Such an item is a build output copied from Original; the copy must
    exist and be no older than its source.
    """

    @property
    def name(self) -> str:
        return "built-copied-items"

    def check(self, context: CheckContext) -> CheckResult:
        context.logger.debug("")
        context.logger.debug("BuiltCopiedItemsCheck:")

        unit_dir = os.path.dirname(context.unit.full_path)

        for item in context.unit.get_items(BUILT_ITEM):
            original = item.get_metadata(ORIGINAL)
            if not original:
                continue

            source = original if os.path.isabs(original) else os.path.normpath(
                os.path.join(unit_dir, original)
            )
            destination = item.full_path

            context.logger.debug("    Checking copied output file '%s':", source)

            source_time = resolve_timestamp(source, context.timestamps)
            if source_time is None:
                return self._fail(context, f"Source '{source}' does not exist, not up to date.")
            context.logger.debug("        Source %s: '%s'.", source_time.isoformat(), source)

            destination_time = resolve_timestamp(destination, context.timestamps)
            if destination_time is None:
                return self._fail(
                    context, f"Destination '{destination}' does not exist, not up to date."
                )
            context.logger.debug(
                "        Destination %s: '%s'.", destination_time.isoformat(), destination
            )

            if destination_time < source_time:
                return self._fail(
                    context,
                    f"Source '{source}' is newer than build output destination "
                    f"'{destination}', not up to date.",
                )

        return self._ok(context)
