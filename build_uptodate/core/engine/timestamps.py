"""
Timestamp resolution — last-write times for every check.

Every check asks this module "when was this file last written?".
Answers are cached for the lifetime of one unit's analysis; the
filesystem is assumed to be stable while a unit is being checked.

Symbolic links are followed one level: the time reported for a link
is the time of its target, and a link whose target is gone counts as
a missing file. Directories are never files.
"""

from __future__ import annotations

import os
import stat
from collections.abc import Iterator
from datetime import UTC, datetime

from build_uptodate.core.errors import FilesystemAccessError


class TimestampCache:
    """Path → UTC last-write time, keyed case-insensitively.

    Populated lazily by :func:`resolve_timestamp`; never invalidated.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, datetime]] = {}

    @staticmethod
    def _key(path: str) -> str:
        return path.casefold()

    def get(self, path: str) -> datetime | None:
        entry = self._entries.get(self._key(path))
        return entry[1] if entry else None

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self._key(path) in self._entries

    def __setitem__(self, path: str, value: datetime) -> None:
        self._entries[self._key(path)] = (path, value)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._entries.values())


def _lstat(path: str) -> os.stat_result | None:
    """lstat that maps "does not exist" to None and anything else to a fatal error."""
    try:
        return os.lstat(path)
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as e:
        raise FilesystemAccessError(path, e) from e


def _stat(path: str) -> os.stat_result | None:
    try:
        return os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return None
    except OSError as e:
        raise FilesystemAccessError(path, e) from e


def symlink_target(path: str) -> str:
    """Absolute target of a symbolic link (one level)."""
    try:
        target = os.readlink(path)
    except OSError as e:
        raise FilesystemAccessError(path, e) from e
    if not os.path.isabs(target):
        target = os.path.join(os.path.dirname(path), target)
    return os.path.normpath(target)


def _resolve_file_stat(path: str) -> os.stat_result | None:
    """Stat of the file itself, or of its link target; None if not a usable file."""
    st = _lstat(path)
    if st is None:
        return None

    if stat.S_ISLNK(st.st_mode):
        st = _stat(symlink_target(path))
        if st is None:
            return None

    if not stat.S_ISREG(st.st_mode):
        return None
    return st


def resolve_timestamp(path: str, cache: TimestampCache) -> datetime | None:
    """Last-write time (UTC) of ``path``, or None if it does not exist.

    Args:
        path: File to query.
        cache: Per-analysis cache; receives one entry per distinct path.

    Returns:
        The cached or freshly read timestamp, or None for a missing
        file or a dangling link. Missing files are not cached.

    Raises:
        FilesystemAccessError: If the path's attributes cannot be read.
    """
    cached = cache.get(path)
    if cached is not None:
        return cached

    st = _resolve_file_stat(path)
    if st is None:
        return None

    stamp = datetime.fromtimestamp(st.st_mtime_ns / 1_000_000_000, tz=UTC)
    cache[path] = stamp
    return stamp
