"""
Test helpers — file creation with forced timestamps, item builders.
"""

import os
from pathlib import Path

from build_uptodate.core.models.item import Item

# A fixed point in time; tests place files relative to it.
T0 = 1_600_000_000.0


def write_file(path: Path, mtime: float | None = None, content: str = "// test") -> str:
    """Create ``path`` (and parents) and optionally force its mtime."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return str(path)


def make_item(item_type: str, full_path: str, **metadata: str) -> Item:
    return Item(
        item_type=item_type,
        path=os.path.basename(full_path),
        metadata={"FullPath": full_path, **metadata},
    )
