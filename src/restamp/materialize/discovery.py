"""Archive discovery."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from .models import ArchiveUnit


def discover_archives(download_dir: Path, patterns: Iterable[str]) -> list[ArchiveUnit]:
    """Return archives in `download_dir` matching any pattern, sorted by name.

    Only the top level of the directory is searched; a file matched by several
    patterns is reported once.
    """
    if not download_dir.is_dir():
        return []

    seen: dict[Path, ArchiveUnit] = {}
    for pattern in patterns:
        for path in download_dir.glob(pattern):
            if path.is_file() and path not in seen:
                seen[path] = ArchiveUnit.from_path(path)
    return sorted(seen.values(), key=lambda unit: unit.path.name)
