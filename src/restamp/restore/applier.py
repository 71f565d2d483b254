"""Apply timestamps to files and directories."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ApplyError


@dataclass(frozen=True, slots=True)
class ApplyResult:
    """Outcome of applying a timestamp.

    Attributes:
        path: File or directory that was updated.
        timestamp: Epoch seconds applied as access and modification time.
        changed: False when the modification time already equalled `timestamp`.
    """

    path: Path
    timestamp: int
    changed: bool


class MtimeApplier:
    """Set access and modification time on a single path.

    Only the given path is touched; a directory's own time never follows its
    contents, and a file update never alters its parent directory.
    """

    def apply(self, path: Path, timestamp: int) -> ApplyResult:
        """Set atime and mtime of `path` to `timestamp`.

        Raises:
            ApplyError: If the path is missing or cannot be updated.
        """
        try:
            previous_ns = os.stat(path).st_mtime_ns
            os.utime(path, (timestamp, timestamp))
        except (OSError, OverflowError, ValueError) as exc:
            raise ApplyError(f"{path}: {exc}") from exc
        changed = previous_ns != timestamp * 1_000_000_000
        return ApplyResult(path=path, timestamp=timestamp, changed=changed)


__all__ = ["ApplyResult", "MtimeApplier"]
