"""Persistence helpers for materialization markers and run state."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from .errors import RunStateError, StateError
from .models import PhaseTransition, RunPhase, RunState

MARKER_SUFFIX = ".ok"


class MarkerStore:
    """Set of completed archive identities persisted as one marker file each.

    Only the presence of `<identity>.ok` matters; its content is never read.
    """

    def __init__(self, directory: Path) -> None:
        """Initialize the store.

        Args:
            directory: Directory holding the marker files.
        """
        self._directory = directory

    @property
    def directory(self) -> Path:
        """Return the directory that holds marker files."""
        return self._directory

    def initialize(self) -> Path:
        """Create the marker directory if needed.

        Returns:
            Path: The marker directory.
        """
        self._directory.mkdir(parents=True, exist_ok=True)
        return self._directory

    def contains(self, identity: str) -> bool:
        """Return whether `identity` has been marked complete."""
        return self._marker_path(identity).is_file()

    def mark(self, identity: str) -> Path:
        """Persist a completion marker for `identity`.

        The marker appears atomically so a reader never observes a partial write.

        Returns:
            Path: The marker file.

        Raises:
            StateError: If the marker cannot be written.
        """
        target = self._marker_path(identity)
        try:
            self.initialize()
            fd, temp_name = tempfile.mkstemp(dir=self._directory, prefix=".pending-")
            os.close(fd)
            os.replace(temp_name, target)
        except OSError as exc:
            raise StateError(f"Unable to write completion marker {target}: {exc}") from exc
        return target

    def identities(self) -> set[str]:
        """Return every identity currently marked complete."""
        if not self._directory.is_dir():
            return set()
        return {
            entry.name[: -len(MARKER_SUFFIX)]
            for entry in self._directory.iterdir()
            if entry.is_file() and entry.name.endswith(MARKER_SUFFIX)
        }

    def clear(self) -> None:
        """Remove every marker along with the marker directory."""
        if self._directory.exists():
            shutil.rmtree(self._directory)

    def _marker_path(self, identity: str) -> Path:
        if not identity or "/" in identity or identity in (".", ".."):
            raise StateError(f"Invalid marker identity: {identity!r}")
        return self._directory / f"{identity}{MARKER_SUFFIX}"


__all__ = [
    "MARKER_SUFFIX",
    "MarkerStore",
    "PhaseTransition",
    "RunPhase",
    "RunState",
    "RunStateError",
    "StateError",
]
