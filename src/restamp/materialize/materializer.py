"""Overlay extraction of export archives with completion markers."""

from __future__ import annotations

import logging
import shutil
import tarfile
import threading
import zipfile
from pathlib import Path
from typing import Iterable

from restamp.state import MarkerStore, StateError

from .errors import MaterializeError
from .models import ArchiveUnit, MaterializeReport

LOGGER = logging.getLogger(__name__)


class Materializer:
    """Extract archives into one shared overlay tree, each exactly once.

    Archives are extracted in the order given. Files written by a later archive
    replace files at the same relative path from an earlier one; nothing is
    rolled back.
    """

    def __init__(self, overlay_root: Path, markers: MarkerStore) -> None:
        self.overlay_root = overlay_root
        self.markers = markers
        self._prepared = False
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def reset(self) -> None:
        """Remove the overlay tree and every completion marker.

        Raises:
            MaterializeError: If the overlay was already prepared in this run.
        """
        if self._prepared:
            raise MaterializeError("Reset must happen before the overlay is prepared.")
        self.markers.clear()
        if self.overlay_root.exists():
            LOGGER.info("Removing overlay tree %s", self.overlay_root)
            shutil.rmtree(self.overlay_root)

    def prepare(self) -> None:
        """Create the overlay and marker directories."""
        self.overlay_root.mkdir(parents=True, exist_ok=True)
        self.markers.initialize()
        self._prepared = True

    def materialize(
        self,
        archives: Iterable[ArchiveUnit],
        cancel: threading.Event | None = None,
    ) -> MaterializeReport:
        """Extract every archive that has no completion marker yet.

        Args:
            archives: Archives to materialize, in overlay order.
            cancel: Event checked before each archive; when set, remaining archives are left
                untouched for the next run.

        Returns:
            MaterializeReport: Identities found, extracted, and skipped.

        Raises:
            MaterializeError: On the first archive that fails to extract.
        """
        if not self._prepared:
            self.prepare()

        report = MaterializeReport()
        units = list(archives)
        total = len(units)
        for index, unit in enumerate(units, start=1):
            if cancel is not None and cancel.is_set():
                LOGGER.info("Cancellation requested; stopping before %s", unit.identity)
                break
            report.found.append(unit.identity)
            with self._lock_for(unit.identity):
                if self.markers.contains(unit.identity):
                    LOGGER.info("[%d/%d] SKIP already extracted %s", index, total, unit.identity)
                    report.skipped.append(unit.identity)
                    continue

                LOGGER.info("[%d/%d] extracting %s", index, total, unit.path)
                self._extract(unit)
                try:
                    self.markers.mark(unit.identity)
                except StateError as exc:
                    raise MaterializeError(str(exc)) from exc
                report.extracted.append(unit.identity)

        return report

    def _extract(self, unit: ArchiveUnit) -> None:
        try:
            if zipfile.is_zipfile(unit.path):
                with zipfile.ZipFile(unit.path) as archive:
                    archive.extractall(self.overlay_root)
            else:
                with tarfile.open(unit.path, mode="r:*") as archive:
                    archive.extractall(self.overlay_root, filter="data")
        except (tarfile.TarError, zipfile.BadZipFile, OSError, EOFError) as exc:
            raise MaterializeError(f"Failed to extract {unit.path}: {exc}") from exc

    def _lock_for(self, identity: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(identity, threading.Lock())


__all__ = ["Materializer"]
