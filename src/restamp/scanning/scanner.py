"""Overlay tree scanner."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Iterable

from restamp.config.models import ScanSettings

from .models import MediaFile, ScanSnapshot

LOGGER = logging.getLogger(__name__)


class Scanner:
    """Walk the overlay tree once and classify files by suffix."""

    def __init__(
        self,
        settings: ScanSettings,
        *,
        media_root_override: str | None = None,
        skip_dirnames: Iterable[str] = (),
    ) -> None:
        """Initialize the scanner.

        Args:
            settings: Classification settings.
            media_root_override: Single media-root folder name replacing the defaults.
            skip_dirnames: Directory names that are never descended into.
        """
        self.settings = settings
        self.media_suffixes = tuple(settings.media_suffixes)
        self.sidecar_suffix = settings.sidecar_suffix
        self.folder_marker = settings.folder_marker
        if media_root_override:
            self.media_root_names = frozenset([media_root_override])
        else:
            self.media_root_names = frozenset(settings.media_roots)
        self.skip_dirnames = frozenset(skip_dirnames)

    def scan(self, root: Path) -> ScanSnapshot:
        """Return a snapshot of the tree under `root`; the tree is never modified."""
        if not root.is_dir():
            LOGGER.info("Overlay root %s does not exist; nothing to scan.", root)
            return ScanSnapshot(root=root)

        media: list[MediaFile] = []
        sidecars: list[Path] = []
        markers: list[Path] = []
        media_roots: list[Path] = []
        listings: dict[Path, tuple[str, ...]] = {}

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(name for name in dirnames if name not in self.skip_dirnames)
            directory = Path(dirpath)
            if self._is_media_root(directory):
                media_roots.append(directory)

            names = tuple(sorted(filenames))
            listings[directory] = names
            for name in names:
                lowered = name.lower()
                path = directory / name
                if lowered.endswith(self.media_suffixes):
                    media.append(MediaFile.from_path(path))
                elif name == self.folder_marker:
                    markers.append(path)
                elif lowered.endswith(self.sidecar_suffix):
                    sidecars.append(path)

        snapshot = ScanSnapshot(
            root=root,
            media=tuple(media),
            sidecars=tuple(sidecars),
            folder_markers=tuple(markers),
            listings=MappingProxyType(listings),
            media_roots=tuple(media_roots),
        )
        counts = snapshot.counts
        LOGGER.info(
            "Scanned %s: media=%d sidecars=%d dir_meta=%d media_roots=%d",
            root,
            counts.media_files,
            counts.sidecars,
            counts.folder_markers,
            counts.media_roots,
        )
        return snapshot

    def _is_media_root(self, directory: Path) -> bool:
        return (
            directory.name in self.media_root_names
            and directory.parent.name == self.settings.container_dirname
        )


__all__ = ["Scanner"]
