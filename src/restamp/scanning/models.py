"""Snapshot types produced by the overlay scanner."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True, slots=True)
class MediaFile:
    """A media file found under the overlay tree.

    Attributes:
        path: Absolute path to the file.
        directory: Parent directory.
        name: File name including its extension.
        stem: File name without its final extension.
        suffix: Final extension as found on disk (case preserved).
    """

    path: Path
    directory: Path
    name: str
    stem: str
    suffix: str

    @classmethod
    def from_path(cls, path: Path) -> "MediaFile":
        return cls(
            path=path,
            directory=path.parent,
            name=path.name,
            stem=path.stem,
            suffix=path.suffix,
        )


@dataclass(frozen=True, slots=True)
class ScanCounts:
    """Aggregate counts used for progress reporting."""

    media_files: int
    sidecars: int
    folder_markers: int
    media_roots: int


@dataclass(frozen=True, slots=True)
class ScanSnapshot:
    """Immutable result of one walk over the overlay tree.

    Attributes:
        root: Overlay root that was scanned.
        media: Media files in walk order (directories and names sorted).
        sidecars: Sidecar documents, excluding folder markers.
        folder_markers: Folder metadata markers.
        listings: Sorted file names per directory, as seen during the walk.
        media_roots: Directories handed to the external transfer stage.
    """

    root: Path
    media: tuple[MediaFile, ...] = ()
    sidecars: tuple[Path, ...] = ()
    folder_markers: tuple[Path, ...] = ()
    listings: Mapping[Path, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    media_roots: tuple[Path, ...] = ()

    @property
    def counts(self) -> ScanCounts:
        return ScanCounts(
            media_files=len(self.media),
            sidecars=len(self.sidecars),
            folder_markers=len(self.folder_markers),
            media_roots=len(self.media_roots),
        )

    def listing(self, directory: Path) -> tuple[str, ...]:
        """Return the sorted file names recorded for `directory`."""
        return self.listings.get(directory, ())


__all__ = ["MediaFile", "ScanCounts", "ScanSnapshot"]
