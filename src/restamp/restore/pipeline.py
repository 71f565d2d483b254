"""Timestamp restoration over a scanned overlay snapshot."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Optional, Sequence

from restamp.config.models import RestoreSettings, ScanSettings
from restamp.scanning.models import MediaFile, ScanSnapshot

from .applier import MtimeApplier
from .diagnostics import DiagnosticsSink
from .errors import ApplyError, MalformedDocument
from .models import FileRestoreReport, FolderRestoreReport
from .resolver import Resolution, SidecarResolver
from .timestamps import TimestampExtractor, load_document

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
Status = Literal["updated", "unchanged", "no_sidecar", "bad_json", "no_timestamp", "utime_failed"]


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    """Result of restoring one media file or folder.

    Attributes:
        target: File or directory whose timestamp was restored.
        status: Outcome category.
        document: Metadata document consulted, if any.
        timestamp: Timestamp extracted from the document, if any.
        detail: Error text for failures.
    """

    target: Path
    status: Status
    document: Path | None = None
    timestamp: int | None = None
    detail: str | None = None


class RestorationPipeline:
    """Resolve sidecars and restore file and folder modification times."""

    def __init__(
        self,
        scan: ScanSettings,
        restore: RestoreSettings,
        diagnostics: DiagnosticsSink,
        *,
        applier: MtimeApplier | None = None,
        resolver: SidecarResolver | None = None,
        extractor: TimestampExtractor | None = None,
    ) -> None:
        self.workers = restore.workers
        self.diagnostics = diagnostics
        self.applier = applier or MtimeApplier()
        self.resolver = resolver or SidecarResolver(scan, restore)
        self.extractor = extractor or TimestampExtractor(restore.timestamp_keys)

    def restore_files(
        self,
        snapshot: ScanSnapshot,
        progress: Optional[ProgressCallback] = None,
    ) -> FileRestoreReport:
        """Restore the mtime of every media file in the snapshot.

        Files are processed on a bounded worker pool; outcomes are collected in
        snapshot order so diagnostics are identical from run to run.
        """
        report = FileRestoreReport()
        total = len(snapshot.media)
        if total == 0:
            LOGGER.info("No media files found under %s; skipping file restoration.", snapshot.root)
            return report

        candidates = {
            directory: self.resolver.candidates(names)
            for directory, names in snapshot.listings.items()
        }
        claimed: set[Path] = set()

        def _work(media: MediaFile) -> tuple[Resolution, ItemOutcome]:
            resolution = self.resolver.resolve(media, candidates.get(media.directory, ()))
            return resolution, self._restore_media(resolution)

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            for done, (resolution, outcome) in enumerate(pool.map(_work, snapshot.media), start=1):
                if resolution.sidecar is not None:
                    claimed.add(resolution.sidecar)
                self._record_file_outcome(report, outcome)
                if progress is not None:
                    progress(done, total)

        for sidecar in snapshot.sidecars:
            if sidecar not in claimed:
                report.orphan_sidecars += 1
                self.diagnostics.record("ORPHAN_SIDECAR", json=sidecar)

        LOGGER.info(
            "File restoration done: processed=%d updated=%d unchanged=%d no_sidecar=%d",
            report.processed,
            report.updated,
            report.unchanged,
            report.no_sidecar,
        )
        return report

    def restore_folders(
        self,
        snapshot: ScanSnapshot,
        progress: Optional[ProgressCallback] = None,
    ) -> FolderRestoreReport:
        """Restore each marked directory's own mtime from its folder marker."""
        report = FolderRestoreReport()
        markers: Sequence[Path] = snapshot.folder_markers
        total = len(markers)
        if total == 0:
            LOGGER.info("No folder markers found; directory mtimes will not be updated.")
            return report

        for done, marker in enumerate(markers, start=1):
            outcome = self._restore_target(marker.parent, marker)
            self._record_folder_outcome(report, outcome)
            if progress is not None:
                progress(done, total)

        LOGGER.info(
            "Folder restoration done: processed=%d updated=%d unchanged=%d",
            report.processed,
            report.updated,
            report.unchanged,
        )
        return report

    def _restore_media(self, resolution: Resolution) -> ItemOutcome:
        if resolution.sidecar is None:
            return ItemOutcome(target=resolution.media.path, status="no_sidecar")
        return self._restore_target(resolution.media.path, resolution.sidecar)

    def _restore_target(self, target: Path, document_path: Path) -> ItemOutcome:
        try:
            document = load_document(document_path)
        except MalformedDocument as exc:
            return ItemOutcome(
                target=target, status="bad_json", document=document_path, detail=str(exc)
            )

        timestamp = self.extractor.extract(document)
        if timestamp is None:
            return ItemOutcome(target=target, status="no_timestamp", document=document_path)

        try:
            result = self.applier.apply(target, timestamp)
        except ApplyError as exc:
            return ItemOutcome(
                target=target,
                status="utime_failed",
                document=document_path,
                timestamp=timestamp,
                detail=str(exc),
            )
        return ItemOutcome(
            target=target,
            status="updated" if result.changed else "unchanged",
            document=document_path,
            timestamp=timestamp,
        )

    def _record_file_outcome(self, report: FileRestoreReport, outcome: ItemOutcome) -> None:
        report.processed += 1
        if outcome.status == "updated":
            report.updated += 1
        elif outcome.status == "unchanged":
            report.unchanged += 1
        elif outcome.status == "no_sidecar":
            report.no_sidecar += 1
            self.diagnostics.record("NO_SIDECAR", media=outcome.target)
        elif outcome.status == "bad_json":
            report.bad_json += 1
            self.diagnostics.record("BAD_JSON", json=outcome.document, media=outcome.target)
        elif outcome.status == "no_timestamp":
            report.no_timestamp += 1
            self.diagnostics.record("NO_TIMESTAMP", json=outcome.document, media=outcome.target)
        else:
            report.utime_failed += 1
            self.diagnostics.record("UTIME_FAILED", media=outcome.target, ts=outcome.timestamp)

    def _record_folder_outcome(self, report: FolderRestoreReport, outcome: ItemOutcome) -> None:
        report.processed += 1
        if outcome.status == "updated":
            report.updated += 1
        elif outcome.status == "unchanged":
            report.unchanged += 1
        elif outcome.status == "bad_json":
            report.bad_json += 1
            self.diagnostics.record("BAD_DIR_JSON", json=outcome.document)
        elif outcome.status == "no_timestamp":
            report.no_timestamp += 1
            self.diagnostics.record("NO_DIR_TIMESTAMP", json=outcome.document)
        else:
            report.utime_failed += 1
            self.diagnostics.record("DIR_UTIME_FAILED", dir=outcome.target, ts=outcome.timestamp)


__all__ = ["ItemOutcome", "ProgressCallback", "RestorationPipeline"]
