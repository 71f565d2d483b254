"""End-to-end run orchestration: materialize, scan, restore."""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from restamp.config import RestampConfig
from restamp.materialize import MaterializeReport, Materializer, discover_archives
from restamp.restore import (
    DiagnosticsSink,
    FileRestoreReport,
    FolderRestoreReport,
    RestorationPipeline,
)
from restamp.scanning import Scanner, ScanSnapshot
from restamp.state import MarkerStore, RunPhase, RunState

LOGGER = logging.getLogger(__name__)

PhaseSelection = Literal["extract", "prescan", "mtime", "all"]
PHASE_SELECTIONS: tuple[str, ...] = ("extract", "prescan", "mtime", "all")
StageProgress = Callable[[str, int, int], None]


class RunError(Exception):
    """Base class for errors that stop a run."""


class MissingMediaRootError(RunError):
    """Raised when restoration is requested but no media root exists in the overlay."""


class RunAborted(RunError):
    """Raised when the caller signals cancellation; progress so far stays valid."""


@dataclass(frozen=True, slots=True)
class RunLayout:
    """Filesystem locations used by one run.

    Attributes:
        download_dir: Directory holding the export archives.
        overlay_root: Shared extraction tree.
        marker_dir: Completion-marker directory inside the overlay.
        log_dir: Per-run log directory.
    """

    download_dir: Path
    overlay_root: Path
    marker_dir: Path
    log_dir: Path

    @classmethod
    def from_config(
        cls,
        config: RestampConfig,
        download_dir: Path,
        *,
        log_dir: Path | None = None,
        now: datetime | None = None,
    ) -> "RunLayout":
        download_dir = download_dir.expanduser().resolve()
        overlay_root = download_dir / config.archives.extract_dirname
        if log_dir is None:
            stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
            log_dir = download_dir / config.logging.log_dirname / stamp
        return cls(
            download_dir=download_dir,
            overlay_root=overlay_root,
            marker_dir=overlay_root / config.archives.marker_dirname,
            log_dir=log_dir.expanduser().resolve(),
        )

    @property
    def run_log_path(self) -> Path:
        return self.log_dir / "run.log"

    @property
    def diagnostics_path(self) -> Path:
        return self.log_dir / "unmatched.log"

    @property
    def summary_path(self) -> Path:
        return self.log_dir / "summary.json"


class RunSummary(BaseModel):
    """Per-category counts reported at the end of a run."""

    phase: PhaseSelection
    final_state: RunPhase = RunPhase.PENDING
    download_dir: str
    overlay_root: str
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    dry_run: bool = False
    materialize: Optional[MaterializeReport] = None
    scan: Optional[Dict[str, int]] = None
    files: Optional[FileRestoreReport] = None
    folders: Optional[FolderRestoreReport] = None
    diagnostics: Dict[str, int] = Field(default_factory=dict)
    sync_sources: List[str] = Field(default_factory=list)


class RestampRun:
    """Drive one run through `PENDING -> MATERIALIZING -> SCANNED -> RESOLVING -> RESTORED`.

    Phases run strictly in sequence. The only state shared between phases is
    the overlay tree and its marker set, so an interrupted run is resumed by
    starting a fresh one.
    """

    def __init__(
        self,
        config: RestampConfig,
        layout: RunLayout,
        *,
        phase: PhaseSelection = "all",
        reset: bool = False,
        media_root_override: str | None = None,
        dry_run: bool = False,
        cancel: threading.Event | None = None,
        progress: StageProgress | None = None,
    ) -> None:
        """Initialize the run.

        Args:
            config: Effective configuration.
            layout: Filesystem locations for this run.
            phase: Which part of the pipeline to execute.
            reset: Remove the overlay tree and markers before anything else.
            media_root_override: Single media-root folder name replacing the defaults.
            dry_run: Recorded for the transfer stage; restoration ignores it.
            cancel: Event that stops the run at the next phase boundary.
            progress: Callback receiving `(stage, done, total)` updates.
        """
        if phase not in PHASE_SELECTIONS:
            raise ValueError(f"Unknown phase {phase!r}; expected one of {PHASE_SELECTIONS}.")
        self.config = config
        self.layout = layout
        self.phase = phase
        self.reset = reset
        self.media_root_override = media_root_override
        self.dry_run = dry_run
        self.cancel = cancel or threading.Event()
        self.progress = progress
        self.state = RunState()
        self.diagnostics = DiagnosticsSink(layout.diagnostics_path)
        self.materializer = Materializer(layout.overlay_root, MarkerStore(layout.marker_dir))

    def execute(self) -> RunSummary:
        """Run the selected phases and return the summary.

        Raises:
            MaterializeError: If an archive fails to extract.
            MissingMediaRootError: If restoration is requested without a media root.
            RunAborted: If cancellation was signalled.
        """
        summary = RunSummary(
            phase=self.phase,
            download_dir=str(self.layout.download_dir),
            overlay_root=str(self.layout.overlay_root),
            dry_run=self.dry_run,
        )
        LOGGER.info(
            "Run started: download_dir=%s overlay=%s phase=%s reset=%s media_root=%s",
            self.layout.download_dir,
            self.layout.overlay_root,
            self.phase,
            self.reset,
            self.media_root_override or "<auto>",
        )

        if self.reset:
            self.materializer.reset()
        self.materializer.prepare()

        if self.phase in ("extract", "all"):
            self._checkpoint("extract")
            self.state.advance(RunPhase.MATERIALIZING)
            summary.materialize = self._materialize()

        if self.phase in ("prescan", "mtime", "all"):
            self._checkpoint("prescan")
            snapshot = self._scan()
            self.state.advance(RunPhase.SCANNED)
            summary.scan = asdict(snapshot.counts)
            summary.sync_sources = [str(path) for path in snapshot.media_roots]

            if self.phase in ("mtime", "all"):
                if not snapshot.media_roots:
                    raise MissingMediaRootError(
                        f"No media root found under {self.layout.overlay_root}; "
                        "check --photos-root or the extracted archives."
                    )
                self._checkpoint("mtime")
                self.state.advance(RunPhase.RESOLVING)
                pipeline = RestorationPipeline(
                    self.config.scan, self.config.restore, self.diagnostics
                )
                summary.files = pipeline.restore_files(snapshot, self._stage("mtime-files"))
                summary.folders = pipeline.restore_folders(snapshot, self._stage("mtime-dirs"))
                self.state.advance(RunPhase.RESTORED)

        summary.final_state = self.state.phase
        summary.diagnostics = dict(sorted(self.diagnostics.counts().items()))
        summary.finished_at = datetime.now(timezone.utc)
        self._write_summary(summary)
        LOGGER.info("Run finished in state %s", self.state.phase.value)
        return summary

    def _materialize(self) -> MaterializeReport:
        archives = discover_archives(self.layout.download_dir, self.config.archives.patterns)
        if not archives:
            LOGGER.info("No archives found in %s", self.layout.download_dir)
        report = self.materializer.materialize(archives, cancel=self.cancel)
        self._checkpoint("scan")
        LOGGER.info(
            "Materialized archives: found=%d extracted=%d skipped=%d",
            len(report.found),
            len(report.extracted),
            len(report.skipped),
        )
        return report

    def _scan(self) -> ScanSnapshot:
        scanner = Scanner(
            self.config.scan,
            media_root_override=self.media_root_override,
            skip_dirnames=[self.config.archives.marker_dirname],
        )
        return scanner.scan(self.layout.overlay_root)

    def _checkpoint(self, stage: str) -> None:
        if self.cancel.is_set():
            raise RunAborted(f"Run aborted before {stage} (state {self.state.phase.value}).")

    def _stage(self, stage: str) -> Callable[[int, int], None] | None:
        if self.progress is None:
            return None
        progress = self.progress

        def _report(done: int, total: int) -> None:
            progress(stage, done, total)

        return _report

    def _write_summary(self, summary: RunSummary) -> None:
        try:
            self.layout.log_dir.mkdir(parents=True, exist_ok=True)
            self.layout.summary_path.write_text(
                summary.model_dump_json(indent=2), encoding="utf-8"
            )
        except OSError as exc:  # pragma: no cover - logging best effort
            LOGGER.warning("Unable to write run summary %s: %s", self.layout.summary_path, exc)


__all__ = [
    "MissingMediaRootError",
    "PHASE_SELECTIONS",
    "PhaseSelection",
    "RestampRun",
    "RunAborted",
    "RunError",
    "RunLayout",
    "RunSummary",
]
