"""Configuration models describing restamp settings."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RestampBaseModel(BaseModel):
    """Shared configuration for restamp Pydantic models."""

    model_config = ConfigDict(extra="forbid")


def _normalize_suffixes(values: List[str]) -> List[str]:
    normalized: List[str] = []
    for value in values:
        suffix = value.strip().lower()
        if not suffix:
            continue
        if not suffix.startswith("."):
            suffix = "." + suffix
        if suffix not in normalized:
            normalized.append(suffix)
    return normalized


class ArchiveSettings(RestampBaseModel):
    """Settings describing how export archives are located and materialized.

    Attributes:
        patterns: Glob patterns matched against the download directory.
        extract_dirname: Name of the overlay directory created inside the download directory.
        marker_dirname: Name of the completion-marker directory inside the overlay.
    """

    patterns: List[str] = Field(
        default_factory=lambda: [
            "takeout*.tgz",
            "Takeout*.tgz",
            "takeout*.tar.gz",
            "Takeout*.tar.gz",
            "takeout*.zip",
            "Takeout*.zip",
        ]
    )
    extract_dirname: str = "_extracted"
    marker_dirname: str = ".markers"


class ScanSettings(RestampBaseModel):
    """Settings that govern classification of the overlay tree.

    Attributes:
        media_suffixes: File suffixes treated as media files (case-insensitive).
        sidecar_suffix: Suffix identifying metadata sidecar documents.
        folder_marker: Fixed file name of folder-level metadata markers.
        container_dirname: Directory that holds the media roots inside an export.
        media_roots: Default media root folder names searched under the container.
    """

    media_suffixes: List[str] = Field(
        default_factory=lambda: [
            ".jpg",
            ".jpeg",
            ".png",
            ".gif",
            ".heic",
            ".mp4",
            ".mov",
            ".m4v",
            ".avi",
            ".webp",
            ".tif",
            ".tiff",
        ]
    )
    sidecar_suffix: str = ".json"
    folder_marker: str = "metadata.json"
    container_dirname: str = "Takeout"
    media_roots: List[str] = Field(default_factory=lambda: ["Google Foto", "Google Photos"])

    @field_validator("media_suffixes")
    @classmethod
    def _lower_media_suffixes(cls, value: List[str]) -> List[str]:
        return _normalize_suffixes(value)

    @field_validator("sidecar_suffix")
    @classmethod
    def _lower_sidecar_suffix(cls, value: str) -> str:
        normalized = _normalize_suffixes([value])
        if not normalized:
            raise ValueError("sidecar_suffix must not be empty")
        return normalized[0]


class RestoreSettings(RestampBaseModel):
    """Settings for sidecar resolution and timestamp restoration.

    Attributes:
        timestamp_keys: Top-level document keys tried in priority order.
        live_photo_video_suffixes: Video suffixes paired with a live-photo still.
        live_photo_image_suffix: Still-image suffix used for live-photo pairing.
        workers: Size of the worker pool used for per-file restoration.
    """

    timestamp_keys: List[str] = Field(
        default_factory=lambda: ["photoTakenTime", "creationTime", "date"]
    )
    live_photo_video_suffixes: List[str] = Field(default_factory=lambda: [".mp4", ".mov"])
    live_photo_image_suffix: str = ".heic"
    workers: int = Field(default=4, ge=1)

    @field_validator("live_photo_video_suffixes")
    @classmethod
    def _lower_video_suffixes(cls, value: List[str]) -> List[str]:
        return _normalize_suffixes(value)

    @field_validator("live_photo_image_suffix")
    @classmethod
    def _lower_image_suffix(cls, value: str) -> str:
        normalized = _normalize_suffixes([value])
        if not normalized:
            raise ValueError("live_photo_image_suffix must not be empty")
        return normalized[0]


class LoggingSettings(RestampBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum run-log size before rotation.
        backup_count: Number of historical log files to retain.
        log_dirname: Directory (inside the download directory) holding per-run logs.
    """

    level: str = "WARNING"
    max_size_mb: int = 100
    backup_count: int = 5
    log_dirname: str = "_logs"


class CLIOptions(RestampBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class RestampConfig(RestampBaseModel):
    """Top-level configuration struct for restamp.

    Attributes:
        archives: Archive discovery and materialization settings.
        scan: Overlay classification settings.
        restore: Sidecar resolution and restoration settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    archives: ArchiveSettings = Field(default_factory=ArchiveSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    restore: RestoreSettings = Field(default_factory=RestoreSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "RestampBaseModel",
    "ArchiveSettings",
    "ScanSettings",
    "RestoreSettings",
    "LoggingSettings",
    "CLIOptions",
    "RestampConfig",
]
