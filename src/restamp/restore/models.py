"""Restoration outcome models."""

from __future__ import annotations

from pydantic import BaseModel


class FileRestoreReport(BaseModel):
    """Counts for the media-file restoration phase."""

    processed: int = 0
    updated: int = 0
    unchanged: int = 0
    no_sidecar: int = 0
    bad_json: int = 0
    no_timestamp: int = 0
    utime_failed: int = 0
    orphan_sidecars: int = 0


class FolderRestoreReport(BaseModel):
    """Counts for the folder-marker restoration phase."""

    processed: int = 0
    updated: int = 0
    unchanged: int = 0
    bad_json: int = 0
    no_timestamp: int = 0
    utime_failed: int = 0


__all__ = ["FileRestoreReport", "FolderRestoreReport"]
