"""Archive and materialization data models."""

from __future__ import annotations

from pathlib import Path
from typing import List

from pydantic import BaseModel, Field


class ArchiveUnit(BaseModel):
    """One compressed export archive.

    Attributes:
        path: Location of the archive file.
        identity: Completion-marker key derived from the archive file name.
    """

    path: Path
    identity: str

    @classmethod
    def from_path(cls, path: Path) -> "ArchiveUnit":
        """Build a unit whose identity is the archive's file name."""
        return cls(path=path, identity=path.name)


class MaterializeReport(BaseModel):
    """Outcome of a materialization pass.

    Attributes:
        found: Identities of every archive considered.
        extracted: Identities extracted during this pass.
        skipped: Identities skipped because a completion marker already existed.
    """

    found: List[str] = Field(default_factory=list)
    extracted: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
