"""Run state models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from .errors import RunStateError


class RunPhase(str, Enum):
    """Linear phases of a single run."""

    PENDING = "pending"
    MATERIALIZING = "materializing"
    SCANNED = "scanned"
    RESOLVING = "resolving"
    RESTORED = "restored"


_ORDER = list(RunPhase)


class PhaseTransition(BaseModel):
    """A recorded move into a phase."""

    phase: RunPhase
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RunState(BaseModel):
    """Tracks the phase of one run; transitions only move forward."""

    phase: RunPhase = RunPhase.PENDING
    history: List[PhaseTransition] = Field(default_factory=list)

    def advance(self, phase: RunPhase) -> None:
        """Move to `phase`, which must come strictly after the current phase.

        Phases may be skipped (a run that only scans never materializes), but a
        run never returns to an earlier phase.

        Raises:
            RunStateError: If `phase` is not after the current phase.
        """
        if _ORDER.index(phase) <= _ORDER.index(self.phase):
            raise RunStateError(
                f"Cannot move from {self.phase.value} to {phase.value}; runs only move forward."
            )
        self.phase = phase
        self.history.append(PhaseTransition(phase=phase))


__all__ = ["RunPhase", "PhaseTransition", "RunState"]
