"""Append-only audit trail for items that could not be restored."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Literal

from pydantic import BaseModel, Field

LOGGER = logging.getLogger(__name__)

DiagnosticCode = Literal[
    "NO_SIDECAR",
    "ORPHAN_SIDECAR",
    "BAD_JSON",
    "NO_TIMESTAMP",
    "UTIME_FAILED",
    "BAD_DIR_JSON",
    "NO_DIR_TIMESTAMP",
    "DIR_UTIME_FAILED",
]


class Diagnostic(BaseModel):
    """One recorded anomaly.

    Attributes:
        code: Anomaly category.
        fields: Ordered key/value details such as `media` or `json` paths.
    """

    code: DiagnosticCode
    fields: Dict[str, str] = Field(default_factory=dict)

    def render(self) -> str:
        details = " ".join(f"{key}={value}" for key, value in self.fields.items())
        return f"{self.code} {details}".rstrip()


class DiagnosticsSink:
    """Thread-safe, append-only diagnostics stream.

    Every record is kept in memory and, when a path is configured, appended to
    that file as `YYYY-MM-DD HH:MM:SS | CODE key=value ...`. Failing to write
    the file never propagates to the caller.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._records: List[Diagnostic] = []

    @property
    def records(self) -> list[Diagnostic]:
        with self._lock:
            return list(self._records)

    def counts(self) -> Counter[str]:
        with self._lock:
            return Counter(record.code for record in self._records)

    def record(self, code: DiagnosticCode, **fields: object) -> Diagnostic:
        """Append one diagnostic and return it."""
        rendered = {key: str(value) for key, value in fields.items()}
        diagnostic = Diagnostic(code=code, fields=rendered)
        with self._lock:
            self._records.append(diagnostic)
            self._write(diagnostic)
        return diagnostic

    def _write(self, diagnostic: Diagnostic) -> None:
        if self.path is None:
            return
        stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(f"{stamp} | {diagnostic.render()}\n")
        except OSError as exc:
            LOGGER.debug("Unable to append diagnostic to %s: %s", self.path, exc)


__all__ = ["Diagnostic", "DiagnosticCode", "DiagnosticsSink"]
