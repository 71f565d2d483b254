"""Sidecar resolution and timestamp restoration."""

from .applier import ApplyResult, MtimeApplier
from .diagnostics import Diagnostic, DiagnosticsSink
from .errors import ApplyError, MalformedDocument, RestoreError
from .models import FileRestoreReport, FolderRestoreReport
from .pipeline import RestorationPipeline
from .resolver import Resolution, SidecarResolver
from .timestamps import TimestampExtractor, load_document

__all__ = [
    "ApplyError",
    "ApplyResult",
    "Diagnostic",
    "DiagnosticsSink",
    "FileRestoreReport",
    "FolderRestoreReport",
    "MalformedDocument",
    "MtimeApplier",
    "Resolution",
    "RestorationPipeline",
    "RestoreError",
    "SidecarResolver",
    "TimestampExtractor",
    "load_document",
]
