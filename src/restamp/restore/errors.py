"""Per-item restoration errors; recorded as diagnostics, never fatal."""


class RestoreError(Exception):
    """Base exception for recoverable restoration failures."""


class MalformedDocument(RestoreError):
    """Raised when a metadata document cannot be read or parsed."""


class ApplyError(RestoreError):
    """Raised when a timestamp cannot be applied to a path."""
