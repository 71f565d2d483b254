"""Materialization errors."""


class MaterializeError(Exception):
    """Raised when an archive cannot be materialized; fatal for the run."""
