"""Archive materialization into the overlay tree."""

from .discovery import discover_archives
from .errors import MaterializeError
from .materializer import Materializer
from .models import ArchiveUnit, MaterializeReport

__all__ = [
    "ArchiveUnit",
    "MaterializeError",
    "MaterializeReport",
    "Materializer",
    "discover_archives",
]
