"""Overlay scanning and classification."""

from .models import MediaFile, ScanCounts, ScanSnapshot
from .scanner import Scanner

__all__ = ["MediaFile", "ScanCounts", "ScanSnapshot", "Scanner"]
