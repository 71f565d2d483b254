"""Metadata document parsing and canonical timestamp extraction."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Iterable, Mapping

from .errors import MalformedDocument

TIMESTAMP_FIELD = "timestamp"


def load_document(path: Path) -> Mapping[str, Any]:
    """Read a UTF-8 JSON metadata document.

    Raises:
        MalformedDocument: If the file cannot be read, is not valid JSON, or
            does not hold an object at the top level.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            document = json.load(handle)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedDocument(f"{path}: {exc}") from exc

    if not isinstance(document, dict):
        raise MalformedDocument(f"{path}: top-level value is not an object")
    return document


def parse_epoch(value: Any) -> int | None:
    """Return `value` as epoch seconds, or None when it cannot be parsed.

    Integers, finite floats (truncated) and strings of digits are accepted.
    Booleans are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


class TimestampExtractor:
    """Pick one canonical timestamp from a document by key priority."""

    def __init__(self, keys: Iterable[str]) -> None:
        self.keys = tuple(keys)

    def extract(self, document: Mapping[str, Any]) -> int | None:
        """Return the timestamp of the highest-priority key that parses, or None.

        Extraction stops at the first parsable value. A zero there is the
        placeholder exports write for unknown dates, so the result is None and
        lower-priority keys are not consulted.
        """
        for key in self.keys:
            group = document.get(key)
            if not isinstance(group, Mapping):
                continue
            seconds = parse_epoch(group.get(TIMESTAMP_FIELD))
            if seconds is not None:
                return seconds or None
        return None


__all__ = ["TIMESTAMP_FIELD", "TimestampExtractor", "load_document", "parse_epoch"]
