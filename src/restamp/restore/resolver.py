"""Sidecar resolution for media files.

Each rule is a pure function over a media file and the sorted sidecar names in
its directory. Rules run in order and the first hit wins. Within a rule the
lexicographically smallest name is chosen, so results never depend on the
order in which the filesystem lists a directory.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from restamp.config.models import RestoreSettings, ScanSettings
from restamp.scanning.models import MediaFile

Rule = Callable[[MediaFile, Sequence[str]], Optional[str]]

_DUPLICATE_SUFFIX = re.compile(r"^(.*)\((\d+)\)$")


@dataclass(frozen=True, slots=True)
class Resolution:
    """Result of resolving one media file.

    Attributes:
        media: The media file that was resolved.
        sidecar: Matched sidecar path, or None.
        rule: Name of the rule that matched, or None.
    """

    media: MediaFile
    sidecar: Path | None = None
    rule: str | None = None

    @property
    def matched(self) -> bool:
        return self.sidecar is not None


def first_with_prefix(candidates: Sequence[str], prefix: str) -> str | None:
    """Return the first of the sorted `candidates` starting with `prefix`."""
    if not prefix:
        return None
    for candidate in candidates:
        if candidate.startswith(prefix):
            return candidate
    return None


def match_full_name(media: MediaFile, candidates: Sequence[str]) -> str | None:
    """`<name><ext>*.json`, e.g. `photo.jpg.supplemental-metadata.json`."""
    return first_with_prefix(candidates, media.name)


def make_stem_rule(video_suffixes: Iterable[str], image_suffix: str) -> Rule:
    """Build the `<stem>*.json` rule.

    A live-photo video skips candidates that name its still image (such as
    `clip.HEIC.json` for `clip.mov`); those pairings belong to the live-photo
    rule. Every other candidate starting with `<stem>` matches.
    """
    videos = frozenset(suffix.lower() for suffix in video_suffixes)
    still = image_suffix.lower()

    def match_stem(media: MediaFile, candidates: Sequence[str]) -> str | None:
        if not media.stem:
            return None
        is_video = media.suffix.lower() in videos
        for candidate in candidates:
            if not candidate.startswith(media.stem):
                continue
            if is_video and _names_still(candidate, media.stem, still):
                continue
            return candidate
        return None

    return match_stem


def match_duplicate_suffix(media: MediaFile, candidates: Sequence[str]) -> str | None:
    """`photo(2).jpg` -> `photo.jpg*.json`; exports renumber media but not sidecars."""
    found = _DUPLICATE_SUFFIX.match(media.stem)
    if found is None:
        return None
    return first_with_prefix(candidates, found.group(1) + media.suffix)


def make_live_photo_rule(video_suffixes: Iterable[str], image_suffix: str) -> Rule:
    """Build the rule pairing a live-photo video with its still's sidecar."""
    videos = frozenset(suffix.lower() for suffix in video_suffixes)
    still = image_suffix.lower()

    def match_live_photo(media: MediaFile, candidates: Sequence[str]) -> str | None:
        if media.suffix.lower() not in videos or not media.stem:
            return None
        for candidate in candidates:
            if candidate.startswith(media.stem) and _names_still(candidate, media.stem, still):
                return candidate
        return None

    return match_live_photo


def _names_still(candidate: str, stem: str, still_suffix: str) -> bool:
    """Return whether `candidate` is `<stem>` followed by the live-photo still suffix.

    Args:
        candidate: Sidecar file name starting with `stem`.
        stem: Media file name without its extension.
        still_suffix: Lowercase still-image suffix, such as `.heic`.

    Returns:
        bool: True when the remainder starts with `still_suffix` in any case.
    """
    width = len(stem)
    return candidate[width : width + len(still_suffix)].lower() == still_suffix


class SidecarResolver:
    """Resolve media files to at most one sidecar using an ordered rule cascade."""

    def __init__(self, scan: ScanSettings, restore: RestoreSettings) -> None:
        self.sidecar_suffix = scan.sidecar_suffix
        self.folder_marker = scan.folder_marker
        self.rules: list[tuple[str, Rule]] = [
            ("full_name", match_full_name),
            (
                "stem",
                make_stem_rule(
                    restore.live_photo_video_suffixes, restore.live_photo_image_suffix
                ),
            ),
            ("duplicate_suffix", match_duplicate_suffix),
            (
                "live_photo",
                make_live_photo_rule(
                    restore.live_photo_video_suffixes, restore.live_photo_image_suffix
                ),
            ),
        ]

    def candidates(self, listing: Iterable[str]) -> tuple[str, ...]:
        """Return sorted sidecar names from a directory listing."""
        return tuple(
            sorted(
                name
                for name in listing
                if name != self.folder_marker and name.lower().endswith(self.sidecar_suffix)
            )
        )

    def resolve(self, media: MediaFile, candidates: Sequence[str]) -> Resolution:
        """Return the first rule match for `media` among `candidates`.

        Args:
            media: Media file to resolve.
            candidates: Sorted sidecar names from the media file's directory.

        Returns:
            Resolution: The match, or an unmatched resolution.
        """
        for name, rule in self.rules:
            hit = rule(media, candidates)
            if hit is not None:
                return Resolution(media=media, sidecar=media.directory / hit, rule=name)
        return Resolution(media=media)


__all__ = [
    "Resolution",
    "Rule",
    "SidecarResolver",
    "first_with_prefix",
    "make_live_photo_rule",
    "make_stem_rule",
    "match_duplicate_suffix",
    "match_full_name",
]
