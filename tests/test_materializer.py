"""Tests for archive discovery and overlay materialization."""

from __future__ import annotations

import io
import tarfile
import threading
import zipfile
from pathlib import Path

import pytest

from restamp.materialize import (
    ArchiveUnit,
    MaterializeError,
    Materializer,
    discover_archives,
)
from restamp.state import MarkerStore

PATTERNS = ["takeout*.tgz", "Takeout*.tgz", "takeout*.tar.gz", "takeout*.zip"]


def _write_tgz(path: Path, members: dict[str, bytes]) -> Path:
    """Write a gzip tarball holding `members`.

    Args:
        path: Archive path to create.
        members: Mapping of archive member names to payloads.

    Returns:
        Path: The archive path.
    """
    with tarfile.open(path, "w:gz") as archive:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return path


def _tree(root: Path) -> dict[str, bytes]:
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def _materializer(download: Path) -> Materializer:
    overlay = download / "_extracted"
    return Materializer(overlay, MarkerStore(overlay / ".markers"))


def test_discover_archives_sorted_and_deduplicated(tmp_path: Path) -> None:
    for name in ["takeout-002.tgz", "takeout-001.tar.gz", "Takeout-003.tgz", "notes.txt"]:
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "takeout-dir.tgz").mkdir()

    units = discover_archives(tmp_path, PATTERNS + ["*.tgz"])

    assert [unit.identity for unit in units] == [
        "Takeout-003.tgz",
        "takeout-001.tar.gz",
        "takeout-002.tgz",
    ]
    assert units[0] == ArchiveUnit(path=tmp_path / "Takeout-003.tgz", identity="Takeout-003.tgz")


def test_discover_archives_missing_directory(tmp_path: Path) -> None:
    assert discover_archives(tmp_path / "absent", PATTERNS) == []


def test_materialize_overlays_later_archives(tmp_path: Path) -> None:
    """Later archives overwrite files at the same relative path."""
    first = _write_tgz(
        tmp_path / "takeout-001.tgz",
        {"Takeout/Google Photos/a.jpg": b"old", "Takeout/Google Photos/b.jpg": b"keep"},
    )
    second = _write_tgz(tmp_path / "takeout-002.tgz", {"Takeout/Google Photos/a.jpg": b"new"})
    materializer = _materializer(tmp_path)

    report = materializer.materialize([ArchiveUnit.from_path(first), ArchiveUnit.from_path(second)])

    album = materializer.overlay_root / "Takeout" / "Google Photos"
    assert (album / "a.jpg").read_bytes() == b"new"
    assert (album / "b.jpg").read_bytes() == b"keep"
    assert report.extracted == ["takeout-001.tgz", "takeout-002.tgz"]
    assert report.skipped == []
    assert materializer.markers.identities() == {"takeout-001.tgz", "takeout-002.tgz"}


def test_materialize_resume_does_no_work(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A rerun with every archive marked extracts nothing and changes nothing."""
    archive = _write_tgz(tmp_path / "takeout-001.tgz", {"Takeout/x/a.jpg": b"payload"})
    _materializer(tmp_path).materialize([ArchiveUnit.from_path(archive)])
    overlay = tmp_path / "_extracted"
    before = _tree(overlay)

    rerun = _materializer(tmp_path)

    def _fail(unit: ArchiveUnit) -> None:
        raise AssertionError(f"unexpected extraction of {unit.identity}")

    monkeypatch.setattr(rerun, "_extract", _fail)
    report = rerun.materialize(discover_archives(tmp_path, PATTERNS))

    assert report.extracted == []
    assert report.skipped == ["takeout-001.tgz"]
    assert _tree(overlay) == before


def test_materialize_zip_archive(tmp_path: Path) -> None:
    path = tmp_path / "takeout-001.zip"
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr("Takeout/Google Foto/c.png", b"png")
    materializer = _materializer(tmp_path)

    materializer.materialize([ArchiveUnit.from_path(path)])

    assert (materializer.overlay_root / "Takeout" / "Google Foto" / "c.png").read_bytes() == b"png"


def test_extraction_failure_aborts_without_marker(tmp_path: Path) -> None:
    """A corrupt archive stops the pass; later archives are not attempted."""
    broken = tmp_path / "takeout-001.tgz"
    broken.write_bytes(b"definitely not gzip")
    good = _write_tgz(tmp_path / "takeout-002.tgz", {"Takeout/a.jpg": b"x"})
    materializer = _materializer(tmp_path)

    with pytest.raises(MaterializeError):
        materializer.materialize([ArchiveUnit.from_path(broken), ArchiveUnit.from_path(good)])

    assert materializer.markers.identities() == set()
    assert not (materializer.overlay_root / "Takeout" / "a.jpg").exists()


def test_reset_removes_overlay_and_markers(tmp_path: Path) -> None:
    archive = _write_tgz(tmp_path / "takeout-001.tgz", {"Takeout/a.jpg": b"x"})
    _materializer(tmp_path).materialize([ArchiveUnit.from_path(archive)])

    fresh = _materializer(tmp_path)
    fresh.reset()

    assert not fresh.overlay_root.exists()
    fresh.prepare()
    report = fresh.materialize([ArchiveUnit.from_path(archive)])
    assert report.extracted == ["takeout-001.tgz"]


def test_reset_after_prepare_is_rejected(tmp_path: Path) -> None:
    materializer = _materializer(tmp_path)
    materializer.prepare()

    with pytest.raises(MaterializeError):
        materializer.reset()


def test_cancel_leaves_remaining_archives_for_next_run(tmp_path: Path) -> None:
    first = _write_tgz(tmp_path / "takeout-001.tgz", {"Takeout/a.jpg": b"a"})
    second = _write_tgz(tmp_path / "takeout-002.tgz", {"Takeout/b.jpg": b"b"})
    materializer = _materializer(tmp_path)
    cancel = threading.Event()

    def _extract_then_cancel(unit: ArchiveUnit) -> None:
        original_extract(unit)
        cancel.set()

    original_extract = materializer._extract
    materializer._extract = _extract_then_cancel  # type: ignore[method-assign]
    report = materializer.materialize(
        [ArchiveUnit.from_path(first), ArchiveUnit.from_path(second)], cancel=cancel
    )

    assert report.extracted == ["takeout-001.tgz"]
    assert materializer.markers.identities() == {"takeout-001.tgz"}
    assert not (materializer.overlay_root / "Takeout" / "b.jpg").exists()


def test_members_escaping_the_overlay_are_rejected(tmp_path: Path) -> None:
    archive = _write_tgz(tmp_path / "takeout-001.tgz", {"../escaped.jpg": b"x"})
    materializer = _materializer(tmp_path)

    with pytest.raises(MaterializeError):
        materializer.materialize([ArchiveUnit.from_path(archive)])

    assert not (tmp_path / "escaped.jpg").exists()
    assert materializer.markers.identities() == set()
