"""MtimeApplier and DiagnosticsSink tests."""

from __future__ import annotations

import os
import threading
from pathlib import Path

import pytest

from restamp.restore import ApplyError, DiagnosticsSink, MtimeApplier

TS = 1_500_000_000


def test_apply_sets_atime_and_mtime(tmp_path: Path) -> None:
    target = tmp_path / "a.jpg"
    target.write_bytes(b"jpeg")

    result = MtimeApplier().apply(target, TS)

    stat = target.stat()
    assert result.changed
    assert stat.st_mtime == TS
    assert stat.st_atime == TS
    assert target.read_bytes() == b"jpeg"


def test_apply_is_idempotent(tmp_path: Path) -> None:
    target = tmp_path / "a.jpg"
    target.write_bytes(b"jpeg")
    applier = MtimeApplier()

    applier.apply(target, TS)
    second = applier.apply(target, TS)

    assert not second.changed
    assert target.stat().st_mtime == TS


def test_apply_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(ApplyError):
        MtimeApplier().apply(tmp_path / "missing.jpg", TS)


def test_file_and_directory_times_are_isolated(tmp_path: Path) -> None:
    """Updating a file never moves its directory's mtime, and vice versa."""
    album = tmp_path / "Album"
    album.mkdir()
    photo = album / "a.jpg"
    photo.write_bytes(b"jpeg")
    os.utime(album, (TS, TS))
    applier = MtimeApplier()

    applier.apply(photo, TS + 500)
    assert album.stat().st_mtime == TS

    applier.apply(album, TS + 900)
    assert photo.stat().st_mtime == TS + 500
    assert album.stat().st_mtime == TS + 900


def test_sink_appends_structured_lines(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "unmatched.log"
    sink = DiagnosticsSink(path)

    sink.record("NO_SIDECAR", media="/x/orphan.png")
    sink.record("UTIME_FAILED", media="/x/a.jpg", ts=TS)

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].endswith(" | NO_SIDECAR media=/x/orphan.png")
    assert lines[1].endswith(f" | UTIME_FAILED media=/x/a.jpg ts={TS}")
    assert sink.counts() == {"NO_SIDECAR": 1, "UTIME_FAILED": 1}
    assert [record.code for record in sink.records] == ["NO_SIDECAR", "UTIME_FAILED"]


def test_sink_swallows_write_failures(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    sink = DiagnosticsSink(blocker / "unmatched.log")

    sink.record("BAD_JSON", json="/x/a.json", media="/x/a.jpg")

    assert sink.counts() == {"BAD_JSON": 1}


def test_sink_is_safe_for_concurrent_append(tmp_path: Path) -> None:
    path = tmp_path / "unmatched.log"
    sink = DiagnosticsSink(path)

    def _emit(worker: int) -> None:
        for index in range(50):
            sink.record("NO_SIDECAR", media=f"/w{worker}/{index}.jpg")

    threads = [threading.Thread(target=_emit, args=(worker,)) for worker in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 200
    assert all(" | NO_SIDECAR media=/w" in line for line in lines)
