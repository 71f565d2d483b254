"""Completion marker store and run state tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from restamp.state import MarkerStore, RunPhase, RunState, RunStateError, StateError


def test_mark_and_contains(tmp_path: Path) -> None:
    """Marked identities are reported and persisted as `.ok` files.

    Args:
        tmp_path: Temporary directory provided by pytest.
    """
    store = MarkerStore(tmp_path / ".markers")

    assert not store.contains("takeout-001.tgz")
    marker = store.mark("takeout-001.tgz")

    assert marker == tmp_path / ".markers" / "takeout-001.tgz.ok"
    assert store.contains("takeout-001.tgz")
    assert store.identities() == {"takeout-001.tgz"}


def test_markers_survive_new_store_instances(tmp_path: Path) -> None:
    """A fresh store reads markers written by an earlier one."""
    MarkerStore(tmp_path).mark("a.tgz")
    MarkerStore(tmp_path).mark("b.tgz")

    assert MarkerStore(tmp_path).identities() == {"a.tgz", "b.tgz"}


def test_marker_content_is_irrelevant(tmp_path: Path) -> None:
    """Only the presence of a marker file matters."""
    (tmp_path / "c.tgz.ok").write_text("anything at all", encoding="utf-8")

    assert MarkerStore(tmp_path).contains("c.tgz")


def test_clear_removes_all_markers(tmp_path: Path) -> None:
    store = MarkerStore(tmp_path / ".markers")
    store.mark("a.tgz")

    store.clear()

    assert store.identities() == set()
    assert not store.directory.exists()


def test_invalid_identity_rejected(tmp_path: Path) -> None:
    store = MarkerStore(tmp_path)

    with pytest.raises(StateError):
        store.mark("../escape")


def test_run_state_moves_forward_only() -> None:
    """Phases may be skipped but never revisited."""
    state = RunState()

    state.advance(RunPhase.MATERIALIZING)
    state.advance(RunPhase.RESOLVING)

    assert state.phase is RunPhase.RESOLVING
    assert [entry.phase for entry in state.history] == [
        RunPhase.MATERIALIZING,
        RunPhase.RESOLVING,
    ]
    with pytest.raises(RunStateError):
        state.advance(RunPhase.SCANNED)
    with pytest.raises(RunStateError):
        state.advance(RunPhase.RESOLVING)
