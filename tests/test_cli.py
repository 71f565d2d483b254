"""CLI tests for the run and config commands."""

from __future__ import annotations

import io
import json
import os
import tarfile
from pathlib import Path
from typing import Any

import yaml
from click.testing import CliRunner

from restamp.cli import cli

TS = 1_300_000_000


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    """Return environment variables pointing HOME to a temp directory.

    Args:
        tmp_path: Temporary directory provided by pytest.

    Returns:
        dict[str, Any]: Environment mapping with HOME set.
    """
    env = {key: value for key, value in os.environ.items() if not key.startswith("RESTAMP__")}
    env["HOME"] = str(tmp_path / "home")
    return env


def _download_dir(tmp_path: Path) -> Path:
    download = tmp_path / "downloads"
    download.mkdir()
    members = {
        "Takeout/Google Photos/Trip/a.jpg": b"a",
        "Takeout/Google Photos/Trip/a.jpg.json": json.dumps(
            {"photoTakenTime": {"timestamp": str(TS)}}
        ).encode(),
        "Takeout/Google Photos/Trip/b.png": b"b",
    }
    with tarfile.open(download / "takeout-001.tgz", "w:gz") as archive:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return download


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Restamp restores" in result.output
    assert "run" in result.output
    assert "config" in result.output


def test_run_json_reports_summary(tmp_path: Path) -> None:
    runner = CliRunner()
    download = _download_dir(tmp_path)
    log_dir = tmp_path / "logs"

    result = runner.invoke(
        cli,
        ["run", str(download), "--json", "--log-dir", str(log_dir)],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["final_state"] == "restored"
    assert payload["materialize"]["extracted"] == ["takeout-001.tgz"]
    assert payload["files"]["updated"] == 1
    assert payload["files"]["no_sidecar"] == 1
    assert payload["diagnostics"] == {"NO_SIDECAR": 1}
    assert payload["logs"]["diagnostics"] == str(log_dir.resolve() / "unmatched.log")

    photo = download / "_extracted" / "Takeout" / "Google Photos" / "Trip" / "a.jpg"
    assert photo.stat().st_mtime == TS
    assert (log_dir / "run.log").exists()
    assert (log_dir / "summary.json").exists()


def test_run_prints_summary_lines(tmp_path: Path) -> None:
    runner = CliRunner()
    download = _download_dir(tmp_path)

    result = runner.invoke(
        cli,
        ["run", str(download), "--phase", "extract", "--log-dir", str(tmp_path / "logs")],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    assert "Extract summary for" in result.output
    assert "extracted=1" in result.output


def test_run_quiet_suppresses_output(tmp_path: Path) -> None:
    runner = CliRunner()
    download = _download_dir(tmp_path)

    result = runner.invoke(
        cli,
        ["run", str(download), "--quiet", "--log-dir", str(tmp_path / "logs")],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0
    assert result.stdout == ""


def test_run_missing_media_root_reports_json_error(tmp_path: Path) -> None:
    runner = CliRunner()
    download = _download_dir(tmp_path)

    result = runner.invoke(
        cli,
        [
            "run",
            str(download),
            "--json",
            "--photos-root",
            "Fotos",
            "--log-dir",
            str(tmp_path / "logs"),
        ],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["error"]["code"] == "run_error"


def test_run_bad_archive_is_an_extract_error(tmp_path: Path) -> None:
    runner = CliRunner()
    download = tmp_path / "downloads"
    download.mkdir()
    (download / "takeout-001.tgz").write_bytes(b"not an archive")

    result = runner.invoke(
        cli,
        ["run", str(download), "--log-dir", str(tmp_path / "logs")],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 1
    assert "takeout-001.tgz" in result.output


def test_run_rejects_json_with_quiet(tmp_path: Path) -> None:
    runner = CliRunner()
    download = tmp_path / "downloads"
    download.mkdir()

    result = runner.invoke(
        cli,
        ["run", str(download), "--json", "--quiet"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["error"]["code"] == "cli_error"


def test_config_view_displays_defaults(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["config", "view"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "restore:" in result.output
    assert "photoTakenTime" in result.output


def test_config_set_persists_value(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(cli, ["config", "set", "restore.workers", "--value", "8"], env=env)

    assert result.exit_code == 0, result.output
    assert "Updated restore.workers" in result.output
    config_path = tmp_path / "home" / ".restamp" / "config.yaml"
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    assert data["restore"]["workers"] == 8


def test_config_set_rejects_invalid_value(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["config", "set", "restore.workers", "--value", "0"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code != 0
    assert "Invalid configuration values" in result.output
    config_path = tmp_path / "home" / ".restamp" / "config.yaml"
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    assert data["restore"]["workers"] == 4
