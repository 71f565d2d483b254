"""Invoke tasks for developer workflows.

Commands shell out to `uv` so the virtual environment stays the single source
of truth for tool versions.
"""

from __future__ import annotations

import io
import json
import shlex
import tarfile
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent


def _uv(ctx: Context, args: Sequence[str], *, dry_run: bool = False) -> None:
    """Run `uv` with the given arguments.

    Args:
        ctx: Invoke execution context.
        args: Arguments appended after the `uv` executable.
        dry_run: Print the command instead of running it.
    """
    command = shlex.join(("uv", *args))
    if dry_run:
        print(f"[dry-run] {command}")
        return
    ctx.run(command, echo=True, pty=True)


@task
def sync(ctx: Context, dev: bool = True) -> None:
    """Synchronize the virtual environment, including dev extras by default."""
    args = ["sync"]
    if dev:
        args.extend(["--extra", "dev"])
    _uv(ctx, args)


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "path": "Path or module to test (defaults to tests/).",
        "options": "Additional CLI flags forwarded verbatim to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite."""
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    args.append(path)
    _uv(ctx, args)


@task(help={"fix": "Apply auto-fixes where possible (ruff --fix)."})
def lint(ctx: Context, fix: bool = False) -> None:
    """Check formatting and lint rules with Ruff, then type-check with MyPy."""
    _uv(ctx, ["run", "ruff", "format", "--check", "src", "tests"])
    args = ["run", "ruff", "check", "src", "tests"]
    if fix:
        args.append("--fix")
    _uv(ctx, args)
    _uv(ctx, ["run", "mypy", "src"])


@task(
    help={
        "target": "Directory that receives the sample archives.",
        "archives": "Number of overlapping archives to write.",
    }
)
def sample_export(ctx: Context, target: str = "sample-export", archives: int = 2) -> None:
    """Write small overlapping Takeout-style archives for manual runs.

    Every archive carries the same album so the overlay behaviour is visible;
    the last archive's copy of each file wins.
    """
    destination = Path(target)
    destination.mkdir(parents=True, exist_ok=True)
    album = "Takeout/Google Photos/Trip 2019"
    for index in range(1, archives + 1):
        stamp = 1_560_000_000 + index * 86_400
        members = {
            f"{album}/IMG_0001.jpg": b"jpeg",
            f"{album}/IMG_0001.jpg.supplemental-metadata.json": {
                "photoTakenTime": {"timestamp": str(stamp)}
            },
            f"{album}/IMG_0002(1).jpg": b"jpeg",
            f"{album}/IMG_0002.jpg.json": {"creationTime": {"timestamp": str(stamp + 60)}},
            f"{album}/LIVE.mov": b"mov",
            f"{album}/LIVE.HEIC.json": {"photoTakenTime": {"timestamp": str(stamp + 120)}},
            f"{album}/metadata.json": {"date": {"timestamp": str(stamp)}},
        }
        path = destination / f"takeout-sample-{index:03d}.tgz"
        with tarfile.open(path, "w:gz") as archive:
            for name, payload in members.items():
                data = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
                info = tarfile.TarInfo(name)
                info.size = len(data)
                archive.addfile(info, io.BytesIO(data))
        print(f"wrote {path}")


namespace = Collection(sync, tests, lint, sample_export)
