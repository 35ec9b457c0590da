"""Shared pytest fixtures: fake containerd/dist binaries and a running instance."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

import pytest

from ctdstore.supervisor import Containerd

# Sleeps until killed, like a daemon that never exits on its own.
FAKE_CONTAINERD = """#!/bin/sh
exec sleep 300
"""

# Records its arguments next to the socket and drops a blob into --root.
# Invoked as: dist --address <sock> --root <root> fetch <image>
FAKE_DIST = """#!/bin/sh
echo "$@" > "$(dirname "$2")/dist-args"
mkdir -p "$4/content/blobs/sha256"
printf '%s' "$6" > "$4/content/blobs/sha256/manifest"
echo "fetched $6"
"""

FAILING_DIST = """#!/bin/sh
echo "dist: cannot reach registry" >&2
exit 3
"""


def write_script(directory: Path, name: str, body: str) -> Path:
    """Write an executable shell script."""
    path = directory / name
    path.write_text(body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def scratch_tmp(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect tempfile so instance directories land under tmp_path."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch


@pytest.fixture
def bin_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Directory with fake containerd and dist, prepended to PATH."""
    directory = tmp_path / "bin"
    directory.mkdir()
    write_script(directory, "containerd", FAKE_CONTAINERD)
    write_script(directory, "dist", FAKE_DIST)
    monkeypatch.setenv("PATH", str(directory) + os.pathsep + os.environ.get("PATH", ""))
    return directory


@pytest.fixture
def output(tmp_path: Path):
    """File sink for daemon and dist output."""
    with open(tmp_path / "output.log", "wb") as f:
        yield f


@pytest.fixture
def ctd(bin_dir: Path, scratch_tmp: Path, output) -> Containerd:
    """A started instance backed by the fake binaries."""
    instance = Containerd.start(output)
    try:
        yield instance
    finally:
        if os.path.exists(instance.work_dir) or not instance.shutdown:
            instance.close()
