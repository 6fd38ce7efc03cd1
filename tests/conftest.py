from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path

import pytest

_REPO = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_REPO / "tools"))

from artifact_store import Artifact, LocalArtifactStore  # noqa: E402


class RecordingStore:
    """Store double that records build() calls instead of writing anything."""

    def __init__(self):
        self.calls = []

    def build(self, name, text, executable=False, destination=None, check_phase=""):
        self.calls.append({
            "name": name,
            "text": text,
            "executable": executable,
            "destination": destination,
            "check_phase": check_phase,
        })
        return Artifact(name=name, path=f"/store/00000000-{name}")


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def store(tmp_path: Path) -> LocalArtifactStore:
    if shutil.which("bash") is None:
        pytest.skip("bash not found on PATH")
    return LocalArtifactStore(tmp_path / "store")


@pytest.fixture
def fake_exe(tmp_path: Path) -> str:
    """An executable shell script that prints its environment and arguments."""
    if not os.access("/bin/sh", os.X_OK):
        pytest.skip("/bin/sh not available")
    exe = tmp_path / "prog"
    exe.write_text(
        "#!/bin/sh\n"
        'echo "FOO=${FOO-unset}"\n'
        'echo "PATH=$PATH"\n'
        'for a in "$@"; do echo "arg=$a"; done\n'
    )
    exe.chmod(0o755)
    return str(exe)


@pytest.fixture
def make_dep(tmp_path: Path):
    """Factory: make_dep("name") -> Artifact for a directory with a bin/ dir."""
    def _make(name: str) -> Artifact:
        d = tmp_path / "deps" / name
        (d / "bin").mkdir(parents=True)
        return Artifact.from_path(d)
    return _make
