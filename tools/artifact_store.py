"""Artifact type and a content-addressed local artifact store.

A store turns (name, text, executable flag, destination, check phase) into a
persisted, addressable directory.  ``LocalArtifactStore`` lays artifacts out as

    <root>/<digest>-<name>/<destination>
    <root>/<digest>-<name>.json          (metadata sidecar)

where ``digest`` is derived from every build input, so identical requests
map to the same path and a second build is a no-op.  Outputs are assembled
in a private temp dir and renamed into place only after the check phase
succeeds; a failed build leaves nothing behind.
"""

import hashlib
import json
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field

from _env import clean_env
from _errors import ArtifactBuildError, ValidationError
from text_helper import concat, context_of
from value_checkers import is_non_empty_string

_DIGEST_LEN = 32


@dataclass(frozen=True)
class Artifact:
    """A persisted store output.  Coerces to its store path."""
    name: str
    path: str
    references: tuple = field(default_factory=tuple)

    @property
    def context(self):
        return frozenset({self.path})

    def __fspath__(self):
        return self.path

    def __str__(self):
        return self.path

    def bin(self, name=None):
        """Path of ``bin/<name>`` inside the artifact, keeping provenance."""
        return concat(self, "/bin/", name or self.name)

    @classmethod
    def from_path(cls, path):
        """Adopt an existing directory (e.g. a prebuilt dependency) as an artifact."""
        if not isinstance(path, (str, os.PathLike)):
            raise ValidationError(f"artifact path must be a path, got {path!r}")
        if not is_non_empty_string(os.fspath(path)):
            raise ValidationError("artifact path must not be empty")
        path = os.path.abspath(os.fspath(path))
        if not os.path.isdir(path):
            raise ValidationError(f"not a directory: {path}")
        return cls(name=os.path.basename(path), path=path)


def is_artifact(x):
    return isinstance(x, Artifact)


class ArtifactStore:
    """Interface every store implements."""

    def build(self, name, text, executable=False, destination=None, check_phase=""):
        raise NotImplementedError


def _digest(name, text, executable, destination, check_phase):
    canonical = json.dumps({
        "name": name,
        "text": str(text),
        "executable": executable,
        "destination": destination,
        "checkPhase": str(check_phase),
    }, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode()).hexdigest()[:_DIGEST_LEN]


def _check_destination(destination):
    if not is_non_empty_string(destination):
        raise ValidationError("destination must be a non-empty string")
    if os.path.isabs(destination):
        raise ValidationError(f"destination must be relative: {destination}")
    if ".." in destination.split("/"):
        raise ValidationError(f"destination escapes the artifact: {destination}")


class LocalArtifactStore(ArtifactStore):
    """Content-addressed store rooted at a local directory."""

    def __init__(self, root, check_shell="bash"):
        self.root = os.path.abspath(os.fspath(root))
        self.check_shell = check_shell
        os.makedirs(self.root, exist_ok=True)

    def path_for(self, name, text, executable=False, destination=None, check_phase=""):
        destination = destination or name
        digest = _digest(name, text, executable, destination, check_phase)
        return os.path.join(self.root, f"{digest}-{name}")

    def get(self, path):
        """Load the artifact stored at *path* from its metadata sidecar."""
        sidecar = os.fspath(path) + ".json"
        if not os.path.isfile(sidecar):
            raise ArtifactBuildError(f"no artifact at {path}")
        with open(sidecar) as f:
            meta = json.load(f)
        return Artifact(name=meta["name"], path=meta["path"],
                        references=tuple(meta["references"]))

    def build(self, name, text, executable=False, destination=None, check_phase=""):
        if not is_non_empty_string(name) or type(name) is not str:
            raise ValidationError("artifact name must be a plain non-empty string")
        if "/" in name or name in (".", ".."):
            raise ValidationError(f"invalid artifact name: {name!r}")
        if not isinstance(text, str):
            raise ValidationError("artifact text must be a string")
        if not isinstance(check_phase, str):
            raise ValidationError("check phase must be a string")
        destination = destination or name
        _check_destination(destination)

        out = self.path_for(name, text, executable, destination, check_phase)
        if os.path.isfile(out + ".json") and os.path.isdir(out):
            return self.get(out)

        references = sorted(
            (context_of(text) | context_of(check_phase)) - {out}
        )

        tmp = tempfile.mkdtemp(prefix=f".tmp-{name}-", dir=self.root)
        try:
            target = os.path.join(tmp, destination)
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with open(target, "w", encoding="utf-8") as f:
                f.write(str(text))
            os.chmod(target, 0o755 if executable else 0o644)

            self._run_check(name, check_phase, tmp)

            try:
                os.rename(tmp, out)
            except OSError:
                # another build of the same inputs got there first
                if not os.path.isdir(out):
                    raise
                shutil.rmtree(tmp, ignore_errors=True)

            meta = {"name": name, "path": out, "destination": destination,
                    "executable": bool(executable), "references": references}
            fd, sidecar_tmp = tempfile.mkstemp(suffix=".json", dir=self.root)
            with os.fdopen(fd, "w") as f:
                f.write(json.dumps(meta, indent=2, sort_keys=True) + "\n")
            os.replace(sidecar_tmp, out + ".json")
        except ArtifactBuildError:
            shutil.rmtree(tmp, ignore_errors=True)
            raise
        except (OSError, UnicodeError) as e:
            shutil.rmtree(tmp, ignore_errors=True)
            raise ArtifactBuildError(f"cannot write artifact {name}: {e}") from e
        except BaseException:
            shutil.rmtree(tmp, ignore_errors=True)
            raise

        return Artifact(name=name, path=out, references=tuple(references))

    def _run_check(self, name, check_phase, out):
        if not check_phase.strip():
            return
        env = clean_env()
        env["out"] = out
        try:
            result = subprocess.run(
                [self.check_shell, "-c", check_phase],
                cwd=out, env=env, capture_output=True, text=True,
            )
        except FileNotFoundError as e:
            raise ArtifactBuildError(
                f"check shell not found: {self.check_shell}") from e
        if result.returncode != 0:
            raise ArtifactBuildError(
                f"check phase for {name} failed with exit code {result.returncode}"
                + (f": {result.stderr.strip()}" if result.stderr.strip() else ""),
                returncode=result.returncode,
                stderr=result.stderr,
            )
