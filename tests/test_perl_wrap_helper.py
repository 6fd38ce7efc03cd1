"""Tests for perl_wrap_helper."""
from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest

_REPO = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_REPO / "tools"))

from _errors import ValidationError
from artifact_store import Artifact
from perl_wrap_helper import make_perl_path, wrap_executable_with_perl_deps

EXE = "/opt/perl/bin/script.pl"

PACKAGES = {
    "JSON": Artifact(name="perl-JSON", path="/store/111-perl-JSON"),
    "IPC-System-Simple": Artifact(name="perl-IPC", path="/store/222-perl-IPC"),
}


def test_make_perl_path():
    path = make_perl_path([PACKAGES["JSON"], PACKAGES["IPC-System-Simple"]])
    assert path == (
        "/store/111-perl-JSON/lib/perl5/site_perl:"
        "/store/222-perl-IPC/lib/perl5/site_perl"
    )
    assert path.context == {"/store/111-perl-JSON", "/store/222-perl-IPC"}


def test_make_perl_path_empty():
    assert make_perl_path([]) == ""


def test_wrap_sets_perl5lib(recording_store):
    wrap_executable_with_perl_deps(
        recording_store, EXE,
        deps=lambda pkgs: [pkgs["JSON"]],
        packages=PACKAGES,
    )
    line = recording_store.calls[0]["text"].split("\n")[1]
    assert line == f'PERL5LIB=/store/111-perl-JSON/lib/perl5/site_perl exec {EXE} "$@"'
    assert recording_store.calls[0]["name"] == "script.pl"


def test_deps_function_called_once_with_registry(recording_store):
    seen = []

    def deps(pkgs):
        seen.append(pkgs)
        return [pkgs["IPC-System-Simple"]]

    wrap_executable_with_perl_deps(recording_store, EXE, deps=deps, packages=PACKAGES)
    assert seen == [PACKAGES]


def test_check_phase_is_passed_through(recording_store):
    wrap_executable_with_perl_deps(
        recording_store, EXE, deps=lambda pkgs: [], packages=PACKAGES,
        check_phase="test -d /opt/perl\n",
    )
    assert recording_store.calls[0]["check_phase"].endswith("test -d /opt/perl\n")


@pytest.mark.parametrize("deps", [
    lambda pkgs: ["/not/an/artifact"],
    lambda pkgs: pkgs["JSON"],
    [PACKAGES["JSON"]],
])
def test_rejects_bad_deps(recording_store, deps):
    with pytest.raises(ValidationError):
        wrap_executable_with_perl_deps(recording_store, EXE, deps=deps, packages=PACKAGES)
    assert recording_store.calls == []


def test_rejects_bad_executable_and_check_phase(recording_store):
    with pytest.raises(ValidationError):
        wrap_executable_with_perl_deps(recording_store, "", deps=lambda p: [], packages={})
    with pytest.raises(ValidationError):
        wrap_executable_with_perl_deps(recording_store, EXE, deps=lambda p: [],
                                       packages={}, check_phase=None)
    assert recording_store.calls == []


def test_perl5lib_overrides_inherited_value(store, tmp_path):
    exe = tmp_path / "show-perl5lib"
    exe.write_text('#!/bin/sh\necho "$PERL5LIB"\n')
    exe.chmod(0o755)
    lib = tmp_path / "perl-Foo"
    (lib / "lib" / "perl5" / "site_perl").mkdir(parents=True)
    packages = {"Foo": Artifact.from_path(lib)}

    art = wrap_executable_with_perl_deps(
        store, str(exe), deps=lambda pkgs: [pkgs["Foo"]], packages=packages)

    result = subprocess.run(
        [art.bin()], capture_output=True, text=True,
        env={"PATH": "/usr/bin:/bin", "PERL5LIB": "/old"},
    )
    assert result.returncode == 0, result.stderr
    assert result.stdout == f"{lib}/lib/perl5/site_perl\n"
