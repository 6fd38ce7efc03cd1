"""Wrap an executable so it sees a set of Perl 5 library dependencies.

Overrides PERL5LIB entirely; an inherited PERL5LIB is not merged in.

Usage::

    store = LocalArtifactStore("store")
    packages = {"IPC-System-Simple": Artifact.from_path("/opt/perl/IPC-System-Simple")}
    script = write_checked_executable(
        store, "some-perl-script", file_is_executable(perl),
        f"#! {perl}\\n# Some perl script...\\n")
    wrapped = wrap_executable_with_perl_deps(
        store, script.bin(),
        deps=lambda pkgs: [pkgs["IPC-System-Simple"]],
        packages=packages)
"""

from _env import join_search_path
from _errors import ValidationError
from artifact_store import is_artifact
from text_helper import concat
from value_checkers import is_non_empty_string
from wrap_helper import wrap_executable

PERL_LIB_VAR = "PERL5LIB"

# Where Perl modules live inside a dependency artifact.
PERL_LIB_PREFIX = "lib/perl5/site_perl"


def make_perl_path(deps):
    """Colon-joined PERL5LIB value for *deps*, keeping their provenance."""
    return join_search_path([concat(dep, "/", PERL_LIB_PREFIX) for dep in deps])


def wrap_executable_with_perl_deps(store, executable, deps, packages, check_phase=""):
    """Wrap *executable* with PERL5LIB pointing at ``deps(packages)``.

    *deps* is called once with the *packages* registry (name -> artifact)
    and must return a list of artifacts.
    """
    if not is_non_empty_string(executable):
        raise ValidationError("executable must be a non-empty string")
    if not isinstance(check_phase, str):
        raise ValidationError("check phase must be a string")
    if not callable(deps):
        raise ValidationError("deps must be a function of the package set")

    deps_list = deps(packages)
    if not isinstance(deps_list, (list, tuple)):
        raise ValidationError("deps function must return a list")
    for dep in deps_list:
        if not is_artifact(dep):
            raise ValidationError(f"perl dependency is not an artifact: {dep!r}")

    return wrap_executable(
        store,
        executable,
        env={PERL_LIB_VAR: make_perl_path(deps_list)},
        check_phase=check_phase,
    )
