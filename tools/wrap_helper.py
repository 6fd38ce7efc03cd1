"""Generate wrapper scripts around existing executables.

A wrapper is a tiny shell script installed at ``bin/<name>`` of a new
artifact.  It sets/overrides environment variables, optionally extends PATH
with the ``bin`` directories of some dependencies, and execs the original
executable with bound arguments in front of whatever it was called with:

    #! /bin/sh
    FOO='bar' PATH='/store/...-dep'/bin:"$PATH" exec '/path/to/prog' '-v' "$@"

Before the store accepts the artifact it runs a check phase asserting that
the wrapping shell and the wrapped executable are both executable files,
followed by any extra checks the caller asked for.
"""

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from _env import PATH, is_valid_env_var_name
from _errors import ValidationError
from artifact_store import is_artifact
from shell_checkers import esc, file_is_executable
from text_helper import Tainted, context_of, discard_context
from value_checkers import is_non_empty_string

DEFAULT_SHELL = "/bin/sh"

# Prepended to every check phase: any failing check aborts the whole build.
CHECK_PREAMBLE = "set -Eeuo pipefail\n"


@dataclass(frozen=True)
class WrapConfig:
    """Overrides applied by a wrapper script."""
    name: str | None = None
    deps: tuple = ()                      # artifacts whose bin/ joins PATH
    env: Mapping = field(default_factory=dict)  # vars to set/override
    args: tuple = ()                      # bound before forwarded arguments
    check_phase: str = ""
    shell: str = DEFAULT_SHELL


def write_checked_executable(store, name, check_phase, text):
    """Write *text* to ``bin/<name>`` of a new executable artifact.

    *check_phase* runs after the file is written and before the artifact is
    accepted, with ``set -Eeuo pipefail`` in effect.
    """
    if not is_non_empty_string(name):
        raise ValidationError("executable name must be a non-empty string")
    if "/" in name or name in (".", ".."):
        raise ValidationError(f"invalid executable name: {name!r}")
    if not isinstance(check_phase, str):
        raise ValidationError("check phase must be a string")
    if not is_non_empty_string(text):
        raise ValidationError("executable text must be a non-empty string")

    name = discard_context(name)
    return store.build(
        name,
        text,
        executable=True,
        destination=f"bin/{name}",
        check_phase=Tainted(CHECK_PREAMBLE + check_phase, context_of(check_phase)),
    )


def _validate(executable, config):
    if not is_non_empty_string(executable) and not is_artifact(executable):
        raise ValidationError("executable must be a non-empty string or an artifact")
    if not isinstance(config.deps, (list, tuple)):
        raise ValidationError("deps must be a list")
    for dep in config.deps:
        if not is_artifact(dep):
            raise ValidationError(f"dependency is not an artifact: {dep!r}")
    if not isinstance(config.env, Mapping):
        raise ValidationError("env must be a mapping")
    for key, value in config.env.items():
        if not is_valid_env_var_name(key):
            raise ValidationError(f"invalid environment variable name: {key!r}")
        if not isinstance(value, str):
            raise ValidationError(f"value of {key} must be a string")
    if not isinstance(config.args, (list, tuple)):
        raise ValidationError("args must be a list")
    for arg in config.args:
        if not isinstance(arg, str):
            raise ValidationError(f"argument must be a string: {arg!r}")
    if config.name is not None and not is_non_empty_string(config.name):
        raise ValidationError("name must be a non-empty string")
    if not isinstance(config.check_phase, str):
        raise ValidationError("check phase must be a string")
    if not is_non_empty_string(config.shell):
        raise ValidationError("shell must be a non-empty string")


def _new_path(config):
    """Compute the PATH assignment value, or None to leave PATH alone."""
    deps_to_add = "".join(f"{esc(dep)}/bin:" for dep in config.deps)
    if PATH in config.env:
        base = esc(config.env[PATH])
    elif config.deps:
        base = f'"${PATH}"'
    else:
        return None
    return deps_to_add + base


def env_assignments(config):
    """``KEY=value`` words for the wrapper, PATH last if it is set at all."""
    assignments = [f"{k}={esc(v)}" for k, v in config.env.items() if k != PATH]
    new_path = _new_path(config)
    if new_path is not None:
        assignments.append(f"{PATH}={new_path}")
    return assignments


def wrapper_script(executable, config):
    """Render the wrapper script text."""
    words = "".join(f"{a} " for a in env_assignments(config))
    bound = "".join(f"{esc(a)} " for a in config.args)
    text = (
        f"#! {config.shell}\n"
        f"{words}exec {esc(executable)} {bound}\"$@\"\n"
    )
    ctx = context_of(Tainted.of(executable)) | context_of(config.shell)
    for value in (*config.deps, *config.env.values(), *config.args):
        ctx |= context_of(value)
    return Tainted(text, ctx)


def wrapper_check_phase(executable, config):
    """Render the check phase: shell and executable are runnable, then extras."""
    text = (
        file_is_executable(config.shell)
        + file_is_executable(executable)
        + config.check_phase
    )
    if text and not text.endswith("\n"):
        text += "\n"
    return Tainted(text, context_of(Tainted.of(executable)) | context_of(config.check_phase))


def wrap_executable(store, executable, config=None, **overrides):
    """Create a wrapper artifact around *executable*.

    Accepts a ``WrapConfig`` and/or its fields as keyword arguments
    (keywords win).  Every input is validated before the store is touched.
    Returns the artifact; its ``bin()`` is the path of the new executable.
    """
    unknown = set(overrides) - {f.name for f in dataclasses.fields(WrapConfig)}
    if unknown:
        raise ValidationError(f"unknown wrap option(s): {', '.join(sorted(unknown))}")
    if config is None:
        config = WrapConfig(**overrides)
    elif overrides:
        config = dataclasses.replace(config, **overrides)
    _validate(executable, config)

    if config.name is not None:
        name = discard_context(config.name)
    else:
        name = os.path.basename(discard_context(executable))
    if not is_non_empty_string(name) or name in (".", ".."):
        raise ValidationError(f"cannot derive a name from {executable!r}")

    artifact = write_checked_executable(
        store,
        name,
        wrapper_check_phase(executable, config),
        wrapper_script(executable, config),
    )
    if not is_artifact(artifact):
        raise ValidationError(f"store returned a non-artifact: {artifact!r}")
    return artifact
