#!/usr/bin/env python3
"""Command-line front end for the wrapper helpers.

    wrapgen --store-dir store wrap /usr/bin/foo --env FOO=bar --arg -v
    wrapgen wrap /usr/bin/foo --config foo-wrap.yaml
    wrapgen write-checked hello hello.sh --require-executable /bin/sh
    wrapgen wrap-perl ./script.pl --perl-package JSON=/opt/perl/JSON --dep JSON

Each command prints the store path of the artifact it built.  A wrap-config
file is YAML with any of the keys ``name``, ``deps`` (directories),
``env`` (mapping), ``args`` (list), ``check_phase`` and ``shell``; flags on
the command line extend (deps, env, args) or replace (the rest) it.
"""

import sys

import click
import yaml

from _errors import ValidationError, WrapError
from artifact_store import Artifact, LocalArtifactStore
from perl_wrap_helper import wrap_executable_with_perl_deps
from shell_checkers import file_is_executable, file_is_readable
from wrap_helper import DEFAULT_SHELL, WrapConfig, wrap_executable, write_checked_executable

_CONFIG_KEYS = {"name", "deps", "env", "args", "check_phase", "shell"}


def load_wrap_config(path):
    """Read a YAML wrap-config file into a plain dict."""
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValidationError(f"invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"wrap config must be a mapping: {path}")
    unknown = set(data) - _CONFIG_KEYS
    if unknown:
        raise ValidationError(
            f"unknown keys in {path}: {', '.join(sorted(unknown))}")
    return data


def _parse_pairs(pairs, what):
    result = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint=what)
        result[key] = value
    return result


def build_config(file_config, name, deps, env, args, check_phase, shell):
    """Merge a wrap-config file with command-line flags into a WrapConfig."""
    for key in ("deps", "args"):
        if not isinstance(file_config.get(key) or [], list):
            raise ValidationError(f"'{key}' in wrap config must be a list")
    if not isinstance(file_config.get("env") or {}, dict):
        raise ValidationError("'env' in wrap config must be a mapping")
    dep_dirs = list(file_config.get("deps") or []) + list(deps)
    merged_env = dict(file_config.get("env") or {})
    merged_env.update(env)
    return WrapConfig(
        name=name if name is not None else file_config.get("name"),
        deps=tuple(Artifact.from_path(d) for d in dep_dirs),
        env=merged_env,
        args=tuple(file_config.get("args") or []) + tuple(args),
        check_phase=check_phase if check_phase is not None else file_config.get("check_phase", ""),
        shell=shell or file_config.get("shell") or DEFAULT_SHELL,
    )


def _fail(message):
    click.echo(f"error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.option('--store-dir', envvar='WRAPGEN_STORE_DIR', required=True,
              type=click.Path(file_okay=False), help='Artifact store root directory')
@click.option('--check-shell', default='bash', help='Shell used to run check phases')
@click.pass_context
def main(ctx, store_dir, check_shell):
    """Generate wrapped executables with build-time checks."""
    ctx.obj = LocalArtifactStore(store_dir, check_shell=check_shell)


@main.command()
@click.argument('executable')
@click.option('--name', default=None, help='Name of the wrapper (default: executable base name)')
@click.option('--dep', 'deps', multiple=True, help='Directory whose bin/ is prepended to PATH (repeatable)')
@click.option('--env', 'env_pairs', multiple=True, help='Environment variable KEY=VALUE (repeatable)')
@click.option('--arg', 'args', multiple=True, help='Argument bound before forwarded ones (repeatable)')
@click.option('--check-phase', default=None, help='Extra shell checks run at build time')
@click.option('--shell', default=None, help=f'Wrapping shell (default: {DEFAULT_SHELL})')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='YAML wrap-config file')
@click.pass_obj
def wrap(store, executable, name, deps, env_pairs, args, check_phase, shell, config_path):
    """Wrap EXECUTABLE with environment overrides and bound arguments."""
    env = _parse_pairs(env_pairs, "--env")
    try:
        file_config = load_wrap_config(config_path) if config_path else {}
        config = build_config(file_config, name, deps, env, args, check_phase, shell)
        artifact = wrap_executable(store, executable, config)
    except WrapError as e:
        _fail(e)
    click.echo(artifact.path)


@main.command('write-checked')
@click.argument('name')
@click.argument('script', type=click.File('r'))
@click.option('--check-phase', default='', help='Shell checks run at build time')
@click.option('--require-executable', multiple=True,
              help='File that must be a readable executable (repeatable)')
@click.option('--require-readable', multiple=True,
              help='File that must be readable (repeatable)')
@click.pass_obj
def write_checked(store, name, script, check_phase, require_executable, require_readable):
    """Install SCRIPT as bin/NAME of a new checked artifact."""
    try:
        checks = "".join(file_is_executable(f) for f in require_executable)
        checks += "".join(file_is_readable(f) for f in require_readable)
        artifact = write_checked_executable(store, name, checks + check_phase, script.read())
    except WrapError as e:
        _fail(e)
    click.echo(artifact.path)


@main.command('wrap-perl')
@click.argument('executable')
@click.option('--perl-package', 'package_pairs', multiple=True,
              help='Available Perl package NAME=DIR (repeatable)')
@click.option('--dep', 'dep_names', multiple=True, help='Perl package to depend on (repeatable)')
@click.option('--check-phase', default='', help='Extra shell checks run at build time')
@click.pass_obj
def wrap_perl(store, executable, package_pairs, dep_names, check_phase):
    """Wrap EXECUTABLE with PERL5LIB set for the given Perl packages."""
    pairs = _parse_pairs(package_pairs, "--perl-package")
    try:
        packages = {k: Artifact.from_path(v) for k, v in pairs.items()}
        missing = [n for n in dep_names if n not in packages]
        if missing:
            raise ValidationError(f"unknown perl package(s): {', '.join(missing)}")
        artifact = wrap_executable_with_perl_deps(
            store, executable,
            deps=lambda pkgs: [pkgs[n] for n in dep_names],
            packages=packages,
            check_phase=check_phase,
        )
    except WrapError as e:
        _fail(e)
    click.echo(artifact.path)


if __name__ == '__main__':
    main()
