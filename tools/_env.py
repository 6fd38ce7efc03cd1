"""Environment handling shared by the wrapper helpers.

Check phases run as subprocesses at build time.  Inheriting the caller's
full environment would make a check pass on one host and fail on another
for the same artifact digest, so checks start from a whitelist of
functional vars plus a few determinism pins.
"""

import os
import re

from text_helper import Tainted, context_of

# Vars passed through from the host environment when present.
_PASSTHROUGH = frozenset({
    "HOME", "USER", "LOGNAME",
    "TMPDIR", "TEMP", "TMP",
    "TERM",
    "PATH",
})

# Vars pinned to fixed values for determinism.
_DETERMINISM_PINS = {
    "LC_ALL": "C",
    "LANG": "C",
    "SOURCE_DATE_EPOCH": "315576000",
}

# A single letter, or a letter/underscore followed by one or more word chars.
_ENV_VAR_NAME_RE = re.compile(r"[a-zA-Z]|[a-zA-Z_][a-zA-Z_0-9]+")

PATH = "PATH"


def clean_env():
    """Return a clean env dict for subprocess env= parameter.

    Copies only whitelisted vars from the host, then applies
    determinism pins.  Callers layer check-specific vars on top.
    """
    env = {}
    for key in _PASSTHROUGH:
        val = os.environ.get(key)
        if val is not None:
            env[key] = val
    env.update(_DETERMINISM_PINS)
    return env


def is_valid_env_var_name(name):
    """True if *name* can be used as a shell environment variable name."""
    return isinstance(name, str) and _ENV_VAR_NAME_RE.fullmatch(name) is not None


def join_search_path(parts):
    """Join *parts* with ':' keeping the provenance of every part."""
    ctx = frozenset()
    for p in parts:
        ctx |= context_of(p)
    return Tainted(":".join(str(Tainted.of(p)) for p in parts), ctx)
