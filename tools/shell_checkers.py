"""Shell snippets for check phases.

Every snippet exits the whole check script with status 1 and a message
naming the offending file when its assertion does not hold.  Snippets are
plain text and compose by concatenation.
"""

import shlex

from _errors import ValidationError
from text_helper import Tainted
from value_checkers import is_non_empty_string


def esc(value):
    """Quote *value* so the shell reads it back as exactly the same string."""
    return shlex.quote(str(Tainted.of(value)))


def _resolve(file):
    try:
        path = Tainted.of(file)
    except TypeError:
        raise ValidationError(
            f"expected a path or an artifact, got {type(file).__name__}") from None
    if not is_non_empty_string(str(path)):
        raise ValidationError("file path must not be empty")
    return path


def file_is_executable(file):
    """Snippet asserting *file* is a readable, executable regular file."""
    f = esc(_resolve(file))
    return (
        f"if ! [ -f {f} -a -r {f} -a -x {f} ]; then\n"
        f"  >&2 printf 'File \"%s\" is supposed to be ' {f}\n"
        f"  >&2 echo 'readable executable file but this assertion has failed!'\n"
        f"  exit 1\n"
        f"fi\n"
    )


def file_is_readable(file):
    """Snippet asserting *file* is a readable regular file."""
    f = esc(_resolve(file))
    return (
        f"if ! [ -f {f} -a -r {f} ]; then\n"
        f"  >&2 printf 'File \"%s\" is supposed to be ' {f}\n"
        f"  >&2 echo 'readable but this assertion has failed!'\n"
        f"  exit 1\n"
        f"fi\n"
    )
