"""Text helpers that keep track of which store paths a string came from.

A ``Tainted`` string is an ordinary ``str`` that also remembers the set of
artifact store paths it was derived from (its *context*).  The artifact
store uses the context of a script's text to record which other artifacts
the script refers to.

Plain ``str`` operations (concatenation, ``split``, f-strings) return bare
strings and silently lose the context, so anything that takes strings apart
and puts them back together goes through the helpers here.
"""

import os


class Tainted(str):
    """A str carrying the store paths it was derived from."""

    def __new__(cls, value="", context=()):
        obj = super().__new__(cls, value)
        obj.context = frozenset(context)
        return obj

    def __repr__(self):
        return f"Tainted({str.__repr__(self)}, context={sorted(self.context)!r})"

    def __add__(self, other):
        return Tainted(str(self) + str(other), self.context | context_of(other))

    def __radd__(self, other):
        return Tainted(str(other) + str(self), context_of(other) | self.context)

    def __reduce__(self):
        return (Tainted, (str(self), tuple(sorted(self.context))))

    @classmethod
    def of(cls, value):
        """Coerce a str, Tainted or artifact into a Tainted string."""
        if isinstance(value, Tainted):
            return value
        if isinstance(value, str):
            return cls(value)
        if hasattr(value, "context") and hasattr(value, "__fspath__"):
            return cls(os.fspath(value), value.context)
        raise TypeError(f"cannot use {type(value).__name__} as a string")


def context_of(value):
    """Return the provenance context of *value* (empty for plain strings)."""
    return frozenset(getattr(value, "context", ()))


def concat(*parts):
    """Concatenate strings and artifacts, merging their contexts."""
    ctx = frozenset()
    for p in parts:
        ctx |= context_of(p)
    return Tainted("".join(str(Tainted.of(p)) for p in parts), ctx)


def discard_context(value):
    """Return *value* as a plain str with no provenance."""
    return str(Tainted.of(value))


def lines(text):
    """Split *text* on newlines; each line keeps the context of *text*."""
    ctx = context_of(text)
    return [Tainted(line, ctx) for line in str(text).split("\n")]


def unlines(seq):
    """Join *seq* with newlines, merging the contexts of all elements."""
    ctx = frozenset()
    for line in seq:
        ctx |= context_of(line)
    return Tainted("\n".join(str(line) for line in seq), ctx)


def map_lines(text, transform):
    """Apply *transform* to the list of lines of *text* and join the result.

    The transform sees the whole list, so it can drop, reorder or insert
    lines.  The result keeps the context of *text* even if the transform
    builds fresh strings.
    """
    result = unlines(transform(lines(text)))
    return Tainted(str(result), result.context | context_of(text))


def name_of_module_dir(path):
    """Name of the directory holding *path* (e.g. a package dir for ``__file__``)."""
    return os.path.basename(os.path.dirname(discard_context(path)))


def name_of_module_file(path):
    """Base name of *path* without its extension."""
    return os.path.splitext(os.path.basename(discard_context(path)))[0]
