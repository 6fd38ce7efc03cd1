"""Exception classes shared by the wrapper helpers."""


class WrapError(Exception):
    """Base exception for wrapper generation errors."""
    pass


class ValidationError(WrapError, ValueError):
    """An input had the wrong shape; raised before anything is built."""
    pass


class ArtifactBuildError(WrapError):
    """The store could not produce an artifact (usually a failed check phase)."""

    def __init__(self, message, returncode=None, stderr=""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
