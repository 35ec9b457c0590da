"""
Error types for the containerd store.

Every failure is raised to the immediate caller; nothing here is retried.
"""


class CtdError(Exception):
    """Base class for all containerd store errors."""


class BinaryNotFoundError(CtdError):
    """A required external tool is missing from PATH."""


class DirectoryError(CtdError):
    """The private work directory could not be created or removed."""


class ConfigWriteError(CtdError):
    """The generated daemon configuration could not be written."""


class ProcessStartError(CtdError):
    """The daemon process could not be started."""


class ProcessError(CtdError):
    """Signalling or reaping the daemon process failed."""


class FetchError(CtdError):
    """The fetch subprocess could not be spawned or exited non-zero."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class ArchiveError(CtdError):
    """Writing a tar stream failed."""


class InvalidReferenceError(CtdError):
    """An image reference failed validation."""
