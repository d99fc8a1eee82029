"""Exceptions raised while planning and running file jobs."""

from __future__ import annotations


class BzbatchError(RuntimeError):
    """Base class for every error the orchestrator raises on purpose."""


class UsageError(BzbatchError):
    """Raised for invalid flag values or combinations; aborts the whole run."""


class PathError(BzbatchError):
    """Raised when an input or output path cannot be used for a job."""

    def __init__(self, path: str | None = None, message: str | None = None) -> None:
        self.path = path
        super().__init__(message or f"unusable path {path}")


class CodecError(BzbatchError):
    """Raised when compressed input is malformed, truncated or empty."""


def describe(error: object) -> str:
    """Short, human-readable text for an error shown next to its path."""

    if isinstance(error, OSError) and error.strerror:
        return error.strerror
    return str(error)
