"""Error hierarchy for snapshot capture.

Failures locating, reading or parsing a lockfile and failures writing
artifacts are fatal to a capture. Callers can catch ``SnapshotError`` to
handle every capture failure in one place.
"""

from __future__ import annotations


class SnapshotError(RuntimeError):
    """Base error for failures while capturing or persisting a snapshot."""


class NoLockfileFoundError(SnapshotError):
    """Raised when a project directory contains none of the known lockfiles."""


class FileReadError(SnapshotError):
    """Raised when a lockfile or manifest exists but cannot be read."""


class LockfileParseError(SnapshotError):
    """Raised when lockfile content cannot be parsed."""

    def __init__(self, message: str, lockfile_type: str | None = None) -> None:
        super().__init__(message)
        self.lockfile_type = lockfile_type


class StorageWriteError(SnapshotError):
    """Raised when a compressed artifact cannot be written or read back."""


class RepositoryError(SnapshotError):
    """Raised when the record store rejects an operation."""


class SnapshotStateError(SnapshotError):
    """Raised on an illegal snapshot status transition."""
