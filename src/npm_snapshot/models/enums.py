"""Enumerations shared by the snapshot models."""

from __future__ import annotations

from enum import Enum


class LockfileType(str, Enum):
    """Supported package manager lockfile formats."""

    NPM = "npm"
    PNPM = "pnpm"
    YARN = "yarn"
    BUN = "bun"

    @property
    def lockfile_name(self) -> str:
        return _LOCKFILE_NAMES[self]


_LOCKFILE_NAMES = {
    LockfileType.NPM: "package-lock.json",
    LockfileType.PNPM: "pnpm-lock.yaml",
    LockfileType.YARN: "yarn.lock",
    LockfileType.BUN: "bun.lockb",
}

# Detection order when a project carries more than one lockfile.
LOCKFILE_PRIORITY: tuple[LockfileType, ...] = (
    LockfileType.PNPM,
    LockfileType.NPM,
    LockfileType.YARN,
    LockfileType.BUN,
)


class SnapshotStatus(str, Enum):
    """Lifecycle state of a capture attempt."""

    CAPTURING = "capturing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not SnapshotStatus.CAPTURING


class TriggerSource(str, Enum):
    """What initiated a capture."""

    MANUAL = "manual"
    LOCKFILE_CHANGE = "lockfile_change"
