"""Data models for dependency snapshots."""

from __future__ import annotations

from .dependency import SnapshotDependency
from .enums import LOCKFILE_PRIORITY, LockfileType, SnapshotStatus, TriggerSource
from .execution_snapshot import ExecutionSnapshot, SnapshotFilter, SnapshotWithDependencies
from .security_context import (
    IntegrityIssue,
    PostinstallEntry,
    SecurityContext,
    TyposquattingAlert,
)

__all__ = [
    "ExecutionSnapshot",
    "IntegrityIssue",
    "LOCKFILE_PRIORITY",
    "LockfileType",
    "PostinstallEntry",
    "SecurityContext",
    "SnapshotDependency",
    "SnapshotFilter",
    "SnapshotStatus",
    "SnapshotWithDependencies",
    "TriggerSource",
    "TyposquattingAlert",
]
