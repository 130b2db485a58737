"""Execution snapshot record and its lifecycle transitions."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..errors import SnapshotStateError
from .dependency import SnapshotDependency
from .enums import LockfileType, SnapshotStatus, TriggerSource


def _format_timestamp(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(slots=True)
class ExecutionSnapshot:
    """One capture attempt for a project.

    A record starts in ``capturing`` and moves exactly once to ``completed``
    or ``failed``. Terminal records reject further transitions; a retry is a
    new snapshot with a new id.
    """

    id: str
    project_path: str
    trigger_source: TriggerSource
    created_at: datetime
    status: SnapshotStatus = SnapshotStatus.CAPTURING
    lockfile_type: LockfileType | None = None
    lockfile_hash: str | None = None
    dependency_tree_hash: str | None = None
    package_json_hash: str | None = None
    total_dependencies: int = 0
    direct_dependencies: int = 0
    dev_dependencies: int = 0
    security_score: int | None = None
    postinstall_count: int = 0
    storage_path: str | None = None
    compressed_size: int | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Snapshot id must be provided")
        if not self.project_path:
            raise ValueError("project_path must be provided")
        if self.created_at.tzinfo is None:
            raise ValueError("created_at must be timezone-aware")

    @classmethod
    def start(
        cls,
        project_path: str,
        trigger_source: TriggerSource,
        *,
        snapshot_id: str | None = None,
        created_at: datetime | None = None,
    ) -> ExecutionSnapshot:
        """Create a fresh record in the ``capturing`` state."""
        return cls(
            id=snapshot_id or str(uuid.uuid4()),
            project_path=project_path,
            trigger_source=trigger_source,
            created_at=created_at or datetime.now(timezone.utc),
        )

    def _ensure_capturing(self, target: SnapshotStatus) -> None:
        if self.status.is_terminal:
            raise SnapshotStateError(
                f"Snapshot {self.id} is already {self.status.value}; "
                f"cannot transition to {target.value}"
            )

    def mark_completed(self) -> None:
        self._ensure_capturing(SnapshotStatus.COMPLETED)
        self.status = SnapshotStatus.COMPLETED

    def mark_failed(self, message: str) -> None:
        self._ensure_capturing(SnapshotStatus.FAILED)
        self.status = SnapshotStatus.FAILED
        self.error_message = message

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectPath": self.project_path,
            "status": self.status.value,
            "triggerSource": self.trigger_source.value,
            "lockfileType": self.lockfile_type.value if self.lockfile_type else None,
            "lockfileHash": self.lockfile_hash,
            "dependencyTreeHash": self.dependency_tree_hash,
            "packageJsonHash": self.package_json_hash,
            "totalDependencies": self.total_dependencies,
            "directDependencies": self.direct_dependencies,
            "devDependencies": self.dev_dependencies,
            "securityScore": self.security_score,
            "postinstallCount": self.postinstall_count,
            "storagePath": self.storage_path,
            "compressedSize": self.compressed_size,
            "errorMessage": self.error_message,
            "createdAt": _format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionSnapshot:
        lockfile_type = data.get("lockfileType")
        return cls(
            id=data["id"],
            project_path=data["projectPath"],
            status=SnapshotStatus(data["status"]),
            trigger_source=TriggerSource(data["triggerSource"]),
            lockfile_type=LockfileType(lockfile_type) if lockfile_type else None,
            lockfile_hash=data.get("lockfileHash"),
            dependency_tree_hash=data.get("dependencyTreeHash"),
            package_json_hash=data.get("packageJsonHash"),
            total_dependencies=int(data.get("totalDependencies", 0)),
            direct_dependencies=int(data.get("directDependencies", 0)),
            dev_dependencies=int(data.get("devDependencies", 0)),
            security_score=data.get("securityScore"),
            postinstall_count=int(data.get("postinstallCount", 0)),
            storage_path=data.get("storagePath"),
            compressed_size=data.get("compressedSize"),
            error_message=data.get("errorMessage"),
            created_at=_parse_timestamp(data["createdAt"]),
        )

    def copy(self) -> ExecutionSnapshot:
        return ExecutionSnapshot.from_dict(self.to_dict())


@dataclass(frozen=True)
class SnapshotFilter:
    """Query options for listing snapshot history."""

    project_path: str | None = None
    status: SnapshotStatus | None = None
    trigger_source: TriggerSource | None = None
    limit: int | None = None
    offset: int = 0

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be non-negative")
        if self.offset < 0:
            raise ValueError("offset must be non-negative")

    def matches(self, snapshot: ExecutionSnapshot) -> bool:
        if self.project_path is not None and snapshot.project_path != self.project_path:
            return False
        if self.status is not None and snapshot.status is not self.status:
            return False
        if self.trigger_source is not None and snapshot.trigger_source is not self.trigger_source:
            return False
        return True


@dataclass(frozen=True)
class SnapshotWithDependencies:
    """A snapshot record together with its dependency rows."""

    snapshot: ExecutionSnapshot
    dependencies: tuple[SnapshotDependency, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "snapshot": self.snapshot.to_dict(),
            "dependencies": [dep.to_dict() for dep in self.dependencies],
        }
