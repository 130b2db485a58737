"""Dependency row captured from a lockfile."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class SnapshotDependency:
    """One resolved package recorded for a snapshot."""

    snapshot_id: str
    name: str
    version: str
    is_direct: bool = False
    is_dev: bool = False
    has_postinstall: bool = False
    postinstall_script: str | None = None
    integrity_hash: str | None = None
    resolved_url: str | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Dependency name must be non-empty")
        if not self.version:
            raise ValueError("Dependency version must be non-empty")

    @property
    def key(self) -> str:
        """Return the ``name@version`` identity used for tree hashing."""
        return f"{self.name}@{self.version}"

    def with_id(self, dependency_id: int) -> SnapshotDependency:
        return replace(self, id=dependency_id)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "snapshotId": self.snapshot_id,
            "name": self.name,
            "version": self.version,
            "isDirect": self.is_direct,
            "isDev": self.is_dev,
            "hasPostinstall": self.has_postinstall,
        }
        if self.id is not None:
            data["id"] = self.id
        if self.postinstall_script is not None:
            data["postinstallScript"] = self.postinstall_script
        if self.integrity_hash is not None:
            data["integrityHash"] = self.integrity_hash
        if self.resolved_url is not None:
            data["resolvedUrl"] = self.resolved_url
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnapshotDependency:
        return cls(
            id=data.get("id"),
            snapshot_id=data["snapshotId"],
            name=data["name"],
            version=data["version"],
            is_direct=bool(data.get("isDirect", False)),
            is_dev=bool(data.get("isDev", False)),
            has_postinstall=bool(data.get("hasPostinstall", False)),
            postinstall_script=data.get("postinstallScript"),
            integrity_hash=data.get("integrityHash"),
            resolved_url=data.get("resolvedUrl"),
        )
